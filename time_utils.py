from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)


def local_timezone(name: Optional[str] = None) -> tzinfo:
    if name:
        try:
            return ZoneInfo(name)
        except Exception as exc:  # pragma: no cover - environment-dependent
            logger.warning("Failed to load timezone %s via zoneinfo (%s), using system local", name, exc)
    return datetime.now().astimezone().tzinfo  # type: ignore[return-value]


def now_local(tz: Optional[tzinfo] = None) -> datetime:
    if tz:
        return datetime.now(tz)
    return datetime.now().astimezone()


def format_clock(dt: datetime) -> str:
    return dt.strftime("%H:%M")


def format_fire_time(dt: datetime, now: datetime) -> str:
    """Clock time for today, prefixed with the ISO date for any other day."""
    if dt.date() == now.date():
        return format_clock(dt)
    return f"{dt.date().isoformat()} {format_clock(dt)}"


def format_tz_offset(tz: tzinfo) -> str:
    sample = now_local(tz)
    offset = tz.utcoffset(sample)
    if offset is None:
        return ""
    total_minutes = int(offset.total_seconds() // 60)
    sign = "+" if total_minutes >= 0 else "-"
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"
