"""Append-only firing history and the totals derived from it.

History is kept most-recent-first as an immutable tuple; every function here
returns new values instead of touching its arguments, so the caller decides
when (and whether) the result is persisted.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Sequence, Tuple

from .models import AlarmInstance, HistoryRecord

History = Tuple[HistoryRecord, ...]


def record_firing(
    history: Sequence[HistoryRecord],
    instance: AlarmInstance,
    actual_fire_at: datetime,
    total_saved: Optional[int] = None,
) -> Tuple[History, int]:
    """Prepend a record for ``instance`` and return ``(new_history, new_total)``.

    ``total_saved`` is the running total matching ``history``; when omitted it
    is recomputed from the history itself.
    """
    if total_saved is None:
        total_saved = total_from_history(history)
    record = HistoryRecord(
        date=actual_fire_at.date(),
        saved_minutes=instance.offset_minutes,
        target_time=instance.target_time,
        actual_time=actual_fire_at,
    )
    return (record,) + tuple(history), total_saved + instance.offset_minutes


def week_start(now: datetime) -> date:
    """Sunday of the local calendar week containing ``now``."""
    days_since_sunday = (now.weekday() + 1) % 7
    return now.date() - timedelta(days=days_since_sunday)


def weekly_saved(history: Iterable[HistoryRecord], now: datetime) -> int:
    start = week_start(now)
    end = start + timedelta(days=7)
    return sum(record.saved_minutes for record in history if start <= record.date < end)


def total_from_history(history: Iterable[HistoryRecord]) -> int:
    return sum(record.saved_minutes for record in history)


def recent_history(history: Sequence[HistoryRecord], limit: int = 7) -> History:
    if limit <= 0:
        return ()
    return tuple(history[:limit])
