from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from .errors import InvalidProfile

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
DEFAULT_MAX_OFFSET_CAP = 60
OFFSET_STEP = 5
WEEKDAY = "weekday"
WEEKEND = "weekend"
PROFILE_KINDS = (WEEKDAY, WEEKEND)

_HHMM_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


@dataclass(frozen=True)
class TargetTime:
    hour: int
    minute: int

    def __post_init__(self) -> None:
        if not (0 <= self.hour < 24 and 0 <= self.minute < 60):
            raise InvalidProfile(f"Invalid target time {self.hour}:{self.minute}")

    @classmethod
    def parse(cls, raw: str) -> "TargetTime":
        match = _HHMM_RE.match(str(raw))
        if not match:
            raise InvalidProfile(f"Target time must look like HH:MM, got {raw!r}")
        return cls(hour=int(match.group(1)), minute=int(match.group(2)))

    def shifted(self, hours: int = 0, minutes: int = 0) -> "TargetTime":
        """Step hour and minute independently, each wrapping on its own dial."""
        return TargetTime(hour=(self.hour + hours) % 24, minute=(self.minute + minutes) % 60)

    def on(self, day: date) -> datetime:
        return datetime(day.year, day.month, day.day, self.hour, self.minute)

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass(frozen=True)
class Profile:
    target_time: TargetTime
    min_offset: int
    max_offset: int

    def validate(self, max_offset_cap: Optional[int] = None) -> None:
        offsets = (self.min_offset, self.max_offset)
        if any(isinstance(v, bool) or not isinstance(v, int) for v in offsets):
            raise InvalidProfile("Offsets must be whole minutes")
        if self.min_offset < 0:
            raise InvalidProfile(f"min_offset must be non-negative (got {self.min_offset})")
        if self.min_offset >= self.max_offset:
            raise InvalidProfile(
                f"min_offset must be below max_offset (got {self.min_offset} >= {self.max_offset})"
            )
        # A single day of rollover only covers offsets shorter than a day.
        if self.max_offset >= MINUTES_PER_DAY:
            raise InvalidProfile(f"max_offset must be below {MINUTES_PER_DAY} minutes")
        if max_offset_cap is not None and self.max_offset > max_offset_cap:
            raise InvalidProfile(f"max_offset {self.max_offset} exceeds configured cap {max_offset_cap}")

    def with_target_time(self, target_time: TargetTime) -> "Profile":
        return replace(self, target_time=target_time)

    def with_min_step(self, delta: int) -> "Profile":
        new_min = max(1, min(self.max_offset - 1, self.min_offset + delta))
        return replace(self, min_offset=new_min)

    def with_max_step(self, delta: int, cap: int = DEFAULT_MAX_OFFSET_CAP) -> "Profile":
        new_max = max(self.min_offset + 1, min(cap, self.max_offset + delta))
        return replace(self, max_offset=new_max)

    def to_dict(self) -> dict:
        return {
            "targetTime": str(self.target_time),
            "minOffset": self.min_offset,
            "maxOffset": self.max_offset,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Profile":
        min_raw = data.get("minOffset", data.get("minRandom"))
        max_raw = data.get("maxOffset", data.get("maxRandom"))
        if min_raw is None or max_raw is None or "targetTime" not in data:
            raise ValueError("Profile payload missing targetTime/minOffset/maxOffset fields")
        return cls(
            target_time=TargetTime.parse(data["targetTime"]),
            min_offset=int(min_raw),
            max_offset=int(max_raw),
        )


@dataclass(frozen=True)
class AlarmInstance:
    offset_minutes: int
    fire_at: datetime
    target_time: TargetTime
    delivery_id: Optional[str] = None

    @property
    def target_at(self) -> datetime:
        """Nominal wake instant this alarm runs ahead of."""
        return self.fire_at + timedelta(minutes=self.offset_minutes)


@dataclass(frozen=True)
class HistoryRecord:
    date: date
    saved_minutes: int
    target_time: TargetTime
    actual_time: datetime

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "savedMinutes": self.saved_minutes,
            "targetTime": str(self.target_time),
            "actualTime": self.actual_time.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryRecord":
        date_raw = data.get("date")
        if not date_raw or "savedMinutes" not in data:
            raise ValueError("History payload missing date/savedMinutes fields")
        if len(date_raw) > 10:
            day = _local_day(_parse_timestamp(date_raw))
        else:
            day = date.fromisoformat(date_raw)
        target_time = TargetTime.parse(data.get("targetTime") or "00:00")
        actual_raw = data.get("actualTime")
        if not actual_raw:
            actual_time = target_time.on(day)
        elif _HHMM_RE.match(actual_raw):
            actual_time = TargetTime.parse(actual_raw).on(day)
        else:
            actual_time = _parse_timestamp(actual_raw)
        return cls(
            date=day,
            saved_minutes=int(data["savedMinutes"]),
            target_time=target_time,
            actual_time=actual_time,
        )


@dataclass(frozen=True)
class Settings:
    weekday: Profile
    weekend: Profile
    spoiler_free: bool = False

    def profile(self, kind: str) -> Profile:
        if kind not in PROFILE_KINDS:
            raise KeyError(f"Unknown profile {kind!r}")
        return getattr(self, kind)

    def with_profile(self, kind: str, profile: Profile) -> "Settings":
        if kind not in PROFILE_KINDS:
            raise KeyError(f"Unknown profile {kind!r}")
        return replace(self, **{kind: profile})

    def to_dict(self) -> dict:
        return {
            WEEKDAY: self.weekday.to_dict(),
            WEEKEND: self.weekend.to_dict(),
            "spoilerFree": self.spoiler_free,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        defaults = default_settings()
        weekday = Profile.from_dict(data[WEEKDAY]) if data.get(WEEKDAY) else defaults.weekday
        weekend = Profile.from_dict(data[WEEKEND]) if data.get(WEEKEND) else defaults.weekend
        return cls(weekday=weekday, weekend=weekend, spoiler_free=bool(data.get("spoilerFree", False)))


@dataclass(frozen=True)
class AppData:
    settings: Settings
    history: Tuple[HistoryRecord, ...] = field(default_factory=tuple)
    total_saved: int = 0

    def to_dict(self) -> dict:
        return {
            "settings": self.settings.to_dict(),
            "history": [record.to_dict() for record in self.history],
            "totalSaved": self.total_saved,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AppData":
        settings = Settings.from_dict(data.get("settings") or {})
        history: List[HistoryRecord] = []
        for item in data.get("history") or []:
            try:
                history.append(HistoryRecord.from_dict(item))
            except (ValueError, TypeError, AttributeError) as exc:
                logger.warning("Skipping history item due to parse error: %s", exc)
        recomputed = sum(record.saved_minutes for record in history)
        stored = data.get("totalSaved")
        if stored is not None and int(stored) != recomputed:
            logger.warning(
                "Stored totalSaved=%s disagrees with history sum=%s, using history", stored, recomputed
            )
        return cls(settings=settings, history=tuple(history), total_saved=recomputed)


def default_settings() -> Settings:
    return Settings(
        weekday=Profile(TargetTime(7, 0), min_offset=5, max_offset=30),
        weekend=Profile(TargetTime(9, 0), min_offset=5, max_offset=30),
        spoiler_free=False,
    )


def default_app_data() -> AppData:
    return AppData(settings=default_settings(), history=(), total_saved=0)


def profile_kind_for(day: date) -> str:
    """Saturday and Sunday use the weekend profile."""
    return WEEKEND if day.weekday() >= 5 else WEEKDAY


def _parse_timestamp(raw: str) -> datetime:
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    return datetime.fromisoformat(raw)


def _local_day(moment: datetime) -> date:
    """Calendar day on the local wall clock; naive timestamps are already local."""
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.date()
