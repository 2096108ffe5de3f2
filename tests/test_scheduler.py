from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from lucky_alarm.errors import InvalidProfile
from lucky_alarm.models import AlarmInstance, Profile, TargetTime
from lucky_alarm.scheduler import cancel, compute_fire_at, make_random_source, schedule


def _now(hour: int = 6, minute: int = 0) -> datetime:
    return datetime(2025, 1, 1, hour, minute)


def _profile(min_offset: int = 5, max_offset: int = 30, target: str = "07:00") -> Profile:
    return Profile(TargetTime.parse(target), min_offset=min_offset, max_offset=max_offset)


def _fixed(value: int):
    return lambda low, high: value


class RecordingNotifier:
    def __init__(self):
        self.cancelled = []

    def cancel(self, delivery_id: str) -> None:
        self.cancelled.append(delivery_id)


def test_fires_same_day_before_target():
    alarm = schedule(_profile(), _now(6, 0), draw=make_random_source(3))
    assert alarm.fire_at.date() == _now().date()
    assert datetime(2025, 1, 1, 6, 30) <= alarm.fire_at <= datetime(2025, 1, 1, 6, 55)
    assert alarm.target_time == TargetTime(7, 0)


def test_offset_subtracted_exactly():
    alarm = schedule(_profile(), _now(6, 0), draw=_fixed(17))
    assert alarm.offset_minutes == 17
    assert alarm.fire_at == datetime(2025, 1, 1, 6, 43)
    assert alarm.target_at == datetime(2025, 1, 1, 7, 0)


def test_rollover_when_candidate_already_passed():
    alarm = schedule(_profile(), _now(6, 50), draw=_fixed(30))
    assert alarm.fire_at == datetime(2025, 1, 2, 6, 30)
    assert alarm.target_at - alarm.fire_at == timedelta(minutes=30)


def test_no_rollover_when_candidate_still_ahead():
    alarm = schedule(_profile(), _now(6, 50), draw=_fixed(5))
    assert alarm.fire_at == datetime(2025, 1, 1, 6, 55)


def test_candidate_equal_to_now_rolls_over():
    alarm = schedule(_profile(), _now(6, 40), draw=_fixed(20))
    assert alarm.fire_at == datetime(2025, 1, 2, 6, 40)


def test_rollover_crosses_month_and_year():
    now = datetime(2025, 12, 31, 23, 0)
    assert compute_fire_at(_profile(), now, 10) == datetime(2026, 1, 1, 6, 50)


def test_fire_at_always_in_future_and_before_target():
    draw = make_random_source(42)
    start = datetime(2025, 3, 1, 0, 0, 30)
    for step in range(0, 24 * 60, 7):
        now = start + timedelta(minutes=step)
        for target in ("00:00", "06:15", "07:00", "23:55"):
            alarm = schedule(_profile(target=target, max_offset=60), now, draw=draw)
            assert alarm.fire_at > now
            assert alarm.fire_at - now <= timedelta(days=1)
            assert alarm.target_at - alarm.fire_at == timedelta(minutes=alarm.offset_minutes)
            assert (alarm.target_at.hour, alarm.target_at.minute) == (
                alarm.target_time.hour,
                alarm.target_time.minute,
            )
            assert 5 <= alarm.offset_minutes <= 60


def test_keeps_timezone_of_now():
    now = datetime(2025, 1, 1, 6, 0, tzinfo=timezone.utc)
    alarm = schedule(_profile(), now, draw=_fixed(10))
    assert alarm.fire_at == datetime(2025, 1, 1, 6, 50, tzinfo=timezone.utc)


def test_offsets_are_uniform():
    profile = _profile(5, 30)
    draw = make_random_source(1234)
    samples = np.array([schedule(profile, _now(), draw=draw).offset_minutes for _ in range(26_000)])
    assert samples.min() == 5
    assert samples.max() == 30
    observed = np.bincount(samples - 5, minlength=26)
    expected = len(samples) / 26
    chi_square = float(((observed - expected) ** 2 / expected).sum())
    # 25 degrees of freedom, p = 0.001
    assert chi_square < 52.62


def test_same_seed_same_alarm():
    first = schedule(_profile(), _now(), draw=make_random_source(9))
    second = schedule(_profile(), _now(), draw=make_random_source(9))
    assert first == second


def test_inverted_bounds_rejected_without_drawing():
    calls = []

    def draw(low, high):
        calls.append((low, high))
        return low

    with pytest.raises(InvalidProfile):
        schedule(_profile(30, 5), _now(), draw=draw)
    assert calls == []


@pytest.mark.parametrize("min_offset,max_offset", [(10, 10), (-1, 5), (0, 1440)])
def test_invalid_bounds(min_offset, max_offset):
    with pytest.raises(InvalidProfile):
        schedule(_profile(min_offset, max_offset), _now(), draw=_fixed(min_offset))


def test_zero_min_offset_allowed():
    alarm = schedule(_profile(0, 1), _now(), draw=_fixed(0))
    assert alarm.fire_at == datetime(2025, 1, 1, 7, 0)


def test_configured_cap_enforced():
    with pytest.raises(InvalidProfile):
        schedule(_profile(5, 90), _now(), draw=_fixed(10), max_offset_cap=60)


def test_draw_outside_bounds_is_an_error():
    with pytest.raises(ValueError):
        schedule(_profile(5, 30), _now(), draw=_fixed(31))


def test_invalid_target_time():
    with pytest.raises(InvalidProfile):
        TargetTime.parse("24:00")
    with pytest.raises(InvalidProfile):
        TargetTime.parse("7am")


def test_cancel_twice_is_harmless():
    notifier = RecordingNotifier()
    alarm = AlarmInstance(10, datetime(2025, 1, 1, 6, 50), TargetTime(7, 0), delivery_id="dl_1")
    cancel(alarm, notifier)
    cancel(alarm, notifier)
    assert notifier.cancelled == ["dl_1", "dl_1"]


def test_cancel_without_delivery_is_noop():
    notifier = RecordingNotifier()
    cancel(None, notifier)
    cancel(AlarmInstance(10, datetime(2025, 1, 1, 6, 50), TargetTime(7, 0)), notifier)
    assert notifier.cancelled == []
