from datetime import date

import pytest

from lucky_alarm.errors import InvalidProfile
from lucky_alarm.models import Profile, Settings, TargetTime, default_settings, profile_kind_for


def test_weekend_days_pick_weekend_profile():
    assert profile_kind_for(date(2025, 1, 4)) == "weekend"  # Saturday
    assert profile_kind_for(date(2025, 1, 5)) == "weekend"  # Sunday
    assert profile_kind_for(date(2025, 1, 6)) == "weekday"  # Monday
    assert profile_kind_for(date(2025, 1, 3)) == "weekday"  # Friday


def test_target_time_parse_and_format():
    assert TargetTime.parse("7:05") == TargetTime(7, 5)
    assert str(TargetTime(7, 5)) == "07:05"


def test_target_time_steps_wrap_independently():
    assert TargetTime(23, 55).shifted(minutes=5) == TargetTime(23, 0)
    assert TargetTime(0, 0).shifted(hours=-1) == TargetTime(23, 0)


def test_invalid_profile_is_value_error():
    with pytest.raises(ValueError):
        Profile(TargetTime(7, 0), 30, 5).validate()
    with pytest.raises(InvalidProfile):
        TargetTime(7, 60)


def test_unknown_profile_kind():
    with pytest.raises(KeyError):
        default_settings().profile("holiday")


def test_settings_missing_profile_uses_default():
    settings = Settings.from_dict({"weekday": {"targetTime": "06:00", "minOffset": 1, "maxOffset": 10}})
    assert settings.weekday == Profile(TargetTime(6, 0), 1, 10)
    assert settings.weekend == default_settings().weekend


def test_boolean_offsets_rejected():
    with pytest.raises(InvalidProfile):
        Profile(TargetTime(7, 0), False, True).validate()
    with pytest.raises(InvalidProfile):
        Profile(TargetTime(7, 0), 5, True).validate()
