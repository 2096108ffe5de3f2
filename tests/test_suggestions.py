import pytest

from lucky_alarm.scheduler import make_random_source
from lucky_alarm.suggestions import (
    FALLBACK_SUGGESTION,
    NOTIFICATION_TITLE,
    SUGGESTION_BANDS,
    build_notification,
    suggest_for,
)


def _first(low, high):
    return low


def _last(low, high):
    return high


@pytest.mark.parametrize(
    "minutes,band_index",
    [(1, 0), (5, 0), (6, 1), (10, 1), (11, 2), (20, 2), (21, 3), (30, 3), (31, 4), (60, 4)],
)
def test_first_matching_band_wins(minutes, band_index):
    assert suggest_for(minutes, _first) == SUGGESTION_BANDS[band_index].texts[0]
    assert suggest_for(minutes, _last) == SUGGESTION_BANDS[band_index].texts[-1]


@pytest.mark.parametrize("minutes", [0, 61, 120])
def test_fallback_outside_bands(minutes):
    assert suggest_for(minutes, _first) == FALLBACK_SUGGESTION


def test_seeded_choice_is_reproducible():
    picks = [suggest_for(15, make_random_source(7)) for _ in range(3)]
    assert len(set(picks)) == 1
    assert picks[0] in SUGGESTION_BANDS[2].texts


def test_notification_payload():
    payload = build_notification(12, _first)
    assert payload["title"] == NOTIFICATION_TITLE
    assert payload["body"] == f"12分得した！ {SUGGESTION_BANDS[2].texts[0]}"
