"""Randomised fire-time computation for the single active wake-up alarm."""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta
from typing import Callable, Optional

from .models import AlarmInstance, Profile

logger = logging.getLogger(__name__)

# Returns an integer in [low, high], both ends inclusive.
RandomSource = Callable[[int, int], int]


def make_random_source(seed: Optional[int] = None) -> RandomSource:
    """Private ``random.Random`` instance, reproducible when ``seed`` is given."""
    return random.Random(seed).randint


def draw_offset(profile: Profile, draw: RandomSource) -> int:
    offset = draw(profile.min_offset, profile.max_offset)
    if not profile.min_offset <= offset <= profile.max_offset:
        raise ValueError(
            f"Random source returned {offset} outside [{profile.min_offset}, {profile.max_offset}]"
        )
    return offset


def compute_fire_at(profile: Profile, now: datetime, offset_minutes: int) -> datetime:
    """Target time on ``now``'s date minus the offset, pushed one day ahead if not in the future."""
    candidate = now.replace(
        hour=profile.target_time.hour,
        minute=profile.target_time.minute,
        second=0,
        microsecond=0,
    ) - timedelta(minutes=offset_minutes)
    if candidate <= now:
        candidate = candidate + timedelta(days=1)
    return candidate


def schedule(
    profile: Profile,
    now: datetime,
    draw: Optional[RandomSource] = None,
    max_offset_cap: Optional[int] = None,
) -> AlarmInstance:
    profile.validate(max_offset_cap=max_offset_cap)
    if draw is None:
        draw = make_random_source()
    offset = draw_offset(profile, draw)
    fire_at = compute_fire_at(profile, now, offset)
    logger.debug(
        "Computed fire time %s (target=%s, offset=%s min)", fire_at.isoformat(), profile.target_time, offset
    )
    return AlarmInstance(offset_minutes=offset, fire_at=fire_at, target_time=profile.target_time)


def cancel(instance: Optional[AlarmInstance], notifier) -> None:
    """Withdraw the pending delivery of ``instance``; repeated calls are harmless."""
    if instance is None or instance.delivery_id is None:
        return
    notifier.cancel(instance.delivery_id)
    logger.info("Cancelled alarm delivery %s", instance.delivery_id)
