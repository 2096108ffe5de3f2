from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from threading import Lock
from typing import Optional

from . import scheduler, stats
from .errors import DeliverySchedulingFailed, PermissionDenied, PersistenceFailure
from .models import (
    DEFAULT_MAX_OFFSET_CAP,
    OFFSET_STEP,
    AlarmInstance,
    AppData,
    HistoryRecord,
    Profile,
    TargetTime,
    default_app_data,
)
from .notifications import Notifier, PermissionGate
from .scheduler import RandomSource, make_random_source
from .storage import KeyValueStore, load_app_data, save_app_data
from .suggestions import build_notification

logger = logging.getLogger(__name__)


class AlarmController:
    """Owns the session state: settings, history and the one active alarm.

    Every mutation either commits fully or leaves the previous state in place.
    Persistence problems are logged; the in-memory data stays authoritative.
    """

    def __init__(
        self,
        store: KeyValueStore,
        notifier: Notifier,
        permission: PermissionGate,
        draw: Optional[RandomSource] = None,
        max_offset_cap: int = DEFAULT_MAX_OFFSET_CAP,
    ):
        self.store = store
        self.notifier = notifier
        self.permission = permission
        self.draw = draw or make_random_source()
        self.max_offset_cap = max_offset_cap

        self.data: AppData = default_app_data()
        self._active: Optional[AlarmInstance] = None
        self._lock = Lock()

    def load(self) -> AppData:
        data = load_app_data(self.store)
        with self._lock:
            self.data = data
        return data

    @property
    def active_alarm(self) -> Optional[AlarmInstance]:
        with self._lock:
            return self._active

    @property
    def total_saved(self) -> int:
        with self._lock:
            return self.data.total_saved

    def set_alarm(self, kind: str, now: datetime) -> AlarmInstance:
        if not self.permission.is_granted():
            raise PermissionDenied("Notification permission is required to set an alarm")
        with self._lock:
            profile = self.data.settings.profile(kind)
        instance = scheduler.schedule(profile, now, draw=self.draw, max_offset_cap=self.max_offset_cap)
        payload = build_notification(instance.offset_minutes, self.draw)

        # Held until the new alarm is active, so an early fire event waits for it.
        with self._lock:
            self._withdraw_locked()
            try:
                delivery_id = self.notifier.schedule_at(instance.fire_at, payload)
            except Exception as exc:
                logger.error("Notifier rejected alarm for %s: %s", instance.fire_at.isoformat(), exc)
                raise DeliverySchedulingFailed(f"Could not schedule alarm: {exc}") from exc
            instance = replace(instance, delivery_id=delivery_id)
            self._active = instance
        logger.info(
            "Alarm set for %s (%s profile, target %s, %s min early)",
            instance.fire_at.isoformat(),
            kind,
            instance.target_time,
            instance.offset_minutes,
        )
        return instance

    def cancel_alarm(self) -> Optional[AlarmInstance]:
        with self._lock:
            return self._withdraw_locked()

    def _withdraw_locked(self) -> Optional[AlarmInstance]:
        instance = self._active
        self._active = None
        if instance is None:
            return None
        try:
            scheduler.cancel(instance, self.notifier)
        except Exception:
            logger.warning("Notifier failed to withdraw delivery %s", instance.delivery_id, exc_info=True)
        return instance

    def handle_fired(self, delivery_id: str, fired_at: datetime) -> Optional[HistoryRecord]:
        """Turn the active alarm into a history record once its delivery fired."""
        with self._lock:
            instance = self._active
            if instance is None or instance.delivery_id != delivery_id:
                logger.debug("Ignoring fire event for unknown delivery %s", delivery_id)
                return None
            history, total = stats.record_firing(
                self.data.history, instance, fired_at, total_saved=self.data.total_saved
            )
            self.data = replace(self.data, history=history, total_saved=total)
            self._active = None
        logger.info("Alarm fired at %s, saved %s min (total %s)", fired_at.isoformat(), instance.offset_minutes, total)
        self._persist()
        return history[0]

    def on_notification_fired(self, delivery_id: str, payload: dict, fired_at: datetime) -> None:
        self.handle_fired(delivery_id, fired_at)

    def update_target_time(self, kind: str, target_time: TargetTime) -> Profile:
        return self._update_profile(kind, lambda p: p.with_target_time(target_time))

    def step_target_time(self, kind: str, hours: int = 0, minutes: int = 0) -> Profile:
        return self._update_profile(kind, lambda p: p.with_target_time(p.target_time.shifted(hours, minutes)))

    def step_min_offset(self, kind: str, direction: int) -> Profile:
        return self._update_profile(kind, lambda p: p.with_min_step(OFFSET_STEP * direction))

    def step_max_offset(self, kind: str, direction: int) -> Profile:
        return self._update_profile(
            kind, lambda p: p.with_max_step(OFFSET_STEP * direction, cap=self.max_offset_cap)
        )

    def set_spoiler_free(self, enabled: bool) -> None:
        with self._lock:
            self.data = replace(self.data, settings=replace(self.data.settings, spoiler_free=enabled))
        self._persist()

    def weekly_saved(self, now: datetime) -> int:
        with self._lock:
            history = self.data.history
        return stats.weekly_saved(history, now)

    def recent_history(self, limit: int = 7):
        with self._lock:
            history = self.data.history
        return stats.recent_history(history, limit)

    def _update_profile(self, kind: str, change) -> Profile:
        with self._lock:
            profile = change(self.data.settings.profile(kind))
            profile.validate(max_offset_cap=self.max_offset_cap)
            self.data = replace(self.data, settings=self.data.settings.with_profile(kind, profile))
        self._persist()
        return profile

    def _persist(self) -> bool:
        with self._lock:
            data = self.data
        try:
            save_app_data(self.store, data)
        except PersistenceFailure as exc:
            logger.error("Failed to save app data, keeping in-memory state: %s", exc)
            return False
        return True
