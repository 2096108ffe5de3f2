from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from threading import Event, Lock, Thread
from typing import Callable, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)

FiredCallback = Callable[[str, dict, datetime], None]


class Notifier(Protocol):
    def schedule_at(self, fire_at: datetime, payload: dict) -> str: ...

    def cancel(self, delivery_id: str) -> None: ...


class PermissionGate(Protocol):
    def is_granted(self) -> bool: ...


class StaticPermission:
    def __init__(self, granted: bool = True):
        self.granted = granted

    def is_granted(self) -> bool:
        return self.granted


@dataclass
class PendingDelivery:
    id: str
    fire_at: datetime
    payload: dict


class LocalNotifier:
    """In-process delivery backend: a daemon thread fires due payloads."""

    def __init__(
        self,
        check_interval: float = 0.8,
        on_fired: Optional[FiredCallback] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.check_interval = max(0.2, check_interval)
        self.on_fired = on_fired
        self.clock = clock

        self._pending: Dict[str, PendingDelivery] = {}
        self._lock = Lock()
        self._stop_event = Event()
        self._thread: Optional[Thread] = None

    def start(self) -> None:
        self._stop_event.clear()
        self._thread = Thread(target=self._loop, name="alarm-notifier", daemon=True)
        self._thread.start()

    def shutdown(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2)
        self._thread = None

    def schedule_at(self, fire_at: datetime, payload: dict) -> str:
        if fire_at <= self._now(fire_at):
            raise ValueError(f"Cannot schedule a delivery in the past ({fire_at.isoformat()})")
        delivery = PendingDelivery(id=f"dl_{uuid.uuid4().hex[:8]}", fire_at=fire_at, payload=dict(payload))
        with self._lock:
            self._pending[delivery.id] = delivery
        logger.info("Delivery %s scheduled for %s", delivery.id, fire_at.isoformat())
        return delivery.id

    def cancel(self, delivery_id: str) -> None:
        with self._lock:
            removed = self._pending.pop(delivery_id, None)
        if removed:
            logger.info("Delivery %s withdrawn", delivery_id)

    def pending(self) -> List[PendingDelivery]:
        with self._lock:
            return sorted(self._pending.values(), key=lambda d: d.fire_at)

    def poll_due(self) -> List[PendingDelivery]:
        """Fire every pending delivery whose time has come and return them."""
        with self._lock:
            due = [d for d in self._pending.values() if d.fire_at <= self._now(d.fire_at)]
            for delivery in due:
                del self._pending[delivery.id]
        due.sort(key=lambda d: d.fire_at)
        for delivery in due:
            self._fire(delivery)
        return due

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            self.poll_due()
            self._stop_event.wait(self.check_interval)

    def _fire(self, delivery: PendingDelivery) -> None:
        fired_at = self._now(delivery.fire_at)
        logger.info(
            "Alarm ringing: %s - %s", delivery.payload.get("title", ""), delivery.payload.get("body", "")
        )
        if self.on_fired:
            try:
                self.on_fired(delivery.id, delivery.payload, fired_at)
            except Exception:  # pragma: no cover - callback safety
                logger.error("on_fired callback failed", exc_info=True)

    def _now(self, reference: datetime) -> datetime:
        if self.clock:
            return self.clock()
        return datetime.now(reference.tzinfo)
