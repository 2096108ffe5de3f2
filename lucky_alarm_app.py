import logging
import signal
from datetime import datetime
from threading import Event

from config import Config, load_config, setup_logging
from lucky_alarm.controller import AlarmController
from lucky_alarm.errors import LuckyAlarmError
from lucky_alarm.models import profile_kind_for
from lucky_alarm.notifications import LocalNotifier, StaticPermission
from lucky_alarm.scheduler import make_random_source
from lucky_alarm.storage import JsonFileStore
from time_utils import format_fire_time, format_tz_offset, local_timezone, now_local

logger = logging.getLogger("lucky_alarm")


def graceful_exit(signum, frame) -> None:  # pragma: no cover - signal handler
    logger.info("Shutting down (signal %s)", signum)
    raise KeyboardInterrupt()


class AlarmRuntime:
    """Arms today's alarm with the local notifier and waits until it rings."""

    def __init__(self, config: Config):
        self.config = config
        self.tzinfo = local_timezone(config.timezone_name)
        self.fired = Event()
        self.notifier = LocalNotifier(
            check_interval=config.check_interval_ms / 1000.0,
            on_fired=self._on_fired,
        )
        self.controller = AlarmController(
            store=JsonFileStore(config.storage_path),
            notifier=self.notifier,
            permission=StaticPermission(granted=True),
            draw=make_random_source(config.random_seed),
            max_offset_cap=config.max_offset_cap,
        )

    def start(self) -> None:
        self.controller.load()
        self.notifier.start()
        now = now_local(self.tzinfo)
        kind = profile_kind_for(now.date())
        instance = self.controller.set_alarm(kind, now)
        logger.info(
            "Target %s, alarm rings %s min early at %s (UTC%s)",
            instance.target_time,
            instance.offset_minutes,
            format_fire_time(instance.fire_at, now),
            format_tz_offset(self.tzinfo),
        )
        self.log_stats(now)

    def shutdown(self) -> None:
        self.controller.cancel_alarm()
        self.notifier.shutdown()

    def log_stats(self, now: datetime) -> None:
        logger.info(
            "Saved this week: %s min, all time: %s min",
            self.controller.weekly_saved(now),
            self.controller.total_saved,
        )
        for record in self.controller.recent_history(self.config.history_preview):
            logger.info("  %s  +%s min (target %s)", record.date.isoformat(), record.saved_minutes, record.target_time)

    def _on_fired(self, delivery_id: str, payload: dict, fired_at: datetime) -> None:
        self.controller.on_notification_fired(delivery_id, payload, fired_at)
        self.log_stats(fired_at)
        self.fired.set()


def main() -> None:
    signal.signal(signal.SIGINT, graceful_exit)
    config = load_config()
    setup_logging(config.log_level, config.log_dir)
    logger.info("Starting lucky alarm (storage=%s)", config.storage_path)

    runtime = AlarmRuntime(config)
    try:
        runtime.start()
    except LuckyAlarmError as exc:
        logger.error("Could not set alarm: %s", exc)
        runtime.shutdown()
        return
    try:
        while not runtime.fired.wait(0.5):
            pass
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        runtime.shutdown()


if __name__ == "__main__":
    main()
