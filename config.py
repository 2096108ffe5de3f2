import logging
import logging.handlers
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from lucky_alarm.models import DEFAULT_MAX_OFFSET_CAP, MINUTES_PER_DAY


def _get_env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip() in {"1", "true", "True", "yes", "YES", "y"}


def _get_env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    try:
        return int(val)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc


def _get_env_optional_int(name: str) -> Optional[int]:
    val = os.getenv(name)
    if val is None or val == "":
        return None
    return _get_env_int(name, 0)


@dataclass
class Config:
    storage_path: Path
    max_offset_cap: int
    check_interval_ms: int
    random_seed: Optional[int]
    history_preview: int
    timezone_name: Optional[str]
    debug: bool
    log_level: str
    log_dir: Path


def load_config(env_path: Optional[Path] = None) -> Config:
    if env_path is None:
        env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    storage_path = Path(os.getenv("LUCKY_ALARM_STORAGE_PATH", "data/lucky_alarm.json"))
    max_offset_cap = _get_env_int("LUCKY_ALARM_MAX_OFFSET", DEFAULT_MAX_OFFSET_CAP)
    if not 1 <= max_offset_cap < MINUTES_PER_DAY:
        raise ValueError(f"LUCKY_ALARM_MAX_OFFSET must be between 1 and {MINUTES_PER_DAY - 1}")
    check_interval_ms = max(200, _get_env_int("LUCKY_ALARM_CHECK_INTERVAL_MS", 800))
    random_seed = _get_env_optional_int("LUCKY_ALARM_RANDOM_SEED")
    history_preview = _get_env_int("LUCKY_ALARM_HISTORY_PREVIEW", 7)
    timezone_name = os.getenv("LUCKY_ALARM_TIMEZONE") or None
    debug = _get_env_bool("DEBUG", False)
    log_level = os.getenv("LOG_LEVEL", "DEBUG" if debug else "INFO").upper()
    log_dir = Path(os.getenv("LOG_DIR", "logs"))

    return Config(
        storage_path=storage_path,
        max_offset_cap=max_offset_cap,
        check_interval_ms=check_interval_ms,
        random_seed=random_seed,
        history_preview=history_preview,
        timezone_name=timezone_name,
        debug=debug,
        log_level=log_level,
        log_dir=log_dir,
    )


def setup_logging(log_level: str = "INFO", log_dir: Path = Path("logs")) -> None:
    log_dir.mkdir(parents=True, exist_ok=True)

    log_path = log_dir / "lucky_alarm.log"
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        handlers=[file_handler, console_handler],
    )
