from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Protocol

from .errors import PersistenceFailure
from .models import AppData, default_app_data

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def load(self) -> Optional[str]: ...

    def save(self, blob: str) -> None: ...


class JsonFileStore:
    """Keeps the whole app blob in a single UTF-8 JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[str]:
        if not self.path.exists():
            return None
        try:
            with self.path.open("r", encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceFailure(f"Failed to read {self.path}: {exc}") from exc

    def save(self, blob: str) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as f:
                f.write(blob)
            tmp_path.replace(self.path)
        except OSError as exc:
            raise PersistenceFailure(f"Failed to write {self.path}: {exc}") from exc


class MemoryStore:
    def __init__(self, blob: Optional[str] = None):
        self.blob = blob

    def load(self) -> Optional[str]:
        return self.blob

    def save(self, blob: str) -> None:
        self.blob = blob


def encode_app_data(data: AppData) -> str:
    return json.dumps(data.to_dict(), ensure_ascii=False, indent=2)


def decode_app_data(blob: str) -> AppData:
    payload = json.loads(blob)
    if not isinstance(payload, dict):
        raise ValueError("App blob must be a JSON object")
    return AppData.from_dict(payload)


def load_app_data(store: KeyValueStore) -> AppData:
    """Read the stored blob, falling back to defaults when absent or unreadable."""
    try:
        blob = store.load()
    except PersistenceFailure as exc:
        logger.error("Failed to load app data: %s", exc)
        return default_app_data()
    if not blob:
        logger.info("No stored app data, starting with defaults")
        return default_app_data()
    try:
        data = decode_app_data(blob)
    except (ValueError, TypeError, KeyError, AttributeError) as exc:
        logger.error("Stored app data is corrupted, starting with defaults: %s", exc)
        return default_app_data()
    logger.info("Loaded %s history records (total saved %s min)", len(data.history), data.total_saved)
    return data


def save_app_data(store: KeyValueStore, data: AppData) -> None:
    blob = encode_app_data(data)
    try:
        store.save(blob)
    except PersistenceFailure:
        raise
    except Exception as exc:
        raise PersistenceFailure(f"Store rejected app data: {exc}") from exc
