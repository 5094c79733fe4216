"""
Client-side key/value storage.

Mirrors the Web Storage surface (string keys, string values) used for the
tab-scoped session storage and the profile-scoped local storage.
"""

import logging
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class StorageQuotaExceeded(Exception):
    """Raised when a write would push the storage past its byte quota."""


class KeyValueStorage:
    """Interface shared by the storage backends."""

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError

    def keys(self):
        raise NotImplementedError


class MemoryStorage(KeyValueStorage):
    """In-memory storage, optionally capped at ``quota_bytes``."""

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self._items: Dict[str, str] = {}
        self._lock = threading.RLock()

    def _size_with(self, key: str, value: str) -> int:
        size = sum(len(k) + len(v) for k, v in self._items.items() if k != key)
        return size + len(key) + len(value)

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"storage values must be str, got {type(value).__name__}")
        with self._lock:
            if self.quota_bytes is not None and self._size_with(key, value) > self.quota_bytes:
                raise StorageQuotaExceeded(
                    f"Setting '{key}' exceeds the storage quota of {self.quota_bytes} bytes"
                )
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def keys(self):
        with self._lock:
            return list(self._items.keys())

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


class FileStorage(KeyValueStorage):
    """Profile storage persisted as one file per key under ``directory``.

    Writes go to a temporary file that replaces the target, so a reader never
    observes a half-written value.
    """

    _SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _item_file(self, key: str) -> Path:
        return self.directory / f"{self._SAFE_KEY.sub('_', key)}.json"

    def get_item(self, key: str) -> Optional[str]:
        try:
            return self._item_file(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"storage values must be str, got {type(value).__name__}")
        target = self._item_file(key)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=".tmp_", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, target)
        except Exception:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def remove_item(self, key: str) -> None:
        self._item_file(key).unlink(missing_ok=True)

    def keys(self):
        return [p.stem for p in self.directory.glob("*.json") if not p.name.startswith(".tmp_")]
