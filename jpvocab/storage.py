"""Durable local key-value storage backed by a single JSON file."""

import fcntl
import json
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from jpvocab.logger import get_logger


class LocalStorage:
    """String key -> string value store, persisted on every write."""

    def __init__(self, storage_path: Path):
        """
        Initialize local storage.

        Args:
            storage_path: Path to the storage JSON file
        """
        self.storage_path = storage_path
        self._lock_path = storage_path.with_suffix(".lock")

    @contextmanager
    def _file_lock(self):
        """Context manager for file locking using fcntl."""
        self._lock_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._lock_path, "w") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _read_all(self) -> dict[str, str]:
        if not self.storage_path.exists():
            return {}
        try:
            with open(self.storage_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            get_logger().warning(f"  Local storage is corrupt, starting empty: {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return data

    def _write_all(self, data: dict[str, str]) -> None:
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.storage_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value for key, or None."""
        with self._file_lock():
            return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._file_lock():
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    def remove_item(self, key: str) -> None:
        with self._file_lock():
            data = self._read_all()
            if key in data:
                del data[key]
                self._write_all(data)

    def keys(self) -> list[str]:
        with self._file_lock():
            return list(self._read_all())
