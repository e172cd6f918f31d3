"""
File-Backed Local Store with Concurrency Control

Keeps every key in its own JSON file under the data directory:

    data/restaurant_menu_items.json
    data/restaurant_menu_items.json.lock

Writers and readers of a key take the same file lock, and writes go
through a temp file plus rename, so a reader sees either the previous
or the new value, never a torn one. Last write wins.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Optional

from filelock import FileLock, Timeout

from storefront.exceptions import SerializationError
from storefront.services.local.base import BaseLocalStore

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class FileLocalStore(BaseLocalStore):
    """Thread- and process-safe local store on the filesystem."""

    def __init__(self, directory: Path, lock_timeout: float = 10):
        self.directory = Path(directory)
        self.lock_timeout = lock_timeout

    @property
    def backend_name(self) -> str:
        return "file"

    def _ensure_data_dir(self) -> None:
        """Create data directory if needed."""
        if not self.directory.exists():
            self.directory.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {self.directory}")

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise SerializationError(key, "invalid key")
        return self.directory / f"{key}.json"

    def _lock(self, path: Path) -> FileLock:
        return FileLock(str(path) + ".lock", timeout=self.lock_timeout)

    def get_raw(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with self._lock(path):
                if not path.exists():
                    return None
                return path.read_text(encoding="utf-8")
        except Timeout:
            logger.error(f"Lock timeout ({self.lock_timeout}s) reading {key}")
            raise SerializationError(key, "lock timeout")

    def set_raw(self, key: str, value: str) -> None:
        self._ensure_data_dir()
        path = self._path(key)
        try:
            with self._lock(path):
                fd, tmp_name = tempfile.mkstemp(dir=str(self.directory), prefix=f".{key}.", suffix=".tmp")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as handle:
                        handle.write(value)
                    os.replace(tmp_name, path)
                except BaseException:
                    if os.path.exists(tmp_name):
                        os.unlink(tmp_name)
                    raise
            logger.debug(f"Local store key {key} written")
        except Timeout:
            logger.error(f"Lock timeout ({self.lock_timeout}s) writing {key}")
            raise SerializationError(key, "lock timeout")

    def delete_raw(self, key: str) -> None:
        path = self._path(key)
        try:
            with self._lock(path):
                if path.exists():
                    path.unlink()
        except Timeout:
            logger.error(f"Lock timeout ({self.lock_timeout}s) deleting {key}")
            raise SerializationError(key, "lock timeout")
