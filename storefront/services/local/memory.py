"""
In-Memory Local Store

Dict-backed local store for tests and throwaway sessions. Nothing
survives a restart.

Author: Khalil Bannouri
Version: 1.0.0
"""

import threading
from typing import Optional

from storefront.services.local.base import BaseLocalStore


class MemoryLocalStore(BaseLocalStore):
    """Local store kept in a dict, one lock for all keys."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    @property
    def backend_name(self) -> str:
        return "memory"

    def get_raw(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set_raw(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete_raw(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)
