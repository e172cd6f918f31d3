"""
Local Store Factory

Provides a single entry point for building the local fallback store.
The backend is selected by LOCAL_STORE_BACKEND:
    - file → FileLocalStore under DATA_DIRECTORY (default)
    - memory → MemoryLocalStore (nothing persisted)

Usage:
    from storefront.services.local import build_local_store

    store = build_local_store(settings)
    store.save(settings.cart_key, [])

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging

from storefront.core.config import LocalStoreBackend, Settings
from storefront.services.local.base import BaseLocalStore
from storefront.services.local.file import FileLocalStore
from storefront.services.local.memory import MemoryLocalStore

logger = logging.getLogger(__name__)


def build_local_store(settings: Settings) -> BaseLocalStore:
    """
    Build the configured local store.

    Args:
        settings: Application settings

    Returns:
        BaseLocalStore: A fresh local store instance
    """
    if settings.local_store_backend == LocalStoreBackend.MEMORY:
        logger.info("Local Store: Using MemoryLocalStore")
        return MemoryLocalStore()

    logger.info(f"Local Store: Using FileLocalStore ({settings.data_path})")
    return FileLocalStore(
        directory=settings.data_path,
        lock_timeout=settings.local_store_lock_timeout,
    )


__all__ = [
    "build_local_store",
    "BaseLocalStore",
    "FileLocalStore",
    "MemoryLocalStore",
]
