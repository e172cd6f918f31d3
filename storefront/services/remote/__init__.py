"""
Remote Store Factory

Provides a single entry point for building the remote document store.
The rest of the application only sees BaseRemoteStore and never needs
to know which implementation is active.

Usage:
    from storefront.services.remote import build_remote_store

    remote = build_remote_store(settings)
    result = await remote.list_documents("menuItems", descending=True)

Environment Switching:
    - ENV_MODE=development → MockRemoteStore (in memory)
    - ENV_MODE=staging → SqlRemoteStore
    - ENV_MODE=production → SqlRemoteStore

The store is built once at application startup and handed to the sync
service; there is no module-level instance.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging

from storefront.core.config import Settings
from storefront.database import DocumentDatabase
from storefront.services.remote.base import (
    BaseRemoteStore,
    RemoteResult,
)
from storefront.services.remote.mock import MockRemoteStore
from storefront.services.remote.sql import SqlRemoteStore

logger = logging.getLogger(__name__)


def build_remote_store(settings: Settings) -> BaseRemoteStore:
    """
    Build the configured remote store.

    Args:
        settings: Application settings

    Returns:
        BaseRemoteStore: MockRemoteStore or SqlRemoteStore
    """
    if settings.use_sql_store:
        logger.info(
            f"Remote Store: Using SqlRemoteStore "
            f"({settings.env_mode.value} mode)"
        )
        return SqlRemoteStore(DocumentDatabase(settings.database_url, echo=settings.database_echo))

    logger.info("Remote Store: Using MockRemoteStore (development mode)")
    return MockRemoteStore(
        failure_rate=settings.mock_failure_rate,
        min_latency=settings.mock_min_latency,
        max_latency=settings.mock_max_latency,
    )


__all__ = [
    "build_remote_store",
    "BaseRemoteStore",
    "RemoteResult",
    "MockRemoteStore",
    "SqlRemoteStore",
]
