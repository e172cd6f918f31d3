"""
Mock Remote Store Implementation

Simulates the remote document store in memory. Used in development mode
(ENV_MODE=development) and throughout the test suite to:
    - Run the storefront without a database
    - Exercise the local fallback by switching the store offline
    - Inject random failures and latency

Behavior:
    - Documents live in per-collection dicts, insertion ordered
    - Identifiers look like Firestore ids (20 hex chars)
    - Change feeds fire synchronously after every successful write
    - Going offline breaks every open feed through its error callback

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import itertools
import logging
import random
import uuid
from typing import Optional

from storefront.exceptions import RemoteUnavailable
from storefront.services.remote.base import (
    BaseRemoteStore,
    Document,
    ErrorCallback,
    RemoteResult,
    SnapshotCallback,
    Unsubscribe,
    strip_reserved,
    utc_now,
)

logger = logging.getLogger(__name__)


class _Feed:
    def __init__(self, descending: bool, on_snapshot: SnapshotCallback, on_error: ErrorCallback):
        self.descending = descending
        self.on_snapshot = on_snapshot
        self.on_error = on_error


class MockRemoteStore(BaseRemoteStore):
    """
    In-memory implementation of the remote store.

    Attributes:
        failure_rate: Probability of a simulated failure (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds
        online: When False every call fails

    Example:
        >>> store = MockRemoteStore()
        >>> store.set_online(False)
        >>> (await store.list_documents("menuItems")).success
        False
    """

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
        online: bool = True,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.online = online

        self._collections: dict[str, dict[str, Document]] = {}
        self._order: dict[tuple[str, str], int] = {}
        self._sequence = itertools.count()
        self._feeds: dict[str, list[_Feed]] = {}

        logger.info(
            f"MockRemoteStore initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={min_latency}-{max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "mock"

    def _generate_id(self) -> str:
        """Generate a Firestore-like document ID."""
        return uuid.uuid4().hex[:20]

    async def _simulate_latency(self) -> float:
        """
        Simulate network latency.

        Returns:
            float: Actual latency in milliseconds
        """
        if self.max_latency <= 0:
            return 0.0
        latency = random.uniform(self.min_latency, self.max_latency)
        await asyncio.sleep(latency)
        return latency * 1000

    def _should_fail(self) -> bool:
        """Determine if this request should simulate a failure."""
        return self.failure_rate > 0 and random.random() < self.failure_rate

    def _check(self, operation: str) -> None:
        if not self.online:
            raise RemoteUnavailable("Remote store is offline", operation=operation)
        if self._should_fail():
            raise RemoteUnavailable("Simulated remote failure", operation=operation)

    def set_online(self, online: bool) -> None:
        """
        Switch the simulated connection.

        Going offline breaks every open change feed.
        """
        self.online = online
        if online:
            return
        feeds = self._feeds
        self._feeds = {}
        for collection, listeners in feeds.items():
            for feed in listeners:
                logger.debug(f"Mock: breaking feed on {collection}")
                feed.on_error(RemoteUnavailable("Remote store went offline", operation="subscribe"))

    def _snapshot(self, collection: str, descending: bool) -> list[Document]:
        documents = self._collections.get(collection, {})
        ordered = sorted(
            documents.values(),
            key=lambda doc: (doc["createdAt"], self._order[(collection, doc["id"])]),
            reverse=descending,
        )
        return [dict(doc) for doc in ordered]

    def _notify(self, collection: str) -> None:
        for feed in list(self._feeds.get(collection, [])):
            feed.on_snapshot(self._snapshot(collection, feed.descending))

    async def create(
        self,
        collection: str,
        data: Document,
        doc_id: Optional[str] = None,
    ) -> RemoteResult[str]:
        latency_ms = await self._simulate_latency()
        try:
            self._check("create")
        except RemoteUnavailable as e:
            logger.debug(f"Mock: create on {collection} failed - {e}")
            return RemoteResult.failure(str(e), response_time_ms=latency_ms)

        new_id = doc_id or self._generate_id()
        now = utc_now().isoformat()
        document = {**strip_reserved(data), "id": new_id, "createdAt": now, "updatedAt": now}
        self._collections.setdefault(collection, {})[new_id] = document
        self._order[(collection, new_id)] = next(self._sequence)

        logger.debug(f"Mock: created {collection}/{new_id}")
        self._notify(collection)
        return RemoteResult.ok(new_id, response_time_ms=latency_ms)

    async def update(
        self,
        collection: str,
        doc_id: str,
        changes: Document,
    ) -> RemoteResult[None]:
        latency_ms = await self._simulate_latency()
        try:
            self._check("update")
        except RemoteUnavailable as e:
            logger.debug(f"Mock: update on {collection}/{doc_id} failed - {e}")
            return RemoteResult.failure(str(e), response_time_ms=latency_ms)

        documents = self._collections.get(collection, {})
        if doc_id not in documents:
            return RemoteResult.failure(
                f"No document {collection}/{doc_id}",
                error_code="not_found",
                response_time_ms=latency_ms,
            )

        documents[doc_id] = {
            **documents[doc_id],
            **strip_reserved(changes),
            "updatedAt": utc_now().isoformat(),
        }
        self._notify(collection)
        return RemoteResult.ok(response_time_ms=latency_ms)

    async def delete(self, collection: str, doc_id: str) -> RemoteResult[None]:
        latency_ms = await self._simulate_latency()
        try:
            self._check("delete")
        except RemoteUnavailable as e:
            logger.debug(f"Mock: delete on {collection}/{doc_id} failed - {e}")
            return RemoteResult.failure(str(e), response_time_ms=latency_ms)

        removed = self._collections.get(collection, {}).pop(doc_id, None)
        self._order.pop((collection, doc_id), None)
        if removed is not None:
            self._notify(collection)
        return RemoteResult.ok(response_time_ms=latency_ms)

    async def list_documents(self, collection: str, descending: bool = False) -> RemoteResult[list[Document]]:
        latency_ms = await self._simulate_latency()
        try:
            self._check("list_documents")
        except RemoteUnavailable as e:
            logger.debug(f"Mock: list_documents on {collection} failed - {e}")
            return RemoteResult.failure(str(e), response_time_ms=latency_ms)

        return RemoteResult.ok(self._snapshot(collection, descending), response_time_ms=latency_ms)

    def subscribe(
        self,
        collection: str,
        descending: bool,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> RemoteResult[Unsubscribe]:
        try:
            self._check("subscribe")
        except RemoteUnavailable as e:
            logger.debug(f"Mock: subscribe on {collection} failed - {e}")
            return RemoteResult.failure(str(e))

        feed = _Feed(descending, on_snapshot, on_error)
        self._feeds.setdefault(collection, []).append(feed)

        def unsubscribe() -> None:
            listeners = self._feeds.get(collection, [])
            if feed in listeners:
                listeners.remove(feed)

        on_snapshot(self._snapshot(collection, descending))
        return RemoteResult.ok(unsubscribe)

    async def health_check(self) -> bool:
        """Reachable unless offline or a simulated failure is rolled."""
        try:
            self._check("health_check")
        except RemoteUnavailable:
            return False
        logger.debug("Mock: Health check passed")
        return True

    def feed_count(self, collection: str) -> int:
        """Number of open change feeds on a collection."""
        return len(self._feeds.get(collection, []))
