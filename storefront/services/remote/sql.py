"""
SQL Remote Store Implementation

Production implementation of the remote document store on top of an
async SQLAlchemy engine (PostgreSQL via psycopg in production).
Used when ENV_MODE=production or ENV_MODE=staging.

Change feeds are served in process: after every successful write the
store reads the collection once and pushes the full snapshot to every
listener of that collection. Registration schedules the initial
snapshot on the running event loop, so subscribe() needs one.

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
import time
import uuid
from typing import Optional

from sqlalchemy import delete, func, select, text
from sqlalchemy.exc import SQLAlchemyError

from storefront.database import DocumentDatabase
from storefront.models import StoredDocument
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

# Errors that mean "the store could not serve this call"
STORE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


class _Feed:
    def __init__(self, descending: bool, on_snapshot: SnapshotCallback, on_error: ErrorCallback):
        self.descending = descending
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True


class SqlRemoteStore(BaseRemoteStore):
    """
    Document store persisted in the `documents` table.

    Example:
        >>> store = SqlRemoteStore(DocumentDatabase(settings.database_url))
        >>> result = await store.list_documents("categories")
        >>> print(result.success)
    """

    def __init__(self, database: DocumentDatabase):
        self._db = database
        self._feeds: dict[str, list[_Feed]] = {}
        self._tasks: set[asyncio.Task] = set()

        logger.info("SqlRemoteStore initialized")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "sql"

    def _elapsed_ms(self, start: float) -> float:
        return round((time.perf_counter() - start) * 1000, 2)

    async def _fetch(self, collection: str, descending: bool) -> list[Document]:
        await self._db.init()
        order = (StoredDocument.created_at, StoredDocument.sequence)
        if descending:
            order = (StoredDocument.created_at.desc(), StoredDocument.sequence.desc())
        async with self._db.session() as session:
            result = await session.execute(
                select(StoredDocument)
                .where(StoredDocument.collection == collection)
                .order_by(*order)
            )
            return [row.to_document() for row in result.scalars().all()]

    async def _broadcast(self, collection: str) -> None:
        feeds = [feed for feed in self._feeds.get(collection, []) if feed.active]
        if not feeds:
            return
        try:
            ascending = await self._fetch(collection, descending=False)
        except STORE_ERRORS as e:
            logger.warning(f"SQL store: change feed on {collection} broke - {e}")
            self._break_feeds(collection, e)
            return
        for feed in feeds:
            if feed.active:
                snapshot = list(reversed(ascending)) if feed.descending else list(ascending)
                feed.on_snapshot(snapshot)

    def _break_feeds(self, collection: str, error: Exception) -> None:
        for feed in self._feeds.pop(collection, []):
            if feed.active:
                feed.active = False
                feed.on_error(error)

    async def create(
        self,
        collection: str,
        data: Document,
        doc_id: Optional[str] = None,
    ) -> RemoteResult[str]:
        start = time.perf_counter()
        new_id = doc_id or uuid.uuid4().hex[:20]
        try:
            await self._db.init()
            async with self._db.session() as session:
                sequence = await session.scalar(
                    select(func.coalesce(func.max(StoredDocument.sequence), 0))
                )
                now = utc_now()
                row = await session.get(StoredDocument, (collection, new_id))
                if row is None:
                    row = StoredDocument(collection=collection, id=new_id)
                    session.add(row)
                row.data = strip_reserved(data)
                row.created_at = now
                row.updated_at = now
                row.sequence = (sequence or 0) + 1
                await session.commit()
        except STORE_ERRORS as e:
            logger.warning(f"SQL store: create on {collection} failed - {e}")
            return RemoteResult.failure(str(e), response_time_ms=self._elapsed_ms(start))

        logger.debug(f"SQL store: created {collection}/{new_id}")
        await self._broadcast(collection)
        return RemoteResult.ok(new_id, response_time_ms=self._elapsed_ms(start))

    async def update(
        self,
        collection: str,
        doc_id: str,
        changes: Document,
    ) -> RemoteResult[None]:
        start = time.perf_counter()
        try:
            await self._db.init()
            async with self._db.session() as session:
                row = await session.get(StoredDocument, (collection, doc_id))
                if row is None:
                    return RemoteResult.failure(
                        f"No document {collection}/{doc_id}",
                        error_code="not_found",
                        response_time_ms=self._elapsed_ms(start),
                    )
                # Reassign so the JSON column registers the change
                row.data = {**(row.data or {}), **strip_reserved(changes)}
                row.updated_at = utc_now()
                await session.commit()
        except STORE_ERRORS as e:
            logger.warning(f"SQL store: update on {collection}/{doc_id} failed - {e}")
            return RemoteResult.failure(str(e), response_time_ms=self._elapsed_ms(start))

        await self._broadcast(collection)
        return RemoteResult.ok(response_time_ms=self._elapsed_ms(start))

    async def delete(self, collection: str, doc_id: str) -> RemoteResult[None]:
        start = time.perf_counter()
        try:
            await self._db.init()
            async with self._db.session() as session:
                await session.execute(
                    delete(StoredDocument).where(
                        StoredDocument.collection == collection,
                        StoredDocument.id == doc_id,
                    )
                )
                await session.commit()
        except STORE_ERRORS as e:
            logger.warning(f"SQL store: delete on {collection}/{doc_id} failed - {e}")
            return RemoteResult.failure(str(e), response_time_ms=self._elapsed_ms(start))

        await self._broadcast(collection)
        return RemoteResult.ok(response_time_ms=self._elapsed_ms(start))

    async def list_documents(self, collection: str, descending: bool = False) -> RemoteResult[list[Document]]:
        start = time.perf_counter()
        try:
            documents = await self._fetch(collection, descending)
        except STORE_ERRORS as e:
            logger.warning(f"SQL store: list on {collection} failed - {e}")
            return RemoteResult.failure(str(e), response_time_ms=self._elapsed_ms(start))
        return RemoteResult.ok(documents, response_time_ms=self._elapsed_ms(start))

    def subscribe(
        self,
        collection: str,
        descending: bool,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> RemoteResult[Unsubscribe]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            return RemoteResult.failure(f"No running event loop: {e}")

        feed = _Feed(descending, on_snapshot, on_error)
        self._feeds.setdefault(collection, []).append(feed)

        async def initial_snapshot() -> None:
            try:
                documents = await self._fetch(collection, descending)
            except STORE_ERRORS as e:
                logger.warning(f"SQL store: subscribe on {collection} failed - {e}")
                if feed.active:
                    feed.active = False
                    self._remove_feed(collection, feed)
                    feed.on_error(e)
                return
            if feed.active:
                feed.on_snapshot(documents)

        task = loop.create_task(initial_snapshot())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        def unsubscribe() -> None:
            feed.active = False
            self._remove_feed(collection, feed)

        return RemoteResult.ok(unsubscribe)

    def _remove_feed(self, collection: str, feed: _Feed) -> None:
        listeners = self._feeds.get(collection, [])
        if feed in listeners:
            listeners.remove(feed)

    async def health_check(self) -> bool:
        """Run SELECT 1 against the database."""
        try:
            async with self._db.session() as session:
                await session.execute(text("SELECT 1"))
        except STORE_ERRORS as e:
            logger.warning(f"SQL store: health check failed - {e}")
            return False
        return True

    async def close(self) -> None:
        for feeds in self._feeds.values():
            for feed in feeds:
                feed.active = False
        self._feeds.clear()
        await self._db.dispose()
        logger.info("SqlRemoteStore closed")
