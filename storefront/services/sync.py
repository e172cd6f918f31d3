"""
Menu Sync Service

The data-access layer the HTTP surface and the worker talk to. Every
operation tries the remote document store once and, when it reports a
failure, performs the same operation against the local store. Callers
get the same answer shape either way; only check_access() reveals which
side is reachable.

Reads that succeed remotely are written through to the local store
(cache_snapshot), so the fallback holds the last remote state.

Usage:
    service = MenuSyncService(remote, local, settings)

    item_id = await service.menu_items.create(draft.to_create_document())
    await service.toggle_availability(item_id, False)

    subscription = service.categories.subscribe(on_categories)
    ...
    subscription.unsubscribe()

Author: Khalil Bannouri
Version: 1.0.0
"""

import copy
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Iterable, Optional, Type, TypeVar, Union

from pydantic import ValidationError as SchemaError

from storefront.core.config import Settings
from storefront.exceptions import SyncPartialFailure
from storefront.schemas import Category, DocumentModel, MenuItem
from storefront.services.defaults import DEFAULT_CATEGORIES, DEFAULT_MENU_ITEMS
from storefront.services.local.base import BaseLocalStore
from storefront.services.remote.base import (
    BaseRemoteStore,
    Document,
    RESERVED_KEYS,
    RemoteResult,
    Unsubscribe,
    strip_reserved,
    utc_now,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=DocumentModel)
LocalIdFactory = Callable[[Document, set], str]


# =============================================================================
# LOCAL IDENTIFIERS
# =============================================================================

def time_based_id(document: Document, existing: set) -> str:
    """Millisecond timestamp, bumped until it is unused locally."""
    candidate = int(time.time() * 1000)
    while str(candidate) in existing:
        candidate += 1
    return str(candidate)


def category_slug_id(document: Document, existing: set) -> str:
    """Lower-cased category name with whitespace runs turned into hyphens."""
    return re.sub(r"\s+", "-", str(document.get("name", "")).lower())


# =============================================================================
# RESULTS
# =============================================================================

class Subscription:
    """
    Handle returned by subscribe().

    unsubscribe() stops the remote feed the first time and does nothing
    afterwards. Handles from the local fallback have no feed to stop.
    """

    def __init__(self, stop: Optional[Unsubscribe] = None):
        self._stop = stop
        self.live = stop is not None

    @property
    def active(self) -> bool:
        return self._stop is not None

    def _attach(self, stop: Unsubscribe) -> None:
        self._stop = stop
        self.live = True

    def _detach(self) -> None:
        self._stop = None

    def unsubscribe(self) -> None:
        stop, self._stop = self._stop, None
        if stop is not None:
            stop()

    __call__ = unsubscribe


@dataclass
class SyncResult:
    """
    Outcome of replaying local records to the remote store.

    Attributes:
        success: False only when the sync could not run at all
        synced: "collection/id" of every record created remotely
        failed: "collection/id" of every record that could not be replayed
        error_message: Why the sync could not run
    """
    success: bool = True
    synced: list = field(default_factory=list)
    failed: list = field(default_factory=list)
    error_message: Optional[str] = None

    def __bool__(self) -> bool:
        return self.success

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "synced": list(self.synced),
            "failed": list(self.failed),
            "error_message": self.error_message,
        }


# =============================================================================
# PER-COLLECTION FACADE
# =============================================================================

class CollectionSync(Generic[ModelT]):
    """Remote-first CRUD and subscriptions for one collection."""

    def __init__(
        self,
        *,
        name: str,
        model: Type[ModelT],
        remote: BaseRemoteStore,
        local: BaseLocalStore,
        local_key: str,
        descending: bool,
        defaults: Iterable[Document],
        make_local_id: LocalIdFactory,
    ):
        self.name = name
        self.model = model
        self.local_key = local_key
        self.descending = descending
        self._remote = remote
        self._local = local
        self._defaults = [dict(doc) for doc in defaults]
        self._make_local_id = make_local_id

    # -------------------------------------------------------------------------
    # conversions
    # -------------------------------------------------------------------------

    def _to_models(self, documents: Iterable[Document]) -> list:
        records = []
        for document in documents:
            try:
                records.append(self.model.model_validate(document))
            except SchemaError as e:
                logger.warning(f"Skipping malformed {self.name} document {document.get('id')!r}: {e}")
        return records

    def _as_document(self, record: Union[ModelT, Document]) -> Document:
        if isinstance(record, DocumentModel):
            record = record.to_document()
        return strip_reserved(record)

    async def _guarded(self, operation: str, call: Callable[..., Awaitable[RemoteResult]], *args, **kwargs) -> RemoteResult:
        """Await an adapter call; anything it raises becomes a failed result."""
        try:
            return await call(*args, **kwargs)
        except Exception as e:
            logger.warning(f"Remote {operation} on {self.name} raised {type(e).__name__}: {e}")
            return RemoteResult.failure(f"{type(e).__name__}: {e}", error_code="error")

    def _as_changes(self, changes: Union[ModelT, Document]) -> Document:
        if isinstance(changes, DocumentModel):
            changes = changes.model_dump(by_alias=True, mode="json", exclude_unset=True)
        converted = {self.model.document_key(key): value for key, value in changes.items()}
        return {k: v for k, v in converted.items() if k not in RESERVED_KEYS}

    # -------------------------------------------------------------------------
    # local side
    # -------------------------------------------------------------------------

    def local_documents(self) -> list[Document]:
        return self._local.load_list(self.local_key) or []

    def local_snapshot(self, seed: bool = True) -> list:
        """
        Records held locally.

        Args:
            seed: Store and return the built-in defaults when empty
        """
        documents = self.local_documents()
        if not documents and seed:
            documents = copy.deepcopy(self._defaults)
            self._local.save(self.local_key, documents)
        return self._to_models(documents)

    def is_untouched_default(self, document: Document) -> bool:
        """True for a seeded record that was never edited locally."""
        return any(document == default for default in self._defaults)

    def cache_snapshot(self, documents: list[Document]) -> None:
        """Write a remote snapshot through to the local store."""
        self._local.save(self.local_key, list(documents))

    # -------------------------------------------------------------------------
    # operations
    # -------------------------------------------------------------------------

    async def create(self, record: Union[ModelT, Document]) -> str:
        """
        Store a new record.

        Returns:
            str: Identifier assigned by the remote store, or generated
                locally when the remote store is unavailable
        """
        document = self._as_document(record)
        result = await self._guarded("create", self._remote.create, self.name, document)
        if result.success:
            logger.info(f"Created {self.name}/{result.value}")
            return result.value

        logger.info(f"Remote create on {self.name} failed ({result.error_message}), using local store")
        existing = self.local_documents()
        new_id = self._make_local_id(document, {doc.get("id") for doc in existing})
        now = utc_now().isoformat()
        new_document = {**document, "id": new_id, "createdAt": now, "updatedAt": now}
        kept = [doc for doc in existing if doc.get("id") != new_id]
        self._local.save(self.local_key, kept + [new_document])
        return new_id

    async def update(self, record_id: str, changes: Union[ModelT, Document]) -> None:
        """Merge changes into a record; unspecified fields are left alone."""
        document_changes = self._as_changes(changes)
        result = await self._guarded("update", self._remote.update, self.name, record_id, document_changes)
        if result.success:
            logger.info(f"Updated {self.name}/{record_id}")
            return

        logger.info(f"Remote update on {self.name}/{record_id} failed ({result.error_message}), using local store")
        documents = self.local_documents()
        now = utc_now().isoformat()
        found = False
        for index, document in enumerate(documents):
            if document.get("id") == record_id:
                documents[index] = {**document, **document_changes, "updatedAt": now}
                found = True
        if not found:
            logger.debug(f"No local {self.name} record {record_id} to update")
            return
        self._local.save(self.local_key, documents)

    async def delete(self, record_id: str) -> None:
        """Remove a record. Missing records are not an error."""
        result = await self._guarded("delete", self._remote.delete, self.name, record_id)
        if result.success:
            logger.info(f"Deleted {self.name}/{record_id}")
            return

        logger.info(f"Remote delete on {self.name}/{record_id} failed ({result.error_message}), using local store")
        documents = self.local_documents()
        remaining = [doc for doc in documents if doc.get("id") != record_id]
        if len(remaining) != len(documents):
            self._local.save(self.local_key, remaining)

    async def list_records(self) -> list:
        """Ordered remote read, or the (seeded) local snapshot."""
        result = await self._guarded("list", self._remote.list_documents, self.name, descending=self.descending)
        if result.success:
            self.cache_snapshot(result.value)
            return self._to_models(result.value)

        logger.info(f"Remote read of {self.name} failed ({result.error_message}), using local store")
        return self.local_snapshot()

    def subscribe(self, callback: Callable[[list], Any]) -> Subscription:
        """
        Deliver the full collection to callback now and after every change.

        Remote snapshots are cached locally before callback runs. When the
        feed cannot be established, or breaks later, callback receives the
        local snapshot once and no further updates.
        """
        subscription = Subscription()

        def on_snapshot(documents: list[Document]) -> None:
            self.cache_snapshot(documents)
            callback(self._to_models(documents))

        def on_error(error: Exception) -> None:
            logger.info(f"Change feed on {self.name} failed ({error}), using local store")
            subscription._detach()
            callback(self.local_snapshot())

        try:
            result = self._remote.subscribe(self.name, self.descending, on_snapshot, on_error)
        except Exception as e:
            result = RemoteResult.failure(f"{type(e).__name__}: {e}", error_code="error")
        if not result.success:
            logger.info(f"Subscription to {self.name} failed ({result.error_message}), using local store")
            callback(self.local_snapshot())
            return subscription

        subscription._attach(result.value)
        return subscription

    async def replay_missing(self, outcome: SyncResult) -> bool:
        """
        Create remotely every local record whose id the remote lacks.

        Local ids are kept so that a second replay finds nothing to do.
        A record that fails is recorded in outcome and the rest carry on.
        Seeded records that were never edited stay local.

        Returns:
            bool: False if the remote snapshot could not be read
        """
        pending = self.local_documents()
        remote = await self._guarded("list", self._remote.list_documents, self.name, descending=self.descending)
        if not remote.success:
            logger.warning(f"Sync of {self.name} aborted: {remote.error_message}")
            return False

        remote_ids = {doc.get("id") for doc in remote.value}
        failed_documents = []
        for document in pending:
            record_id = document.get("id")
            if not record_id or record_id in remote_ids:
                continue
            if self.is_untouched_default(document):
                logger.debug(f"Sync: skipping built-in {self.name}/{record_id}")
                continue
            created = await self._guarded("create", self._remote.create, self.name, document, doc_id=record_id)
            if created.success:
                outcome.synced.append(f"{self.name}/{record_id}")
                continue
            failure = SyncPartialFailure(self.name, record_id, created.error_message or "unknown error")
            logger.warning(f"Sync record failed: {failure}")
            outcome.failed.append(f"{self.name}/{record_id}")
            failed_documents.append(document)

        # Live feeds may have replaced the local copy with the remote one
        if failed_documents:
            current = self.local_documents()
            current_ids = {doc.get("id") for doc in current}
            missing = [doc for doc in failed_documents if doc.get("id") not in current_ids]
            if missing:
                self._local.save(self.local_key, current + missing)
        return True


# =============================================================================
# SERVICE
# =============================================================================

class MenuSyncService:
    """
    Data-access facade over the remote and local stores.

    Attributes:
        menu_items: Menu items, newest first
        categories: Categories, oldest first
    """

    MENU_ITEMS = "menuItems"
    CATEGORIES = "categories"

    def __init__(self, remote: BaseRemoteStore, local: BaseLocalStore, settings: Settings):
        self.remote = remote
        self.local = local
        self.menu_items: CollectionSync[MenuItem] = CollectionSync(
            name=self.MENU_ITEMS,
            model=MenuItem,
            remote=remote,
            local=local,
            local_key=settings.menu_items_key,
            descending=True,
            defaults=DEFAULT_MENU_ITEMS,
            make_local_id=time_based_id,
        )
        self.categories: CollectionSync[Category] = CollectionSync(
            name=self.CATEGORIES,
            model=Category,
            remote=remote,
            local=local,
            local_key=settings.categories_key,
            descending=False,
            defaults=DEFAULT_CATEGORIES,
            make_local_id=category_slug_id,
        )

    async def check_access(self) -> bool:
        """
        Check whether the remote store is reachable.

        Never raises; any error counts as unreachable.
        """
        try:
            reachable = await self.remote.health_check()
        except Exception as e:
            logger.info(f"Remote access check failed: {e}")
            return False
        return bool(reachable)

    async def toggle_availability(self, item_id: str, is_available: bool) -> None:
        await self.menu_items.update(item_id, {"isAvailable": is_available})

    async def mark_sold_out(self, item_id: str) -> None:
        await self.toggle_availability(item_id, False)

    async def initialize_default_categories(self) -> None:
        """Create the built-in categories when none exist."""
        if await self.categories.list_records():
            return
        for category in DEFAULT_CATEGORIES:
            await self.categories.create({k: v for k, v in category.items() if k != "id"})

    async def sync_local_to_remote(self) -> SyncResult:
        """
        Replay locally created records to the remote store.

        Categories go first so items find their category on arrival.
        """
        if not await self.check_access():
            logger.info("Sync skipped: remote store unreachable")
            return SyncResult(success=False, error_message="Remote store unreachable")

        outcome = SyncResult()
        for collection in (self.categories, self.menu_items):
            if not await collection.replay_missing(outcome):
                outcome.success = False
                outcome.error_message = f"Could not read remote {collection.name}"
                break

        logger.info(
            f"Sync finished: {len(outcome.synced)} synced, "
            f"{len(outcome.failed)} failed, success={outcome.success}"
        )
        return outcome
