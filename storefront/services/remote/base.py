"""
Remote Store Abstract Base Class

Defines the interface contract for the remote document store: named
collections of JSON documents with create, partial update, delete,
ordered list and a change feed.

Failures are values, not exceptions: every operation returns a
RemoteResult and the caller branches on `success`. Implementations
convert their own transport errors (RemoteUnavailable, SQLAlchemy
errors, ...) into a failed result at this boundary.

Design Pattern: Strategy Pattern
    - MockRemoteStore for development and tests
    - SqlRemoteStore for staging and production

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

Document = dict[str, Any]
SnapshotCallback = Callable[[list[Document]], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]

# Keys the store owns; callers cannot set them through create/update
RESERVED_KEYS = ("id", "createdAt", "updatedAt")


@dataclass
class RemoteResult(Generic[T]):
    """
    Standardized result from a remote store call.

    Attributes:
        success: Whether the store served the call
        value: Operation output (new id, documents, unsubscribe callable)
        error_message: Error description if the call failed
        error_code: Machine-readable error code
        response_time_ms: Time taken by the call
    """
    success: bool
    value: Optional[T] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0

    @classmethod
    def ok(cls, value: Optional[T] = None, response_time_ms: float = 0.0) -> "RemoteResult[T]":
        return cls(success=True, value=value, response_time_ms=response_time_ms)

    @classmethod
    def failure(
        cls,
        error_message: str,
        error_code: str = "unavailable",
        response_time_ms: float = 0.0,
    ) -> "RemoteResult[T]":
        return cls(
            success=False,
            error_message=error_message,
            error_code=error_code,
            response_time_ms=response_time_ms,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "error_message": self.error_message,
            "error_code": self.error_code,
            "response_time_ms": self.response_time_ms,
        }


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def strip_reserved(data: Document) -> Document:
    """Copy of data without the store-owned keys."""
    return {k: v for k, v in data.items() if k not in RESERVED_KEYS}


class BaseRemoteStore(ABC):
    """
    Abstract base class for remote document stores.

    Example:
        >>> store = MockRemoteStore()
        >>> result = await store.create("menuItems", {"name": "Osh", "price": 25000})
        >>> if result.success:
        ...     print(f"Stored as {result.value}")
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the store provider.

        Returns:
            str: Provider name (e.g., "mock", "sql")
        """
        pass

    @abstractmethod
    async def create(
        self,
        collection: str,
        data: Document,
        doc_id: Optional[str] = None,
    ) -> RemoteResult[str]:
        """
        Insert a document and stamp createdAt/updatedAt.

        Args:
            collection: Collection name (e.g. "menuItems")
            data: Document fields; reserved keys are ignored
            doc_id: Keep this identifier instead of assigning a new one

        Returns:
            RemoteResult: value is the document identifier
        """
        pass

    @abstractmethod
    async def update(
        self,
        collection: str,
        doc_id: str,
        changes: Document,
    ) -> RemoteResult[None]:
        """
        Merge changes into an existing document and refresh updatedAt.

        Fields not listed in changes are untouched. Updating a missing
        document is a failure with error_code "not_found".
        """
        pass

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> RemoteResult[None]:
        """Delete a document. Deleting a missing document succeeds."""
        pass

    @abstractmethod
    async def list_documents(self, collection: str, descending: bool = False) -> RemoteResult[list[Document]]:
        """
        Read a whole collection ordered by createdAt.

        Args:
            collection: Collection name
            descending: Newest first when True
        """
        pass

    @abstractmethod
    def subscribe(
        self,
        collection: str,
        descending: bool,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> RemoteResult[Unsubscribe]:
        """
        Register a change feed on a collection.

        on_snapshot receives the full ordered collection after every
        change, starting with the current contents. on_error is called
        at most once if the feed breaks after registration; no snapshot
        follows it.

        Returns:
            RemoteResult: value is a callable that stops the feed
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify connectivity with a lightweight read.

        Returns:
            bool: True if the store is reachable
        """
        pass

    async def close(self) -> None:
        """Release connections. Called once at application shutdown."""
        return None
