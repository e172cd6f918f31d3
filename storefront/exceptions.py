"""
Storefront Exceptions

Error taxonomy shared by the data-access layer, the cart and the
HTTP surface.

    - RemoteUnavailable: the remote document store could not serve a call.
      Adapters turn it into a failed RemoteResult; it never reaches callers
      of the sync service.
    - ValidationError: a menu form failed a rule. Raised before any store
      is touched and reported to the user as a single message.
    - SerializationError: local storage could not be read or written.
      Logged and swallowed by the local store.
    - SyncPartialFailure: one record could not be replayed during a sync.
      Recorded in the sync result, never aborts the sync.

Author: Khalil Bannouri
Version: 1.0.0
"""

from typing import Optional


class StorefrontError(Exception):
    """Base class for all storefront errors."""


class RemoteUnavailable(StorefrontError):
    """The remote document store is unreachable or rejected the call."""

    def __init__(self, message: str = "Remote store unavailable", operation: Optional[str] = None):
        self.operation = operation
        super().__init__(message)


class ValidationError(StorefrontError):
    """A single failed form rule."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"field": self.field, "message": self.message}


class SerializationError(StorefrontError):
    """Local storage content could not be encoded, decoded or written."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"{key}: {message}")


class SyncPartialFailure(StorefrontError):
    """A record could not be replayed to the remote store."""

    def __init__(self, collection: str, record_id: str, message: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"{collection}/{record_id}: {message}")
