"""
Local Store Abstract Base Class

Process-local key-value area used as the fallback when the remote
document store is unreachable, and as the only home of the cart.

Subclasses provide raw string access (get_raw/set_raw/delete_raw);
this class layers JSON serialization on top with the failure policy
every caller relies on:
    - save() never raises: encoding or write failures are logged
    - load() never raises: absent, unreadable or corrupt content is None

Author: Khalil Bannouri
Version: 1.0.0
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from storefront.exceptions import SerializationError

logger = logging.getLogger(__name__)


class BaseLocalStore(ABC):
    """
    Abstract base class for local stores.

    Example:
        >>> store = MemoryLocalStore()
        >>> store.save("restaurant_cart", [{"id": "1", "quantity": 2}])
        >>> store.load("restaurant_cart")
        [{'id': '1', 'quantity': 2}]
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend name (e.g. "file", "memory")."""
        pass

    @abstractmethod
    def get_raw(self, key: str) -> Optional[str]:
        """Return the stored string for key, or None if never written."""
        pass

    @abstractmethod
    def set_raw(self, key: str, value: str) -> None:
        """Overwrite the stored string for key."""
        pass

    @abstractmethod
    def delete_raw(self, key: str) -> None:
        """Forget key. Missing keys are ignored."""
        pass

    def save(self, key: str, value: Any) -> bool:
        """
        Serialize value and overwrite key.

        Returns:
            bool: True if the value was written
        """
        try:
            try:
                payload = json.dumps(value, ensure_ascii=False)
            except (TypeError, ValueError) as e:
                raise SerializationError(key, f"cannot encode value: {e}") from e
            try:
                self.set_raw(key, payload)
            except (OSError, UnicodeError) as e:
                raise SerializationError(key, f"cannot write value: {e}") from e
        except SerializationError as e:
            logger.error(f"Error saving to local store: {e}")
            return False
        return True

    def load(self, key: str) -> Optional[Any]:
        """
        Read and deserialize key.

        Returns:
            The stored value, or None when absent or unreadable
        """
        try:
            try:
                payload = self.get_raw(key)
            except (OSError, UnicodeError) as e:
                raise SerializationError(key, f"cannot read value: {e}") from e
            if payload is None:
                return None
            try:
                return json.loads(payload)
            except ValueError as e:
                raise SerializationError(key, f"corrupt content: {e}") from e
        except SerializationError as e:
            logger.error(f"Error reading from local store: {e}")
            return None

    def load_list(self, key: str) -> Optional[list]:
        """Like load(), but anything other than a list counts as absent."""
        value = self.load(key)
        if value is None:
            return None
        if not isinstance(value, list):
            logger.error(f"Error reading from local store: {key}: expected a list")
            return None
        return value
