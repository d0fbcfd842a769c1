"""
Abstract local cache interface.

The cache is a durable key-value mirror of the client's in-memory state:
task snapshot, pending-operation log, sort preference and auth session.
"""

from abc import ABC, abstractmethod
from typing import Any


# Storage keys
TASKS_KEY = "tasks_cache"
PENDING_OPS_KEY = "tasks_pending_ops"
SORT_KEY = "tasks_sort_order"
TOKEN_KEY = "auth_token"
USER_KEY = "auth_user"


class CacheAdapter(ABC):
    """
    Abstract base class for cache adapters.

    Implementations must support:
    - Connection lifecycle (connect, close)
    - JSON-serializable values stored under string keys (get, set, delete, keys)
    - Write-through semantics: a completed set() survives a restart
    """

    @abstractmethod
    async def connect(self) -> None:
        """Open the underlying storage."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying storage."""
        pass

    @abstractmethod
    async def get(self, key: str, default: Any = None) -> Any:
        """
        Read a value.

        Args:
            key: Storage key
            default: Returned when the key is absent

        Returns:
            The decoded value or default
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """
        Write a value, replacing any previous one.

        Args:
            key: Storage key
            value: JSON-serializable value
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Remove a value.

        Returns:
            True if the key existed
        """
        pass

    @abstractmethod
    async def keys(self) -> list[str]:
        """List stored keys."""
        pass

    @property
    @abstractmethod
    def is_durable(self) -> bool:
        """Does this adapter survive process restarts?"""
        pass
