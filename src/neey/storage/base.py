"""Abstract base class for key-value persistence backends.

This module defines the interface for local key-value storage.
The abstraction hides:
- Storage format and location (dict, SQLite file)
- Connection management
"""

from abc import ABC, abstractmethod
from typing import Any


class KeyValueStore(ABC):
    """Abstract string key-value store.

    Values are opaque strings; callers own their encoding.
    Supports async context manager protocol:
        async with store:
            await store.set("key", "value")
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the backend."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the backend gracefully."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value, or None when the key is unset."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``; a missing key is not an error."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""

    async def __aenter__(self) -> "KeyValueStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()
