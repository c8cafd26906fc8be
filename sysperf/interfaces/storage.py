"""
Key-value store interface definitions for sysperf.

Run summaries are persisted through this contract. The store is a black box
to the rest of the package: values go in as JSON-serializable documents and
come back out the same way.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class KeyValueStoreInterface(ABC):
    """Interface for key-value persistence backends."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the value stored under ``key``, or None if absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove ``key``.

        Returns:
            True if the key existed.
        """
        pass
