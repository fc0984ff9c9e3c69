# ==============================================================================
# Client Storage Abstract Base Class
# ==============================================================================
"""
Abstract interface for the capture agent's local key/value storage.

This is the page-side equivalent of browser local storage: a small,
persistent string store that survives page loads until it is cleared.

Implementations: FileClientStorage, MemoryClientStorage
"""

from abc import ABC, abstractmethod


class ClientStorage(ABC):
    """Persistent string key/value storage owned by the capture agent."""

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """
        Read a value.

        Returns:
            The stored string, or None if the key is absent
        """
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Persist a value under a key."""
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete a key if present."""
        ...
