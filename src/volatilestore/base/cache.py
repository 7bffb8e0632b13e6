"""Abstract cache interface.

This module defines the contract that cache backends implement. A backend
stores values under string keys with an optional time-to-live and reports
whether it can operate in the current environment.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class Cache(ABC):
    """Abstract base class for cache backends.

    Examples:
        Create a custom backend (minimal implementation):
        >>> class NullCache(Cache):
        ...     def fetch(self, key, ttl=None):
        ...         return MISS
        ...
        ...     def store(self, key, value, ttl=None):
        ...         return False
        ...
        ...     def supported(self):
        ...         return True
    """

    @abstractmethod
    def fetch(self, key: str, ttl: Optional[int] = None) -> Any:
        """Fetch a value.

        Args:
            key: Cache key
            ttl: Accepted for interface symmetry; the stored expiry governs

        Returns:
            The stored value, or the backend's miss sentinel
        """
        pass

    @abstractmethod
    def store(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Store a value.

        Args:
            key: Cache key
            value: Value to store
            ttl: Time-to-live in seconds (None = never expires)

        Returns:
            True if the value was written
        """
        pass

    @abstractmethod
    def supported(self) -> bool:
        """Check whether the backend can be used in this environment."""
        pass


class CacheError(Exception):
    """Base exception for cache-related errors."""

    pass
