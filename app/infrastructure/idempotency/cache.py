"""Idempotency cache abstract base class."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class IdempotencyCache(ABC):
    """Abstract base class for idempotency cache implementations.

    Remembers the response of a submission under its idempotency key so a
    repeated submission returns the original notification instead of
    creating a second one.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Get cached response for idempotency key.

        Args:
            key: Idempotency key built by IdempotencyKeyBuilder.

        Returns:
            Cached response dict or None if not found/expired.
        """
        pass

    @abstractmethod
    def set(
        self, key: str, response: Dict[str, Any], ttl_seconds: Optional[int] = None
    ) -> None:
        """Cache a response for the given idempotency key.

        Args:
            key: Idempotency key.
            response: Response dict to cache.
            ttl_seconds: Time-to-live in seconds (backend default if None).
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all cached entries (for testing)."""
        pass

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        pass
