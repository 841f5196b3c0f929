"""In-memory idempotency cache for development and tests."""

import copy
import threading
import time
from typing import Any, Dict, Optional, Tuple

from infrastructure.idempotency.cache import IdempotencyCache


class InMemoryCache(IdempotencyCache):
    """Process-local cache; entries expire lazily on read."""

    def __init__(self, ttl_seconds: int = 86400):
        self.ttl_seconds = ttl_seconds
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[float, Dict[str, Any]]] = {}

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, response = entry
            if time.monotonic() >= expires_at:
                del self._entries[key]
                return None
            return copy.deepcopy(response)

    def set(
        self, key: str, response: Dict[str, Any], ttl_seconds: Optional[int] = None
    ) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._entries[key] = (time.monotonic() + ttl, copy.deepcopy(response))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            size = len(self._entries)
        return {"backend": "memory", "entries": size, "ttl_seconds": self.ttl_seconds}
