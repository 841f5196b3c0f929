"""Dispatch queue.

Holds notifications waiting for a dispatch round. Items are served by
priority rank (HIGH first), then by not_before, then in enqueue order, and
only once ``now >= not_before``. Dequeue removes the item atomically so
concurrent workers never receive the same notification.
"""

import itertools
import threading
from datetime import datetime, timedelta
from typing import Dict, Optional, Protocol

from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import Notification, QueueItem, utc_now

logger = get_module_logger()


class DispatchQueue(Protocol):
    """Storage interface for the dispatch queue.

    Implementations must make dequeue_ready and remove atomic: an item is
    handed out (or cancelled) exactly once.
    """

    def enqueue(
        self, notification: Notification, not_before: Optional[datetime] = None
    ) -> QueueItem:
        """Add (or replace) the entry for a notification."""
        ...

    def dequeue_ready(self, now: Optional[datetime] = None) -> Optional[QueueItem]:
        """Remove and return the best ready item, or None."""
        ...

    def requeue_with_delay(
        self, notification: Notification, delay_seconds: float
    ) -> QueueItem:
        """Enqueue a notification to become ready after delay_seconds."""
        ...

    def requeue_item(self, item: QueueItem, delay_seconds: float) -> QueueItem:
        """Put a dequeued item back after a failed dispatch round."""
        ...

    def remove(self, notification_id: str) -> bool:
        """Remove a waiting item; False if it was not queued."""
        ...

    def depth(self) -> int:
        ...

    def contains(self, notification_id: str) -> bool:
        ...


class InMemoryDispatchQueue:
    """Thread-safe in-memory dispatch queue for development and tests."""

    def __init__(self) -> None:
        self._items: Dict[str, QueueItem] = {}
        self._lock = threading.Lock()
        self._sequence = itertools.count(1)

    def enqueue(
        self, notification: Notification, not_before: Optional[datetime] = None
    ) -> QueueItem:
        now = utc_now()
        item = QueueItem(
            notification_id=notification.id,
            priority=notification.priority,
            not_before=not_before or notification.scheduled_at or now,
            enqueued_at=now,
            expires_at=notification.expires_at,
            sequence=next(self._sequence),
        )
        with self._lock:
            self._items[notification.id] = item
            depth = len(self._items)

        logger.debug(
            "notification_enqueued",
            notification_id=notification.id,
            priority=notification.priority.value,
            not_before=item.not_before.isoformat(),
            queue_depth=depth,
        )
        return item

    def dequeue_ready(self, now: Optional[datetime] = None) -> Optional[QueueItem]:
        now = now or utc_now()
        with self._lock:
            ready = [item for item in self._items.values() if item.is_ready(now)]
            if not ready:
                return None
            item = min(ready, key=lambda i: i.sort_key)
            del self._items[item.notification_id]
        return item

    def requeue_with_delay(
        self, notification: Notification, delay_seconds: float
    ) -> QueueItem:
        return self.enqueue(
            notification, not_before=utc_now() + timedelta(seconds=delay_seconds)
        )

    def requeue_item(self, item: QueueItem, delay_seconds: float) -> QueueItem:
        restored = item.model_copy(
            update={
                "not_before": utc_now() + timedelta(seconds=delay_seconds),
                "sequence": next(self._sequence),
            }
        )
        with self._lock:
            self._items.setdefault(item.notification_id, restored)
        return restored

    def remove(self, notification_id: str) -> bool:
        with self._lock:
            return self._items.pop(notification_id, None) is not None

    def depth(self) -> int:
        with self._lock:
            return len(self._items)

    def contains(self, notification_id: str) -> bool:
        with self._lock:
            return notification_id in self._items
