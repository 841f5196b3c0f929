"""Delivery ledger.

Durable record of every notification and every channel attempt. Attempts
are append-only. Status changes go through the transition graph in
``state.py`` and are serialized per notification id; storage backends add
an expected-status condition so concurrent writers in other processes
cannot race a transition either.

Backends implement the storage primitives; status logic lives here:

    ledger = InMemoryDeliveryLedger()
    ledger.create(notification)
    ledger.record_attempt(attempt)
    ledger.transition(notification.id, NotificationStatus.SENT)
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.notifications.errors import (
    LedgerWriteError,
    NotificationNotFoundError,
)
from infrastructure.notifications.models import (
    AttemptOutcome,
    Channel,
    DeliveryAttempt,
    Notification,
    NotificationFilters,
    NotificationStatus,
    NotificationType,
    utc_now,
)
from infrastructure.notifications.state import check_transition

logger = get_module_logger()

UNREAD_STATUSES = frozenset({NotificationStatus.SENT, NotificationStatus.DELIVERED})

_TIMESTAMP_FOR_STATUS = {
    NotificationStatus.SENT: "sent_at",
    NotificationStatus.DELIVERED: "delivered_at",
    NotificationStatus.READ: "read_at",
}


class KeyedLock:
    """One re-entrant lock per key, released from the table when unused."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, List[Any]] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.RLock(), 0]
                self._locks[key] = entry
            entry[1] += 1
        lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._locks.pop(key, None)


class DeliveryLedger(ABC):
    """Notification and attempt records with the status state machine."""

    def __init__(self):
        self._keyed_lock = KeyedLock()

    # Storage primitives

    @abstractmethod
    def _insert_notification(self, notification: Notification) -> None:
        """Insert a new notification, raising LedgerWriteError on failure."""
        pass

    @abstractmethod
    def _load_notification(self, notification_id: str) -> Optional[Notification]:
        pass

    @abstractmethod
    def _store_notification(
        self, notification: Notification, expected_status: NotificationStatus
    ) -> None:
        """Replace a notification if its stored status is expected_status.

        Raises:
            LedgerWriteError: Write failed or the stored status changed.
        """
        pass

    @abstractmethod
    def _user_notifications(self, user_id: str) -> List[Notification]:
        pass

    @abstractmethod
    def _insert_attempt(self, attempt: DeliveryAttempt) -> None:
        """Append an attempt; an existing (notification, channel, number) is an error."""
        pass

    @abstractmethod
    def _load_attempts(self, notification_id: str) -> List[DeliveryAttempt]:
        pass

    @abstractmethod
    def _attempts_by_external_id(self, external_id: str) -> List[DeliveryAttempt]:
        pass

    # Public API

    @contextmanager
    def lock(self, notification_id: str) -> Iterator[None]:
        """Serialize status changes for one notification."""
        with self._keyed_lock.hold(notification_id):
            yield

    def create(self, notification: Notification) -> Notification:
        self._insert_notification(notification)
        logger.debug(
            "ledger_notification_created",
            notification_id=notification.id,
            user_id=notification.user_id,
            type=notification.type.value,
        )
        return notification

    def get(self, notification_id: str) -> Optional[Notification]:
        return self._load_notification(notification_id)

    def require(self, notification_id: str) -> Notification:
        notification = self._load_notification(notification_id)
        if notification is None:
            raise NotificationNotFoundError(notification_id)
        return notification

    def list_for_user(
        self,
        user_id: str,
        filters: Optional[NotificationFilters] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Notification]:
        """User's notifications, newest first."""
        filters = filters or NotificationFilters()
        items = [n for n in self._user_notifications(user_id) if filters.matches(n)]
        items.sort(key=lambda n: n.created_at, reverse=True)
        return items[offset : offset + limit]

    def unread_count(self, user_id: str) -> int:
        return sum(
            1
            for n in self._user_notifications(user_id)
            if n.status in UNREAD_STATUSES and not n.is_read
        )

    def count_recent(
        self, user_id: str, types: Iterable[NotificationType], since: datetime
    ) -> int:
        """Notifications of the given types created for user_id since a time."""
        wanted = set(types)
        return sum(
            1
            for n in self._user_notifications(user_id)
            if n.type in wanted and n.created_at >= since
        )

    def attempts_for(self, notification_id: str) -> List[DeliveryAttempt]:
        attempts = self._load_attempts(notification_id)
        attempts.sort(key=lambda a: (a.created_at, a.attempt_number))
        return attempts

    def next_attempt_number(self, notification_id: str, channel: Channel) -> int:
        numbers = [
            a.attempt_number
            for a in self._load_attempts(notification_id)
            if a.channel == channel
        ]
        return max(numbers, default=0) + 1

    def record_attempt(self, attempt: DeliveryAttempt) -> DeliveryAttempt:
        self._insert_attempt(attempt)
        logger.debug(
            "ledger_attempt_recorded",
            notification_id=attempt.notification_id,
            channel=attempt.channel.value,
            attempt_number=attempt.attempt_number,
            outcome=attempt.outcome.value,
        )
        return attempt

    def transition(
        self,
        notification_id: str,
        target: NotificationStatus,
        now: Optional[datetime] = None,
        **changes: Any,
    ) -> Notification:
        """Move a notification to target, applying extra field changes.

        Re-applying the current status only applies changes (if any).

        Raises:
            NotificationNotFoundError: Unknown notification.
            InvalidTransitionError: target not reachable from current status.
            LedgerWriteError: Storage failure.
        """
        with self.lock(notification_id):
            current = self.require(notification_id)
            changed = check_transition(notification_id, current.status, target)
            if not changed and not changes:
                return current

            now = now or utc_now()
            update: Dict[str, Any] = dict(changes, status=target, updated_at=now)
            timestamp_field = _TIMESTAMP_FOR_STATUS.get(target)
            if changed and timestamp_field and getattr(current, timestamp_field) is None:
                update[timestamp_field] = now

            updated = current.model_copy(update=update)
            self._store_notification(updated, expected_status=current.status)

        if changed:
            logger.info(
                "notification_status_changed",
                notification_id=notification_id,
                from_status=current.status.value,
                to_status=target.value,
            )
        return updated

    def update(self, notification_id: str, **changes: Any) -> Notification:
        """Change fields other than status (retry bookkeeping)."""
        with self.lock(notification_id):
            current = self.require(notification_id)
            updated = current.model_copy(update=dict(changes, updated_at=utc_now()))
            self._store_notification(updated, expected_status=current.status)
        return updated

    def mark_read(self, notification_id: str, now: Optional[datetime] = None) -> Notification:
        """Mark a notification read.

        A SENT notification is moved through DELIVERED first, since the
        user viewing it is evidence of delivery.
        """
        with self.lock(notification_id):
            current = self.require(notification_id)
            if current.status == NotificationStatus.SENT:
                current = self.transition(notification_id, NotificationStatus.DELIVERED, now)
            return self.transition(notification_id, NotificationStatus.READ, now)

    def apply_provider_status(
        self,
        external_id: str,
        outcome: AttemptOutcome,
        failure_reason: Optional[str] = None,
        response: Optional[Dict[str, Any]] = None,
        channel: Optional[Channel] = None,
    ) -> Optional[Notification]:
        """Record an asynchronous provider status report.

        Appends a superseding attempt for the channel that produced
        external_id. Reports are idempotent in any arrival order: an
        outcome already recorded for external_id is a no-op, and a SENT
        report after DELIVERED or FAILED is ignored. DELIVERED moves the
        notification forward; FAILED never moves it backward.

        Args:
            channel: Channel the report came in for; a report for a
                different channel than the attempt's is ignored.

        Returns:
            The notification, or None if external_id is unknown or
            belongs to another channel.
        """
        attempts = self._attempts_by_external_id(external_id)
        if not attempts:
            logger.warning("provider_status_unknown_external_id", external_id=external_id)
            return None
        if channel is not None and attempts[0].channel != channel:
            logger.warning(
                "provider_status_channel_mismatch",
                external_id=external_id,
                channel=channel.value,
                attempt_channel=attempts[0].channel.value,
            )
            return None

        notification_id = attempts[0].notification_id
        with self.lock(notification_id):
            attempts = sorted(
                self._attempts_by_external_id(external_id),
                key=lambda a: (a.created_at, a.attempt_number),
            )
            latest = attempts[-1]
            notification = self.require(notification_id)

            recorded = {a.outcome for a in attempts}
            superseded = outcome == AttemptOutcome.SENT and (
                AttemptOutcome.DELIVERED in recorded or AttemptOutcome.FAILED in recorded
            )
            if outcome in recorded or superseded:
                logger.debug(
                    "provider_status_duplicate",
                    notification_id=notification_id,
                    external_id=external_id,
                    outcome=outcome.value,
                )
                return notification

            now = utc_now()
            self.record_attempt(
                DeliveryAttempt(
                    notification_id=notification_id,
                    channel=latest.channel,
                    attempt_number=self.next_attempt_number(
                        notification_id, latest.channel
                    ),
                    outcome=outcome,
                    external_id=external_id,
                    response=response or {},
                    failure_reason=failure_reason,
                    sent_at=latest.sent_at,
                    delivered_at=now if outcome == AttemptOutcome.DELIVERED else None,
                    created_at=now,
                )
            )

            if outcome != AttemptOutcome.DELIVERED:
                return notification

            if notification.status == NotificationStatus.PENDING:
                notification = self.transition(notification_id, NotificationStatus.SENT, now)
            if notification.status == NotificationStatus.SENT:
                notification = self.transition(
                    notification_id, NotificationStatus.DELIVERED, now
                )
            return notification


class InMemoryDeliveryLedger(DeliveryLedger):
    """Process-local ledger for development and tests."""

    def __init__(self):
        super().__init__()
        self._lock = threading.Lock()
        self._notifications: Dict[str, Notification] = {}
        self._by_user: Dict[str, List[str]] = {}
        self._attempts: Dict[str, List[DeliveryAttempt]] = {}
        self._by_external_id: Dict[str, List[DeliveryAttempt]] = {}

    def _insert_notification(self, notification: Notification) -> None:
        with self._lock:
            if notification.id in self._notifications:
                raise LedgerWriteError(f"Notification '{notification.id}' already exists")
            self._notifications[notification.id] = notification.model_copy(deep=True)
            self._by_user.setdefault(notification.user_id, []).append(notification.id)

    def _load_notification(self, notification_id: str) -> Optional[Notification]:
        with self._lock:
            item = self._notifications.get(notification_id)
            return item.model_copy(deep=True) if item else None

    def _store_notification(
        self, notification: Notification, expected_status: NotificationStatus
    ) -> None:
        with self._lock:
            stored = self._notifications.get(notification.id)
            if stored is None or stored.status != expected_status:
                raise LedgerWriteError(
                    f"Notification '{notification.id}' changed concurrently"
                )
            self._notifications[notification.id] = notification.model_copy(deep=True)

    def _user_notifications(self, user_id: str) -> List[Notification]:
        with self._lock:
            return [
                self._notifications[nid].model_copy(deep=True)
                for nid in self._by_user.get(user_id, [])
            ]

    def _insert_attempt(self, attempt: DeliveryAttempt) -> None:
        with self._lock:
            existing = self._attempts.setdefault(attempt.notification_id, [])
            for other in existing:
                if (
                    other.channel == attempt.channel
                    and other.attempt_number == attempt.attempt_number
                ):
                    raise LedgerWriteError(
                        f"Attempt {attempt.channel.value}#{attempt.attempt_number} "
                        f"already recorded for '{attempt.notification_id}'"
                    )
            stored = attempt.model_copy(deep=True)
            existing.append(stored)
            if attempt.external_id:
                self._by_external_id.setdefault(attempt.external_id, []).append(stored)

    def _load_attempts(self, notification_id: str) -> List[DeliveryAttempt]:
        with self._lock:
            return [a.model_copy(deep=True) for a in self._attempts.get(notification_id, [])]

    def _attempts_by_external_id(self, external_id: str) -> List[DeliveryAttempt]:
        with self._lock:
            return [
                a.model_copy(deep=True) for a in self._by_external_id.get(external_id, [])
            ]
