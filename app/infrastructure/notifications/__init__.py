"""Notification delivery core.

Multi-channel delivery (push, email, SMS, chat, realtime) with:
- Channel resolution from type defaults and recipient preferences
- Concurrent per-channel fan-out with timeouts and circuit breakers
- Append-only delivery ledger with a status state machine
- Priority dispatch queue with delayed retries and a worker pool
- Realtime session registry for connected clients

Usage:
    from infrastructure.notifications import (
        NotificationRequest,
        NotificationPriority,
        NotificationType,
        build_notification_service,
    )

    service = build_notification_service(settings)
    service.start()

    notification_id = service.submit(
        NotificationRequest(
            type=NotificationType.ORDER_PLACED,
            user_id="user-123",
            title="Order placed",
            body="Your order #1042 has been placed",
            priority=NotificationPriority.HIGH,
        )
    )
    status = service.get_status(notification_id)
"""

# Models
from infrastructure.notifications.models import (
    AggregateResult,
    AttemptOutcome,
    Channel,
    DeliveryAttempt,
    DeliveryResult,
    Notification,
    NotificationPriority,
    NotificationRequest,
    NotificationStatus,
    NotificationType,
    RecipientEndpoints,
    RecipientPreference,
)

# Errors
from infrastructure.notifications.errors import (
    BulkLimitExceededError,
    InvalidTransitionError,
    LedgerWriteError,
    NotificationError,
    NotificationNotFoundError,
    QueueError,
)

# Channel interface
from infrastructure.notifications.channels.base import NotificationChannel

# Service
from infrastructure.notifications.service import NotificationService
from infrastructure.notifications.factory import build_notification_service

__all__ = [
    # Models
    "AggregateResult",
    "AttemptOutcome",
    "Channel",
    "DeliveryAttempt",
    "DeliveryResult",
    "Notification",
    "NotificationPriority",
    "NotificationRequest",
    "NotificationStatus",
    "NotificationType",
    "RecipientEndpoints",
    "RecipientPreference",
    # Errors
    "BulkLimitExceededError",
    "InvalidTransitionError",
    "LedgerWriteError",
    "NotificationError",
    "NotificationNotFoundError",
    "QueueError",
    # Channel interface
    "NotificationChannel",
    # Service
    "NotificationService",
    "build_notification_service",
]
