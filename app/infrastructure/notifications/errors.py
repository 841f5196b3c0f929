"""Delivery core exceptions.

Channel adapters never raise; these cover storage failures, lookups and
state machine violations. The API layer maps them to HTTP status codes.
"""


class NotificationError(Exception):
    """Base class for delivery core errors."""


class NotificationNotFoundError(NotificationError):
    """No notification with the requested id (or not owned by the user)."""

    def __init__(self, notification_id: str):
        self.notification_id = notification_id
        super().__init__(f"Notification '{notification_id}' not found")


class InvalidTransitionError(NotificationError):
    """Status change not allowed by the transition graph."""

    def __init__(self, notification_id: str, current, target):
        self.notification_id = notification_id
        self.current = current
        self.target = target
        super().__init__(
            f"Notification '{notification_id}' cannot move from "
            f"{current.value} to {target.value}"
        )


class LedgerWriteError(NotificationError):
    """Writing a notification or attempt record failed."""


class QueueError(NotificationError):
    """Dispatch queue storage failed."""


class BulkLimitExceededError(NotificationError):
    """Bulk submission larger than the configured limit."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Bulk submission of {size} exceeds limit of {limit}")
