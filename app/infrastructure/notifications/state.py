"""Notification status state machine.

    PENDING -> SENT | FAILED | EXPIRED
    SENT -> DELIVERED | EXPIRED
    DELIVERED -> READ

Re-applying the current status is a no-op. Retries keep PENDING.
"""

from typing import Dict, FrozenSet

from infrastructure.notifications.errors import InvalidTransitionError
from infrastructure.notifications.models import NotificationStatus

S = NotificationStatus

TRANSITIONS: Dict[NotificationStatus, FrozenSet[NotificationStatus]] = {
    S.PENDING: frozenset({S.SENT, S.FAILED, S.EXPIRED}),
    S.SENT: frozenset({S.DELIVERED, S.EXPIRED}),
    S.DELIVERED: frozenset({S.READ}),
    S.READ: frozenset(),
    S.FAILED: frozenset(),
    S.EXPIRED: frozenset(),
}

# No further dispatch rounds once reached
TERMINAL_FOR_DISPATCH: FrozenSet[NotificationStatus] = frozenset(
    {S.DELIVERED, S.READ, S.FAILED, S.EXPIRED}
)


def can_transition(current: NotificationStatus, target: NotificationStatus) -> bool:
    return current == target or target in TRANSITIONS[current]


def check_transition(
    notification_id: str, current: NotificationStatus, target: NotificationStatus
) -> bool:
    """Validate a status change.

    Returns:
        True if the status changes, False if target equals current.

    Raises:
        InvalidTransitionError: target is not reachable from current.
    """
    if current == target:
        return False
    if target not in TRANSITIONS[current]:
        raise InvalidTransitionError(notification_id, current, target)
    return True
