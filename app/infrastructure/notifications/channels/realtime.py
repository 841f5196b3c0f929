"""Realtime channel implementation writing to live websocket sessions."""

from typing import Any, Dict, Optional

import structlog
from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.models import (
    Channel,
    DeliveryResult,
    Notification,
    RecipientEndpoints,
)
from infrastructure.notifications.sessions import RealtimeSessionRegistry
from infrastructure.operations import OperationResult
from infrastructure.resilience.circuit_breaker import CircuitBreaker

logger = structlog.get_logger()


def realtime_message(notification: Notification, message_id: str) -> Dict[str, Any]:
    return {
        "type": "notification",
        "message_id": message_id,
        "data": {
            "id": notification.id,
            "type": notification.type.value,
            "title": notification.title,
            "body": notification.body,
            "data": notification.data,
            "priority": notification.priority.value,
            "created_at": notification.created_at.isoformat(),
        },
    }


class RealtimeChannel(NotificationChannel):
    """In-app realtime channel.

    Delivers only to a user connected at send time; nothing is held back
    for later. A completed socket write counts as SENT; the client's
    {"type": "ack", "message_id": ...} reply confirms delivery.
    """

    provider_name = "realtime"

    def __init__(
        self,
        session_registry: RealtimeSessionRegistry,
        send_timeout_seconds: float = 5.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        super().__init__(circuit_breaker)
        self._sessions = session_registry
        self._send_timeout = send_timeout_seconds

    @property
    def channel(self) -> Channel:
        return Channel.REALTIME

    def resolve_endpoint(self, endpoints: RecipientEndpoints) -> OperationResult:
        session = endpoints.active_session or self._sessions.lookup(endpoints.user_id)
        if session is None:
            return OperationResult.permanent_error(
                message="User has no active realtime session",
                error_code="NO_ACTIVE_SESSION",
            )
        return OperationResult.success(data={"session": session})

    def send(
        self, notification: Notification, endpoints: RecipientEndpoints
    ) -> DeliveryResult:
        resolved = self.resolve_endpoint(endpoints)
        if not resolved.is_success:
            logger.debug(
                "realtime_user_offline",
                notification_id=notification.id,
                user_id=notification.user_id,
            )
            return self.failure_from_result(resolved)

        session = resolved.data["session"]
        message_id = f"ws:{session.session_id}:{notification.id}"
        try:
            session.send(
                realtime_message(notification, message_id), timeout=self._send_timeout
            )
        except Exception as e:  # pylint: disable=broad-except
            logger.warning(
                "realtime_send_failed",
                notification_id=notification.id,
                session_id=session.session_id,
                error=str(e),
            )
            self._sessions.unregister(session)
            return DeliveryResult.failed(
                self.channel,
                error=f"Realtime send failed: {type(e).__name__}: {str(e)}",
                error_code="SESSION_SEND_FAILED",
            )

        logger.info(
            "realtime_sent",
            notification_id=notification.id,
            session_id=session.session_id,
        )
        return DeliveryResult.sent(self.channel, external_id=message_id)

    def health_check(self) -> OperationResult:
        return OperationResult.success(
            message="realtime sessions available",
            data={
                "online_users": self._sessions.online_count(),
                "sessions": self._sessions.session_count(),
            },
        )
