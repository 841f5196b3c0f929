"""Chat channel implementation using the WhatsApp-style messaging gateway."""

from typing import Optional

import structlog
from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.channels.sms import normalize_phone_number
from infrastructure.notifications.models import (
    Channel,
    DeliveryResult,
    Notification,
    RecipientEndpoints,
)
from infrastructure.notifications.templates import TemplateRegistry
from infrastructure.operations import OperationResult
from infrastructure.resilience.circuit_breaker import CircuitBreaker
from integrations.chat.client import CHAT_PREFIX, ChatClient

logger = structlog.get_logger()

MAX_CHAT_LENGTH = 4096


class ChatChannel(NotificationChannel):
    """Chat messaging channel.

    The handle is the user's chat id, or their phone number when no chat
    id is registered.
    """

    provider_name = "chat"

    def __init__(
        self,
        client: ChatClient,
        templates: Optional[TemplateRegistry] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        super().__init__(circuit_breaker)
        self._client = client
        self._templates = templates
        logger.info("initialized_chat_channel")

    @property
    def channel(self) -> Channel:
        return Channel.CHAT

    def resolve_endpoint(self, endpoints: RecipientEndpoints) -> OperationResult:
        handle = endpoints.chat_handle
        if not handle:
            return OperationResult.permanent_error(
                message="Chat id or phone number required for chat",
                error_code="MISSING_CHAT_HANDLE",
            )
        number = normalize_phone_number(handle.strip().replace(CHAT_PREFIX, ""))
        digits = number[1:]
        if not digits.isdigit() or not 8 <= len(digits) <= 15:
            return OperationResult.permanent_error(
                message="Chat handle is not a valid number",
                error_code="INVALID_RECIPIENT",
            )
        return OperationResult.success(data={"handle": number})

    def compose(self, notification: Notification) -> str:
        if self._templates is not None:
            rendered = self._templates.render(notification, self.channel)
            if rendered is not None:
                return rendered.body[:MAX_CHAT_LENGTH]
        return f"*{notification.title}*\n\n{notification.body}"[:MAX_CHAT_LENGTH]

    def send(
        self, notification: Notification, endpoints: RecipientEndpoints
    ) -> DeliveryResult:
        resolved = self.resolve_endpoint(endpoints)
        if not resolved.is_success:
            return self.failure_from_result(resolved, endpoint=endpoints.chat_id)

        result = self.call_provider(
            self._client.send_message, resolved.data["handle"], self.compose(notification)
        )

        if not result.is_success:
            logger.error(
                "chat_message_failed",
                notification_id=notification.id,
                error=result.message,
                error_code=result.error_code,
            )
            return self.failure_from_result(result, endpoint=endpoints.chat_id)

        logger.info("chat_message_sent", notification_id=notification.id)
        return DeliveryResult.sent(
            self.channel,
            external_id=(result.data or {}).get("sid"),
            response=result.data,
        )

    def health_check(self) -> OperationResult:
        return self.health_from_provider(self._client.is_configured, self._client.status)
