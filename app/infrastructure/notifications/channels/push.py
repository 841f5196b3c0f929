"""Push channel implementation using the push gateway."""

from typing import Optional

import structlog
from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.models import (
    Channel,
    DeliveryResult,
    Notification,
    RecipientEndpoints,
)
from infrastructure.notifications.templates import TemplateRegistry
from infrastructure.operations import OperationResult, is_invalid_endpoint
from infrastructure.resilience.circuit_breaker import CircuitBreaker
from integrations.push.client import PushClient

logger = structlog.get_logger()

MAX_PUSH_BODY_LENGTH = 178


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


class PushChannel(NotificationChannel):
    """Push notification channel.

    Sends one message per registered device token. The notification is
    accepted when at least one token is accepted; tokens the gateway
    reports as unregistered are returned for invalidation.
    """

    provider_name = "push"

    def __init__(
        self,
        client: PushClient,
        templates: Optional[TemplateRegistry] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        super().__init__(circuit_breaker)
        self._client = client
        self._templates = templates
        logger.info("initialized_push_channel")

    @property
    def channel(self) -> Channel:
        return Channel.PUSH

    def resolve_endpoint(self, endpoints: RecipientEndpoints) -> OperationResult:
        tokens = [t.strip() for t in endpoints.device_tokens if t and t.strip()]
        if not tokens:
            return OperationResult.permanent_error(
                message="No device tokens registered",
                error_code="MISSING_DEVICE_TOKEN",
            )
        return OperationResult.success(data={"device_tokens": tokens})

    def send(
        self, notification: Notification, endpoints: RecipientEndpoints
    ) -> DeliveryResult:
        resolved = self.resolve_endpoint(endpoints)
        if not resolved.is_success:
            return self.failure_from_result(resolved)

        title = notification.title
        body = notification.body
        if self._templates is not None:
            rendered = self._templates.render(notification, self.channel)
            if rendered is not None:
                title = rendered.subject or title
                body = rendered.body
        body = truncate(body, MAX_PUSH_BODY_LENGTH)

        data = {
            **{k: str(v) for k, v in notification.data.items()},
            "notification_id": notification.id,
            "type": notification.type.value,
            "priority": notification.priority.value,
        }

        accepted = []
        stale = []
        last_failure: Optional[OperationResult] = None
        for token in resolved.data["device_tokens"]:
            result = self.call_provider(self._client.send, token, title, body, data)
            if result.is_success:
                accepted.append(result.data or {})
                continue
            last_failure = result
            if is_invalid_endpoint(result):
                stale.append(token)

        if stale:
            logger.warning(
                "push_tokens_unregistered",
                notification_id=notification.id,
                stale_count=len(stale),
            )

        if accepted:
            first = accepted[0]
            logger.info(
                "push_sent",
                notification_id=notification.id,
                accepted=len(accepted),
                failed=len(resolved.data["device_tokens"]) - len(accepted),
            )
            delivery = DeliveryResult.sent(
                self.channel,
                external_id=first.get("message_id") or first.get("id"),
                response={"accepted": len(accepted)},
            )
            delivery.stale_endpoints = stale
            return delivery

        logger.error(
            "push_failed",
            notification_id=notification.id,
            error=last_failure.message,
        )
        delivery = self.failure_from_result(last_failure)
        delivery.stale_endpoints = stale
        return delivery

    def health_check(self) -> OperationResult:
        return self.health_from_provider(self._client.is_configured, self._client.status)
