"""Email channel implementation using the Notify-style email gateway."""

import re
from typing import Dict, Optional, Tuple

import structlog
from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.models import (
    Channel,
    DeliveryResult,
    Notification,
    NotificationType,
    RecipientEndpoints,
)
from infrastructure.notifications.templates import TemplateRegistry, render_string
from infrastructure.notifications.unsubscribe import unsubscribe_url
from infrastructure.operations import OperationResult
from infrastructure.resilience.circuit_breaker import CircuitBreaker
from integrations.notify.client import NotifyClient

logger = structlog.get_logger()

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

DEFAULT_SUBJECTS: Dict[NotificationType, str] = {
    NotificationType.ORDER_PLACED: "Order Confirmed - QuickBite",
    NotificationType.ORDER_PREPARING: "Your order is being prepared",
    NotificationType.ORDER_READY: "Your order is ready for pickup",
    NotificationType.ORDER_OUT_FOR_DELIVERY: "Your order is on the way",
    NotificationType.ORDER_DELIVERED: "Order delivered successfully",
    NotificationType.ORDER_CANCELLED: "Order cancelled",
    NotificationType.PAYMENT_SUCCESS: "Payment confirmation",
    NotificationType.PAYMENT_FAILED: "Payment failed - Action required",
    NotificationType.PROMOTIONAL_OFFER: "Special offer just for you!",
    NotificationType.LOYALTY_REWARD: "You've earned loyalty rewards!",
    NotificationType.REFERRAL_BONUS: "Referral bonus credited",
    NotificationType.BIRTHDAY_OFFER: "Happy Birthday! Special offer inside",
    NotificationType.WEEKLY_DIGEST: "Your weekly QuickBite summary",
}

DEFAULT_EMAIL_HTML = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{{ title }}</title>
</head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
  <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="text-align: center; padding: 20px 0; border-bottom: 2px solid #e74c3c;">
      <h1>QuickBite</h1>
    </div>
    <div style="padding: 20px 0;">
      <h2>{{ title }}</h2>
      <p>{{ body }}</p>
      {% if actionUrl %}
      <p><a href="{{ actionUrl }}" style="display: inline-block; padding: 10px 20px; background: #e74c3c; color: white; text-decoration: none; border-radius: 5px;">View Details</a></p>
      {% endif %}
    </div>
    <div style="text-align: center; padding: 20px 0; border-top: 1px solid #ddd; font-size: 12px; color: #666;">
      <p>This email was sent by QuickBite. If you don't want to receive these emails, you can <a href="{{ unsubscribe_url }}">unsubscribe</a>.</p>
    </div>
  </div>
</body>
</html>
"""


def default_subject(notification: Notification) -> str:
    return (
        DEFAULT_SUBJECTS.get(notification.type)
        or notification.title
        or "Notification from QuickBite"
    )


def html_to_text(html: str) -> str:
    text = re.sub(r"<[^>]*>", "", html)
    return re.sub(r"\s+", " ", text).strip()


class EmailChannel(NotificationChannel):
    """Email notification channel.

    Subject and HTML come from a registered template when one applies,
    otherwise from the built-in QuickBite layout. The plain text part is
    the HTML with tags stripped.
    """

    provider_name = "email"

    def __init__(
        self,
        client: NotifyClient,
        templates: Optional[TemplateRegistry] = None,
        app_base_url: str = "https://quickbite.app",
        unsubscribe_secret: Optional[str] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        super().__init__(circuit_breaker)
        self._client = client
        self._templates = templates
        self._app_base_url = app_base_url
        self._unsubscribe_secret = unsubscribe_secret
        logger.info("initialized_email_channel")

    @property
    def channel(self) -> Channel:
        return Channel.EMAIL

    def resolve_endpoint(self, endpoints: RecipientEndpoints) -> OperationResult:
        if not endpoints.email:
            return OperationResult.permanent_error(
                message="Email address required for email",
                error_code="MISSING_EMAIL",
            )
        email = endpoints.email.strip()
        if not EMAIL_PATTERN.match(email):
            return OperationResult.permanent_error(
                message="Email address is not valid",
                error_code="INVALID_RECIPIENT",
            )
        return OperationResult.success(data={"email": email})

    def render(self, notification: Notification) -> Tuple[str, str, str]:
        """Subject, HTML and text parts for notification."""
        link = unsubscribe_url(
            self._app_base_url, notification.user_id, self._unsubscribe_secret
        )
        rendered = None
        if self._templates is not None:
            rendered = self._templates.render(
                notification, self.channel, unsubscribe_url=link
            )

        if rendered is not None:
            subject = rendered.subject or default_subject(notification)
            if rendered.is_html:
                return subject, rendered.body, html_to_text(rendered.body)
            html = render_string(
                DEFAULT_EMAIL_HTML,
                {"title": notification.title, "body": rendered.body, "unsubscribe_url": link},
                html=True,
            )
            return subject, html, rendered.body

        html = render_string(
            DEFAULT_EMAIL_HTML,
            {
                "title": notification.title,
                "body": notification.body,
                "actionUrl": notification.data.get("actionUrl"),
                "unsubscribe_url": link,
            },
            html=True,
        )
        return default_subject(notification), html, html_to_text(html)

    def send(
        self, notification: Notification, endpoints: RecipientEndpoints
    ) -> DeliveryResult:
        resolved = self.resolve_endpoint(endpoints)
        if not resolved.is_success:
            return self.failure_from_result(resolved, endpoint=endpoints.email)

        email = resolved.data["email"]
        subject, html, text = self.render(notification)
        result = self.call_provider(
            self._client.send_email,
            email_address=email,
            subject=subject,
            html=html,
            text=text,
            reference=notification.id,
        )

        if not result.is_success:
            logger.error(
                "email_failed",
                notification_id=notification.id,
                error=result.message,
                error_code=result.error_code,
            )
            return self.failure_from_result(result, endpoint=email)

        logger.info("email_sent", notification_id=notification.id)
        return DeliveryResult.sent(
            self.channel,
            external_id=(result.data or {}).get("id"),
            response=result.data,
        )

    def health_check(self) -> OperationResult:
        return self.health_from_provider(self._client.is_configured, self._client.status)
