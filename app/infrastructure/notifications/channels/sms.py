"""SMS channel implementation using the Notify-style SMS gateway."""

import re
from typing import Dict, Optional

import structlog
from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.models import (
    Channel,
    DeliveryResult,
    Notification,
    NotificationType,
    RecipientEndpoints,
)
from infrastructure.notifications.templates import (
    TemplateRegistry,
    render_string,
    template_context,
)
from infrastructure.operations import OperationResult
from infrastructure.resilience.circuit_breaker import CircuitBreaker
from integrations.notify.client import NotifyClient

logger = structlog.get_logger()

MAX_SMS_LENGTH = 160
DEFAULT_COUNTRY_CODE = "91"

# Jinja2 text templates; APP_BASE_URL is the public web app URL.
DEFAULT_SMS_MESSAGES: Dict[NotificationType, str] = {
    NotificationType.ORDER_PLACED: (
        "QuickBite: Your order #{{ orderNumber | default('XXX', true) }} has been "
        "placed successfully. Track: {{ APP_BASE_URL }}/track/{{ orderId }}"
    ),
    NotificationType.ORDER_CONFIRMED: (
        "QuickBite: Order #{{ orderNumber }} confirmed! Estimated delivery: "
        "{{ estimatedDelivery | default('30-45 mins', true) }}"
    ),
    NotificationType.ORDER_PREPARING: (
        "QuickBite: Good news! {{ restaurantName | default('Restaurant', true) }} "
        "is now preparing your order #{{ orderNumber }}"
    ),
    NotificationType.ORDER_READY: (
        "QuickBite: Your order #{{ orderNumber }} is ready for pickup at "
        "{{ restaurantName }}"
    ),
    NotificationType.ORDER_OUT_FOR_DELIVERY: (
        "QuickBite: Your order #{{ orderNumber }} is out for delivery! Delivered by "
        "{{ deliveryPartner | default('our partner', true) }}. Track live: "
        "{{ APP_BASE_URL }}/track/{{ orderId }}"
    ),
    NotificationType.ORDER_DELIVERED: (
        "QuickBite: Order #{{ orderNumber }} delivered successfully! Enjoy your "
        "meal. Rate your experience: {{ APP_BASE_URL }}/rate/{{ orderId }}"
    ),
    NotificationType.ORDER_CANCELLED: (
        "QuickBite: Your order #{{ orderNumber }} has been cancelled. "
        "{{ reason | default('Refund will be processed within 3-5 business days.', true) }}"
    ),
    NotificationType.ORDER_DELAYED: (
        "QuickBite: Your order #{{ orderNumber }} is delayed by "
        "{{ delayMinutes | default('15', true) }} mins due to "
        "{{ reason | default('high demand', true) }}. Sorry for the inconvenience!"
    ),
    NotificationType.PAYMENT_SUCCESS: (
        "QuickBite: Payment of ₹{{ (amount | default(0, true)) / 100 }} "
        "successful for order #{{ orderNumber }}. Transaction ID: {{ transactionId }}"
    ),
    NotificationType.PAYMENT_FAILED: (
        "QuickBite: Payment failed for order #{{ orderNumber }}. Please retry or use "
        "a different payment method: {{ APP_BASE_URL }}/payment/{{ orderId }}"
    ),
    NotificationType.PROMOTIONAL_OFFER: (
        "QuickBite: {{ title }} Use code {{ promoCode }} to get {{ discount }}% OFF. "
        "Valid till {{ validTill }}. Order now!"
    ),
    NotificationType.LOYALTY_REWARD: (
        "QuickBite: Congrats! You've earned {{ points | default(0, true) }} loyalty "
        "points. Total: {{ totalPoints | default(0, true) }} points. Redeem: "
        "{{ APP_BASE_URL }}/rewards"
    ),
    NotificationType.REFERRAL_BONUS: (
        "QuickBite: ₹{{ (bonusAmount | default(0, true)) / 100 }} referral bonus "
        "credited to your wallet! Refer more friends and earn more rewards."
    ),
    NotificationType.DELIVERY_ASSIGNED: (
        "QuickBite: {{ deliveryPartner }} is assigned for your order "
        "#{{ orderNumber }}. Contact: {{ deliveryPhone }}"
    ),
    NotificationType.DELIVERY_ARRIVED: (
        "QuickBite: Your delivery partner has arrived! Order #{{ orderNumber }}. "
        "Please collect your order."
    ),
}


def truncate_sms(message: str, max_length: int = MAX_SMS_LENGTH) -> str:
    if len(message) <= max_length:
        return message
    return message[: max_length - 3] + "..."


def normalize_phone_number(phone: str) -> str:
    """Normalize a phone number to E.164, assuming India for local numbers."""
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 10:
        return f"+{DEFAULT_COUNTRY_CODE}{digits}"
    if len(digits) == 12 and digits.startswith(DEFAULT_COUNTRY_CODE):
        return f"+{digits}"
    if len(digits) == 13 and digits.startswith(f"0{DEFAULT_COUNTRY_CODE}"):
        return f"+{digits[1:]}"
    return f"+{digits}"


class SMSChannel(NotificationChannel):
    """SMS notification channel.

    Requires a phone number that normalizes to E.164 (+ and 8-15 digits).
    Messages are capped at a single 160 character segment.
    """

    provider_name = "sms"

    def __init__(
        self,
        client: NotifyClient,
        templates: Optional[TemplateRegistry] = None,
        app_base_url: str = "https://quickbite.app",
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        super().__init__(circuit_breaker)
        self._client = client
        self._templates = templates
        self._app_base_url = app_base_url.rstrip("/")
        logger.info("initialized_sms_channel")

    @property
    def channel(self) -> Channel:
        return Channel.SMS

    def resolve_endpoint(self, endpoints: RecipientEndpoints) -> OperationResult:
        if not endpoints.phone:
            return OperationResult.permanent_error(
                message="Phone number required for SMS",
                error_code="MISSING_PHONE",
            )
        phone = normalize_phone_number(endpoints.phone.strip())
        digits = phone[1:]
        if not digits.isdigit() or not 8 <= len(digits) <= 15:
            return OperationResult.permanent_error(
                message="Phone number must have 8-15 digits",
                error_code="INVALID_RECIPIENT",
            )
        return OperationResult.success(
            message="Phone number validated", data={"phone_number": phone}
        )

    def compose(self, notification: Notification) -> str:
        """Message text: template, per-type default, or generic fallback."""
        if self._templates is not None:
            rendered = self._templates.render(
                notification, self.channel, APP_BASE_URL=self._app_base_url
            )
            if rendered is not None:
                return truncate_sms(rendered.body)

        source = DEFAULT_SMS_MESSAGES.get(notification.type)
        if source is not None:
            context = template_context(notification, APP_BASE_URL=self._app_base_url)
            return truncate_sms(render_string(source, context))
        return truncate_sms(f"QuickBite: {notification.title}. {notification.body}")

    def send(
        self, notification: Notification, endpoints: RecipientEndpoints
    ) -> DeliveryResult:
        resolved = self.resolve_endpoint(endpoints)
        if not resolved.is_success:
            return self.failure_from_result(resolved, endpoint=endpoints.phone)

        phone_number = resolved.data["phone_number"]
        result = self.call_provider(
            self._client.send_sms,
            phone_number=phone_number,
            message=self.compose(notification),
            reference=notification.id,
        )

        if not result.is_success:
            logger.error(
                "sms_failed",
                notification_id=notification.id,
                error=result.message,
                error_code=result.error_code,
            )
            return self.failure_from_result(result, endpoint=endpoints.phone)

        logger.info(
            "sms_sent",
            notification_id=notification.id,
            priority=notification.priority.value,
        )
        return DeliveryResult.sent(
            self.channel,
            external_id=(result.data or {}).get("id"),
            response=result.data,
        )

    def health_check(self) -> OperationResult:
        return self.health_from_provider(self._client.is_configured, self._client.status)
