"""Unit tests for SMSChannel."""

import pytest
import requests

from infrastructure.notifications.channels.sms import (
    MAX_SMS_LENGTH,
    SMSChannel,
    normalize_phone_number,
    truncate_sms,
)
from infrastructure.notifications.models import Channel, NotificationType
from infrastructure.notifications.templates import NotificationTemplate
from tests.factories.notifications import make_response


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw,expected",
    [
        ("9876543210", "+919876543210"),
        ("98765 43210", "+919876543210"),
        ("919876543210", "+919876543210"),
        ("+91 98765-43210", "+919876543210"),
        ("0919876543210", "+919876543210"),
        ("+15555551234", "+15555551234"),
    ],
)
def test_normalize_phone_number(raw, expected):
    assert normalize_phone_number(raw) == expected


@pytest.mark.unit
def test_truncate_sms():
    assert truncate_sms("short") == "short"
    truncated = truncate_sms("x" * 200)
    assert len(truncated) == MAX_SMS_LENGTH
    assert truncated.endswith("...")


@pytest.mark.unit
class TestSMSChannel:
    """Tests for SMSChannel implementation."""

    @pytest.fixture
    def sms_channel(self, mock_notify_client, templates, mock_circuit_breaker):
        return SMSChannel(
            mock_notify_client,
            templates=templates,
            app_base_url="https://quickbite.app/",
            circuit_breaker=mock_circuit_breaker,
        )

    def test_channel_name(self, sms_channel):
        assert sms_channel.channel_name == "sms"

    def test_send_success(
        self, sms_channel, mock_notify_client, notification_factory, endpoints_factory
    ):
        notification = notification_factory()

        result = sms_channel.send(notification, endpoints_factory())

        assert result.success is True
        assert result.external_id == "sms-msg-1"
        mock_notify_client.send_sms.assert_called_once_with(
            phone_number="+919876543210",
            message=(
                "QuickBite: Your order #1042 has been placed successfully. "
                "Track: https://quickbite.app/track/o-1042"
            ),
            reference=notification.id,
        )

    def test_default_message_fills_missing_order_number(
        self, sms_channel, notification_factory
    ):
        message = sms_channel.compose(notification_factory(data={"orderId": "o-1"}))
        assert message.startswith("QuickBite: Your order #XXX has been placed")

    def test_payment_amount_in_rupees(self, sms_channel, notification_factory):
        message = sms_channel.compose(
            notification_factory(
                type=NotificationType.PAYMENT_SUCCESS,
                data={"amount": 45000, "orderNumber": "1042", "transactionId": "tx-9"},
            )
        )
        assert "₹450" in message
        assert "tx-9" in message

    def test_generic_message_for_types_without_default(
        self, sms_channel, notification_factory
    ):
        message = sms_channel.compose(
            notification_factory(
                type=NotificationType.SECURITY_ALERT,
                title="New login",
                body="A new device signed in",
            )
        )
        assert message == "QuickBite: New login. A new device signed in"

    def test_long_message_truncated(self, sms_channel, notification_factory):
        message = sms_channel.compose(
            notification_factory(type=NotificationType.CUSTOM_MESSAGE, body="x" * 400)
        )
        assert len(message) == MAX_SMS_LENGTH

    def test_registered_template_used(self, sms_channel, templates, notification_factory):
        templates.register(
            NotificationTemplate(
                id="order_placed_sms",
                name="Order placed SMS",
                channel=Channel.SMS,
                type=NotificationType.ORDER_PLACED,
                body_template="Order {{ orderNumber }}: {{ APP_BASE_URL }}/o/{{ orderId }}",
            )
        )
        assert (
            sms_channel.compose(notification_factory())
            == "Order 1042: https://quickbite.app/o/o-1042"
        )

    def test_missing_phone(
        self, sms_channel, mock_notify_client, notification_factory, endpoints_factory
    ):
        result = sms_channel.send(notification_factory(), endpoints_factory(phone=None))

        assert result.error_code == "MISSING_PHONE"
        assert result.retryable is False
        mock_notify_client.send_sms.assert_not_called()

    def test_too_short_number_is_invalidated(
        self, sms_channel, mock_notify_client, notification_factory, endpoints_factory
    ):
        result = sms_channel.send(notification_factory(), endpoints_factory(phone="12345"))

        assert result.error_code == "INVALID_RECIPIENT"
        assert result.endpoints_to_invalidate() == ["12345"]
        mock_notify_client.send_sms.assert_not_called()

    def test_connection_error_is_retryable(
        self, sms_channel, mock_notify_client, notification_factory, endpoints_factory
    ):
        mock_notify_client.send_sms.side_effect = requests.ConnectionError("refused")

        result = sms_channel.send(notification_factory(), endpoints_factory())

        assert result.retryable is True
        assert result.error_code == "CONNECTION_ERROR"

    def test_rejected_payload_not_retryable(
        self, sms_channel, mock_notify_client, notification_factory, endpoints_factory
    ):
        mock_notify_client.send_sms.return_value = make_response(400, {"errors": []})

        result = sms_channel.send(notification_factory(), endpoints_factory())

        assert result.retryable is False
        assert result.error_code == "HTTP_400"
        assert result.endpoints_to_invalidate() == []
