"""Unit tests for ChatChannel."""

import pytest

from infrastructure.notifications.channels.chat import MAX_CHAT_LENGTH, ChatChannel
from tests.factories.notifications import make_response


@pytest.mark.unit
class TestChatChannel:
    """Tests for ChatChannel implementation."""

    @pytest.fixture
    def chat_channel(self, mock_chat_client, templates, mock_circuit_breaker):
        return ChatChannel(
            mock_chat_client, templates=templates, circuit_breaker=mock_circuit_breaker
        )

    def test_channel_name(self, chat_channel):
        assert chat_channel.channel_name == "chat"

    def test_send_to_chat_id(
        self, chat_channel, mock_chat_client, notification_factory, endpoints_factory
    ):
        result = chat_channel.send(
            notification_factory(), endpoints_factory(chat_id="whatsapp:+919999999999")
        )

        assert result.success is True
        assert result.external_id == "SM123"
        handle, text = mock_chat_client.send_message.call_args.args
        assert handle == "+919999999999"
        assert text == "*Order placed*\n\nYour order #1042 has been placed"

    def test_falls_back_to_phone(
        self, chat_channel, mock_chat_client, notification_factory, endpoints_factory
    ):
        chat_channel.send(notification_factory(), endpoints_factory(chat_id=None))

        handle, _ = mock_chat_client.send_message.call_args.args
        assert handle == "+919876543210"

    def test_no_handle(
        self, chat_channel, mock_chat_client, notification_factory, endpoints_factory
    ):
        result = chat_channel.send(
            notification_factory(), endpoints_factory(phone=None, chat_id=None)
        )

        assert result.error_code == "MISSING_CHAT_HANDLE"
        mock_chat_client.send_message.assert_not_called()

    def test_invalid_chat_id_is_invalidated(
        self, chat_channel, notification_factory, endpoints_factory
    ):
        result = chat_channel.send(notification_factory(), endpoints_factory(chat_id="abc"))

        assert result.error_code == "INVALID_RECIPIENT"
        assert result.endpoints_to_invalidate() == ["abc"]

    def test_unknown_recipient_invalidates_chat_id_only(
        self, chat_channel, mock_chat_client, notification_factory, endpoints_factory
    ):
        mock_chat_client.send_message.return_value = make_response(404, {"code": 21211})

        with_chat_id = chat_channel.send(
            notification_factory(), endpoints_factory(chat_id="919999999999")
        )
        phone_only = chat_channel.send(notification_factory(), endpoints_factory())

        assert with_chat_id.endpoints_to_invalidate() == ["919999999999"]
        assert phone_only.endpoints_to_invalidate() == []

    def test_long_message_capped(self, chat_channel, notification_factory):
        text = chat_channel.compose(notification_factory(body="x" * 5000))
        assert len(text) == MAX_CHAT_LENGTH

    def test_health_check(self, chat_channel, mock_chat_client):
        assert chat_channel.health_check().is_success
        mock_chat_client.status.assert_called_once()
