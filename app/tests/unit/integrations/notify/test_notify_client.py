"""Unit tests for the email/SMS gateway client."""

import json
from unittest.mock import patch

import jwt
import pytest
from freezegun import freeze_time

from infrastructure.configuration.integrations import NotifySettings
from integrations.notify import client as notify

pytestmark = pytest.mark.unit


def decode_token(token, secret):
    return jwt.decode(token, key=secret, algorithms=["HS256"])


@pytest.fixture
def notify_settings():
    return NotifySettings(
        NOTIFY_API_URL="https://gateway.example.com/",
        NOTIFY_CLIENT_ID="client_id",
        NOTIFY_CLIENT_SECRET="secret",
        NOTIFY_EMAIL_FROM="orders@quickbite.app",
        NOTIFY_SMS_SENDER="QBITE",
        NOTIFY_TIMEOUT_SECONDS=5,
    )


@pytest.fixture
def notify_client(notify_settings):
    return notify.NotifyClient(notify_settings)


class TestCreateJwtToken:
    @patch("integrations.notify.client.logger")
    def test_secret_missing(self, mock_logger):
        with pytest.raises(ValueError) as err:
            notify.create_jwt_token(None, "client_id")
        assert str(err.value) == "Missing secret key"
        mock_logger.error.assert_called_once_with(
            "jwt_token_creation_failed", error="Missing secret key"
        )

    @patch("integrations.notify.client.logger")
    def test_client_id_missing(self, mock_logger):
        with pytest.raises(ValueError) as err:
            notify.create_jwt_token("secret", None)
        assert str(err.value) == "Missing client id"
        mock_logger.error.assert_called_once_with(
            "jwt_token_creation_failed", error="Missing client id"
        )

    def test_headers(self):
        headers = jwt.get_unverified_header(notify.create_jwt_token("secret", "client_id"))
        assert headers["typ"] == "JWT"
        assert headers["alg"] == "HS256"

    def test_claims(self):
        decoded = decode_token(notify.create_jwt_token("secret", "client_id"), "secret")
        assert decoded["iss"] == "client_id"
        assert "iat" in decoded

    @freeze_time("2020-01-01 00:00:00")
    def test_iat_is_epoch_seconds(self):
        decoded = decode_token(notify.create_jwt_token("secret", "client_id"), "secret")
        assert decoded["iat"] == 1577836800


class TestNotifyClient:
    def test_is_configured(self, notify_client):
        assert notify_client.is_configured is True

    def test_not_configured_without_secret(self, notify_settings):
        notify_settings.NOTIFY_CLIENT_SECRET = None
        assert notify.NotifyClient(notify_settings).is_configured is False

    def test_authorization_header(self, notify_client):
        key, value = notify_client.create_authorization_header()

        assert key == "Authorization"
        assert value.startswith("Bearer ")
        assert decode_token(value.split(" ", 1)[1], "secret")["iss"] == "client_id"

    @patch("integrations.notify.client.requests.post")
    def test_send_email(self, mock_post, notify_client):
        response = notify_client.send_email(
            "user@example.com", "Order placed", "<p>Hi</p>", "Hi", reference="n-1"
        )

        assert response is mock_post.return_value
        args, kwargs = mock_post.call_args
        assert args[0] == "https://gateway.example.com/v2/notifications/email"
        assert kwargs["timeout"] == 5
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert json.loads(kwargs["data"]) == {
            "email_address": "user@example.com",
            "from": "orders@quickbite.app",
            "subject": "Order placed",
            "html_body": "<p>Hi</p>",
            "text_body": "Hi",
            "reference": "n-1",
        }

    @patch("integrations.notify.client.requests.post")
    def test_send_sms(self, mock_post, notify_client):
        notify_client.send_sms("+919876543210", "Order #1042 placed")

        args, kwargs = mock_post.call_args
        assert args[0] == "https://gateway.example.com/v2/notifications/sms"
        assert json.loads(kwargs["data"]) == {
            "phone_number": "+919876543210",
            "sender": "QBITE",
            "message": "Order #1042 placed",
            "reference": None,
        }

    @patch("integrations.notify.client.requests.get")
    def test_status(self, mock_get, notify_client):
        notify_client.status()
        mock_get.assert_called_once_with(
            "https://gateway.example.com/_status", timeout=5
        )
