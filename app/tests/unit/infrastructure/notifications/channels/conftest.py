"""Feature-level fixtures for notification channel tests."""

from unittest.mock import MagicMock

import pytest

from infrastructure.notifications.templates import TemplateRegistry
from infrastructure.resilience.circuit_breaker import CircuitBreaker
from tests.factories.notifications import make_response


@pytest.fixture
def mock_circuit_breaker():
    """Mock CircuitBreaker that always allows calls through.

    Returns:
        MagicMock CircuitBreaker that executes functions normally
    """
    breaker = MagicMock(spec=CircuitBreaker)
    breaker.failure_count = 0

    breaker.execute.side_effect = lambda operation: operation()
    return breaker


@pytest.fixture
def tight_circuit_breaker():
    """Real breaker that opens after two failures."""
    return CircuitBreaker("test_channel", failure_threshold=2, timeout_seconds=60)


@pytest.fixture
def templates():
    return TemplateRegistry()


@pytest.fixture
def mock_push_client():
    """Mock PushClient accepting every token.

    Returns:
        MagicMock configured with a successful gateway response
    """
    client = MagicMock()
    client.is_configured = True
    client.send.return_value = make_response(200, {"message_id": "push-msg-1"})
    client.status.return_value = make_response(200, {"status": "ok"})
    return client


@pytest.fixture
def mock_notify_client():
    """Mock NotifyClient for the email and SMS channels.

    Returns:
        MagicMock configured with 201 responses carrying a message id
    """
    client = MagicMock()
    client.is_configured = True
    client.send_email.return_value = make_response(
        201, {"id": "email-msg-1", "reference": None}
    )
    client.send_sms.return_value = make_response(
        201, {"id": "sms-msg-1", "reference": None}
    )
    client.status.return_value = make_response(200, {"status": "ok"})
    return client


@pytest.fixture
def mock_chat_client():
    """Mock ChatClient returning a queued message sid."""
    client = MagicMock()
    client.is_configured = True
    client.send_message.return_value = make_response(
        201, {"sid": "SM123", "status": "queued"}
    )
    client.status.return_value = make_response(200, {"status": "active"})
    return client
