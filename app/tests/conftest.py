"""Shared fixtures for the notification service test suite."""

from typing import Dict, Optional
from unittest.mock import MagicMock

import pytest
from infrastructure.idempotency import InMemoryCache
from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.directory import (
    InMemoryEndpointStore,
    InMemoryPreferenceStore,
    RecipientDirectory,
)
from infrastructure.notifications.ledger import InMemoryDeliveryLedger
from infrastructure.notifications.models import Channel, DeliveryResult
from infrastructure.notifications.orchestrator import DeliveryOrchestrator
from infrastructure.notifications.queue import InMemoryDispatchQueue
from infrastructure.notifications.service import NotificationService
from infrastructure.notifications.sessions import RealtimeSessionRegistry
from infrastructure.operations import OperationResult
from infrastructure.resilience.circuit_breaker import reset_circuit_breaker_registry
from tests.factories.notifications import (
    make_endpoints,
    make_notification,
    make_preferences,
    make_request,
)


@pytest.fixture(autouse=True)
def reset_circuit_breakers():
    """Channel adapters share breakers by name; start every test closed."""
    reset_circuit_breaker_registry()
    yield
    reset_circuit_breaker_registry()


@pytest.fixture
def notification_factory():
    """Factory for Notification instances (see make_notification)."""
    return make_notification


@pytest.fixture
def request_factory():
    """Factory for NotificationRequest instances (see make_request)."""
    return make_request


@pytest.fixture
def preference_factory():
    """Factory for RecipientPreference instances (see make_preferences)."""
    return make_preferences


@pytest.fixture
def endpoints_factory():
    """Factory for RecipientEndpoints instances (see make_endpoints)."""
    return make_endpoints


@pytest.fixture
def mock_channel_factory():
    """Factory for mocked channel adapters.

    Returns:
        Factory function creating a MagicMock NotificationChannel whose send
        returns the given DeliveryResult (SENT by default).

    Example:
        sms = mock_channel_factory(Channel.SMS)
        sms.send.return_value = DeliveryResult.failed(Channel.SMS, "down", retryable=True)
    """

    def _factory(
        channel: Channel, result: Optional[DeliveryResult] = None
    ) -> MagicMock:
        adapter = MagicMock(spec=NotificationChannel)
        adapter.channel = channel
        adapter.channel_name = channel.value
        adapter.send.return_value = result or DeliveryResult.sent(
            channel, external_id=f"{channel.value}-msg-1"
        )
        adapter.health_check.return_value = OperationResult.success(
            message=f"{channel.value} reachable"
        )
        return adapter

    return _factory


@pytest.fixture
def mock_channels(mock_channel_factory) -> Dict[Channel, MagicMock]:
    """One mocked adapter per channel, all accepting messages."""
    return {channel: mock_channel_factory(channel) for channel in Channel}


@pytest.fixture
def service_factory():
    """Factory for memory-backed NotificationService instances.

    Retry backoff defaults to zero so requeued rounds are ready at once;
    the worker pool is never started, tests drive it with run_once().

    Example:
        service = service_factory(channels=mock_channels, max_retries=1)
        notification_id = service.submit(request_factory())
        service.workers.run_once()
    """
    built = []

    def _factory(
        channels: Optional[Dict[Channel, NotificationChannel]] = None,
        channel_timeout_seconds: float = 2.0,
        retry_base_delay_seconds: int = 0,
        retry_max_delay_seconds: int = 0,
        **service_kwargs,
    ) -> NotificationService:
        sessions = RealtimeSessionRegistry()
        ledger = InMemoryDeliveryLedger()
        queue = InMemoryDispatchQueue()
        directory = RecipientDirectory(
            InMemoryPreferenceStore(), InMemoryEndpointStore(), sessions
        )
        adapters = channels if channels is not None else {}
        orchestrator = DeliveryOrchestrator(
            ledger=ledger,
            directory=directory,
            queue=queue,
            channels=adapters,
            max_workers=5,
            channel_timeout_seconds=channel_timeout_seconds,
            retry_base_delay_seconds=retry_base_delay_seconds,
            retry_max_delay_seconds=retry_max_delay_seconds,
        )
        service_kwargs.setdefault("idempotency_cache", InMemoryCache())
        service = NotificationService(
            ledger=ledger,
            queue=queue,
            directory=directory,
            sessions=sessions,
            orchestrator=orchestrator,
            channels=adapters,
            **service_kwargs,
        )
        built.append(service)
        return service

    yield _factory

    for service in built:
        service.orchestrator.shutdown(wait=False)
