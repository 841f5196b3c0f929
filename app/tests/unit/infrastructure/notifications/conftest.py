"""Fixtures for delivery core unit tests."""

import pytest
from infrastructure.notifications.directory import (
    InMemoryEndpointStore,
    InMemoryPreferenceStore,
    RecipientDirectory,
)
from infrastructure.notifications.ledger import InMemoryDeliveryLedger
from infrastructure.notifications.queue import InMemoryDispatchQueue
from infrastructure.notifications.sessions import RealtimeSessionRegistry


@pytest.fixture
def ledger():
    return InMemoryDeliveryLedger()


@pytest.fixture
def queue():
    return InMemoryDispatchQueue()


@pytest.fixture
def sessions():
    return RealtimeSessionRegistry()


@pytest.fixture
def directory(sessions):
    return RecipientDirectory(InMemoryPreferenceStore(), InMemoryEndpointStore(), sessions)


@pytest.fixture
def stored_notification(ledger, notification_factory):
    """Factory creating a notification and storing it in the ledger."""

    def _factory(**kwargs):
        return ledger.create(notification_factory(**kwargs))

    return _factory
