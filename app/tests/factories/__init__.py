"""Test data factories for deterministic test data generation."""

from tests.factories.notifications import (
    FakeSession,
    make_all_channels_preferences,
    make_endpoints,
    make_notification,
    make_preferences,
    make_request,
    make_response,
)

__all__ = [
    "FakeSession",
    "make_all_channels_preferences",
    "make_endpoints",
    "make_notification",
    "make_preferences",
    "make_request",
    "make_response",
]
