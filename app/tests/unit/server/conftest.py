"""Fixtures for server module unit tests."""

from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI

from infrastructure.configuration import NotificationSettings, Settings


@pytest.fixture
def mock_fastapi_app():
    """Create a mock FastAPI application with a real state object."""
    app = MagicMock(spec=FastAPI)
    app.state = MagicMock()
    return app


@pytest.fixture
def settings_factory():
    """Settings with the scheduled jobs switched on or off."""

    def _factory(scheduled_tasks_enabled: bool = True) -> Settings:
        return Settings(
            notifications=NotificationSettings(
                NOTIFICATION_SCHEDULED_TASKS_ENABLED=scheduled_tasks_enabled
            )
        )

    return _factory


@pytest.fixture
def mock_notification_service():
    """Create a mock NotificationService."""
    return MagicMock()
