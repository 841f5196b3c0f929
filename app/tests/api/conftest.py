"""Fixtures for HTTP and WebSocket route tests."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.dependencies.error_handlers import setup_error_handlers
from api.dependencies.rate_limits import get_limiter, setup_rate_limiter
from api.router import api_router
from infrastructure.configuration import Settings
from infrastructure.configuration.infrastructure import ServerSettings
from infrastructure.services import get_notification_service, get_settings
from server.middleware import RequestContextMiddleware

@pytest.fixture
def unsubscribe_secret():
    return "unsubscribe-test-secret"


@pytest.fixture
def api_settings(unsubscribe_secret):
    return Settings(
        GIT_SHA="abc123",
        server=ServerSettings(UNSUBSCRIBE_SECRET=unsubscribe_secret),
    )


@pytest.fixture
def api_service(service_factory, mock_channels, unsubscribe_secret):
    """Memory-backed service with every channel adapter mocked."""
    return service_factory(
        channels=mock_channels, unsubscribe_secret=unsubscribe_secret, bulk_limit=3
    )


@pytest.fixture
def app(api_service, api_settings):
    """Application wired like server.server, without the lifespan."""
    application = FastAPI()
    setup_rate_limiter(application)
    setup_error_handlers(application)
    application.add_middleware(RequestContextMiddleware)
    application.include_router(api_router)
    application.dependency_overrides[get_notification_service] = lambda: api_service
    application.dependency_overrides[get_settings] = lambda: api_settings
    return application


@pytest.fixture
def client(app):
    limiter = get_limiter()
    limiter.enabled = False
    with TestClient(app) as test_client:
        yield test_client
    limiter.enabled = True
