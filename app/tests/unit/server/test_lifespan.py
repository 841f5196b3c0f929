"""Unit tests for the application lifespan."""

import asyncio
from unittest.mock import MagicMock, patch

import pytest

from server import lifespan as lifespan_module

pytestmark = pytest.mark.unit


def _run_lifespan(app):
    async def _run():
        async with lifespan_module.lifespan(app):
            app.started_service = app.state.notification_service

    asyncio.run(_run())


@patch("server.lifespan.scheduled_tasks")
@patch("server.lifespan.get_notification_service")
@patch("server.lifespan.get_settings")
def test_starts_and_stops_service_and_jobs(
    mock_get_settings,
    mock_get_service,
    mock_scheduled_tasks,
    mock_fastapi_app,
    settings_factory,
    mock_notification_service,
):
    settings = settings_factory(scheduled_tasks_enabled=True)
    mock_get_settings.return_value = settings
    mock_get_service.return_value = mock_notification_service
    stop_event = MagicMock()
    mock_scheduled_tasks.run_continuously.return_value = stop_event

    _run_lifespan(mock_fastapi_app)

    assert mock_fastapi_app.started_service is mock_notification_service
    mock_notification_service.start.assert_called_once()
    mock_notification_service.stop.assert_called_once()
    mock_scheduled_tasks.init.assert_called_once_with(mock_notification_service, settings)
    stop_event.set.assert_called_once()
    mock_scheduled_tasks.clear.assert_called_once()


@patch("server.lifespan.scheduled_tasks")
@patch("server.lifespan.get_notification_service")
@patch("server.lifespan.get_settings")
def test_scheduled_tasks_can_be_disabled(
    mock_get_settings,
    mock_get_service,
    mock_scheduled_tasks,
    mock_fastapi_app,
    settings_factory,
    mock_notification_service,
):
    mock_get_settings.return_value = settings_factory(scheduled_tasks_enabled=False)
    mock_get_service.return_value = mock_notification_service

    _run_lifespan(mock_fastapi_app)

    mock_scheduled_tasks.init.assert_not_called()
    mock_scheduled_tasks.clear.assert_not_called()
    mock_notification_service.stop.assert_called_once()


def test_list_configs_logs_sections(settings_factory):
    logger = MagicMock()

    lifespan_module._list_configs(settings_factory(), logger)

    loaded = {
        c.kwargs["config_setting"]
        for c in logger.info.call_args_list
        if c.args[0] == "configuration_loaded"
    }
    assert {"notifications", "storage", "push", "notify", "chat"} <= loaded
