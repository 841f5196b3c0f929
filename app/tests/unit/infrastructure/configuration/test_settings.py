"""Unit tests for the settings aggregator and its sections."""

import pytest
from pydantic import ValidationError

from infrastructure.configuration import NotificationSettings, Settings
from infrastructure.configuration.base import (
    InfrastructureSettings,
    IntegrationSettings,
)
from infrastructure.configuration.infrastructure import (
    IdempotencySettings,
    ServerSettings,
    StorageSettings,
)
from infrastructure.configuration.integrations import (
    AwsSettings,
    ChatSettings,
    NotifySettings,
    PushSettings,
)

pytestmark = pytest.mark.unit

NOTIFICATION_ENV_VARS = [
    "NOTIFICATION_BACKEND",
    "NOTIFICATION_WORKER_COUNT",
    "NOTIFICATION_MAX_RETRIES",
    "NOTIFICATION_RETRY_BASE_DELAY_SECONDS",
    "NOTIFICATION_RETRY_MAX_DELAY_SECONDS",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in NOTIFICATION_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestNotificationSettings:
    def test_defaults(self, clean_env):
        settings = NotificationSettings()

        assert settings.backend == "memory"
        assert settings.worker_count == 4
        assert settings.max_retries == 3
        assert settings.retry_base_delay_seconds == 30
        assert settings.retry_max_delay_seconds == 900
        assert settings.default_timezone == "Asia/Kolkata"
        assert settings.scheduled_tasks_enabled is True

    def test_reads_environment(self, clean_env):
        clean_env.setenv("NOTIFICATION_BACKEND", "DynamoDB")
        clean_env.setenv("NOTIFICATION_WORKER_COUNT", "8")
        clean_env.setenv("NOTIFICATION_MAX_RETRIES", "5")

        settings = NotificationSettings()

        assert settings.backend == "dynamodb"
        assert settings.worker_count == 8
        assert settings.max_retries == 5

    def test_constructed_by_alias(self):
        settings = NotificationSettings(
            NOTIFICATION_BACKEND="memory", NOTIFICATION_CHANNEL_TIMEOUT_SECONDS=2.5
        )
        assert settings.channel_timeout_seconds == 2.5

    def test_rejects_unknown_backend(self):
        with pytest.raises(ValidationError, match="Unsupported notification backend"):
            NotificationSettings(NOTIFICATION_BACKEND="redis")

    def test_rejects_non_integer_retries(self, clean_env):
        clean_env.setenv("NOTIFICATION_MAX_RETRIES", "many")
        with pytest.raises(ValidationError):
            NotificationSettings()


class TestServerSettings:
    def test_cors_origins_split_and_trimmed(self):
        settings = ServerSettings(
            CORS_ALLOW_ORIGINS=" https://quickbite.app, ,http://localhost:3000 "
        )
        assert settings.cors_origins == ["https://quickbite.app", "http://localhost:3000"]

    def test_unsubscribe_secret_defaults_empty(self, monkeypatch):
        monkeypatch.delenv("UNSUBSCRIBE_SECRET", raising=False)
        assert ServerSettings().UNSUBSCRIBE_SECRET == ""


class TestSettingsAggregator:
    def test_builds_every_section(self):
        settings = Settings()

        assert isinstance(settings.aws, AwsSettings)
        assert isinstance(settings.push, PushSettings)
        assert isinstance(settings.notify, NotifySettings)
        assert isinstance(settings.chat, ChatSettings)
        assert isinstance(settings.server, ServerSettings)
        assert isinstance(settings.notifications, NotificationSettings)
        assert isinstance(settings.storage, StorageSettings)
        assert isinstance(settings.idempotency, IdempotencySettings)

    def test_section_override_kept(self):
        notifications = NotificationSettings(NOTIFICATION_WORKER_COUNT=1)
        settings = Settings(notifications=notifications)

        assert settings.notifications.worker_count == 1
        assert isinstance(settings.push, PushSettings)

    @pytest.mark.parametrize("prefix,expected", [("", True), ("dev-", False)])
    def test_is_production(self, prefix, expected):
        assert Settings(PREFIX=prefix).is_production is expected

    def test_storage_table_defaults(self, monkeypatch):
        monkeypatch.delenv("DISPATCH_QUEUE_TABLE", raising=False)
        storage = StorageSettings()
        assert storage.DISPATCH_QUEUE_TABLE == "notification_dispatch_queue"
        assert storage.IDEMPOTENCY_TABLE == "notification_idempotency"

    @pytest.mark.parametrize(
        "settings_class,base",
        [
            (PushSettings, IntegrationSettings),
            (NotifySettings, IntegrationSettings),
            (ChatSettings, IntegrationSettings),
            (AwsSettings, IntegrationSettings),
            (NotificationSettings, InfrastructureSettings),
            (StorageSettings, InfrastructureSettings),
            (ServerSettings, InfrastructureSettings),
            (IdempotencySettings, InfrastructureSettings),
        ],
    )
    def test_section_base_classes(self, settings_class, base):
        assert issubclass(settings_class, base)
