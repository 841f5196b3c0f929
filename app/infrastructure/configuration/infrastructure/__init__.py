"""Infrastructure settings __init__ - exports all infrastructure settings."""

from infrastructure.configuration.infrastructure.idempotency import IdempotencySettings
from infrastructure.configuration.infrastructure.notifications import (
    NotificationSettings,
)
from infrastructure.configuration.infrastructure.server import ServerSettings
from infrastructure.configuration.infrastructure.storage import StorageSettings

__all__ = [
    "IdempotencySettings",
    "NotificationSettings",
    "ServerSettings",
    "StorageSettings",
]
