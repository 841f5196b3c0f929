"""Infrastructure configuration module - public API.

Centralized configuration for the notification service using Pydantic
BaseSettings with domain-based organization.

Exports:
    Settings: Main settings class (for testing/overrides)
    NotificationSettings: Delivery core settings class (for testing)

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()

    workers = settings.notifications.worker_count
    push_url = settings.push.PUSH_API_URL

    if settings.is_production:
        # Production-specific logic...
    ```
"""

from infrastructure.configuration.settings import Settings
from infrastructure.configuration.infrastructure.notifications import (
    NotificationSettings,
)

__all__ = ["Settings", "NotificationSettings"]
