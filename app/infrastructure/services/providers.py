"""
Factory functions for dependency injection.

Provides application-scoped singleton providers for core infrastructure services.
"""

from functools import lru_cache
from typing import TYPE_CHECKING

from infrastructure.configuration import Settings

if TYPE_CHECKING:
    from infrastructure.notifications.service import NotificationService


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    Infrastructure packages should use this directly to ensure singleton consistency:
        from infrastructure.services.providers import get_settings
        settings = get_settings()

    Application code should use the DI type alias for testability:
        from infrastructure.services import SettingsDep
        @router.get("/config")
        def get_config(settings: SettingsDep):
            ...

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


@lru_cache
def get_notification_service() -> "NotificationService":
    """
    Get the application-scoped notification service.

    The service is built once from settings (memory or DynamoDB backend);
    the FastAPI lifespan starts its worker pool and stops it on shutdown.

    Returns:
        NotificationService: Cached composition root.

    Usage:
        @router.post("/notifications")
        def submit(request: NotificationRequest, service: NotificationServiceDep):
            return {"id": service.submit(request)}
    """
    # Import here to avoid circular dependency with infrastructure.logging
    from infrastructure.notifications.factory import build_notification_service

    return build_notification_service(get_settings())
