"""Infrastructure modules for the notification service.

Centralized infrastructure components:
- configuration: Settings management (Settings, settings)
- logging: Structured logging (get_module_logger)
- idempotency: Idempotency cache for duplicate submissions
- notifications: Notification delivery core
- operations: Operation results and error classification
- resilience: Circuit breakers for channel providers
- services: Dependency injection services (SettingsDep, NotificationServiceDep)
"""

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "OperationResult",
    "OperationStatus",
]
