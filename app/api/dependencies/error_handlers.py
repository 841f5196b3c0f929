from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from infrastructure.logging import get_module_logger
from infrastructure.notifications.errors import (
    BulkLimitExceededError,
    InvalidTransitionError,
    LedgerWriteError,
    NotificationNotFoundError,
    QueueError,
)
from infrastructure.notifications.unsubscribe import InvalidUnsubscribeTokenError

logger = get_module_logger()

ERROR_STATUS_CODES = {
    NotificationNotFoundError: 404,
    InvalidTransitionError: 409,
    BulkLimitExceededError: 413,
    InvalidUnsubscribeTokenError: 400,
    LedgerWriteError: 503,
    QueueError: 503,
    ValidationError: 422,
}


async def notification_error_handler(request: Request, exc: Exception):
    """Map delivery core errors to an HTTP status and a JSON message."""
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    log = logger.warning if status_code < 500 else logger.error
    log(
        "notification_request_failed",
        path=request.url.path,
        method=request.method,
        status_code=status_code,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def setup_error_handlers(app: FastAPI):
    """
    Register the delivery core exception handlers on the application.
    """
    for error_class in ERROR_STATUS_CODES:
        app.add_exception_handler(error_class, notification_error_handler)
