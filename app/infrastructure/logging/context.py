"""Context binding for structured logging.

Request middleware binds a correlation id for every HTTP request; dispatch
workers bind the notification being processed so that channel, ledger and
queue logs of one round share the same fields.

Usage:
    from infrastructure.logging import bind_request_context

    with bind_request_context(correlation_id="req-123", request_path="/api/v1/notifications"):
        logger.info("processing_request")
"""

import uuid
from contextlib import contextmanager
from typing import Optional, Any, Generator
import structlog


@contextmanager
def bind_request_context(
    correlation_id: Optional[str] = None,
    user_id: Optional[str] = None,
    request_path: Optional[str] = None,
    request_method: Optional[str] = None,
    **extra_context: Any,
) -> Generator[str, None, None]:
    """Bind request-scoped context to all logs within the block.

    Args:
        correlation_id: Request identifier. Generated when not provided.
        user_id: Recipient or caller id, when known.
        request_path: HTTP request path.
        request_method: HTTP method.
        **extra_context: Additional key-value pairs.

    Yields:
        The correlation id bound for the block.
    """
    context: dict[str, Any] = {"correlation_id": correlation_id or str(uuid.uuid4())}

    if user_id is not None:
        context["user_id"] = user_id
    if request_path is not None:
        context["request_path"] = request_path
    if request_method is not None:
        context["request_method"] = request_method

    context.update(extra_context)

    structlog.contextvars.bind_contextvars(**context)
    try:
        yield context["correlation_id"]
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())


@contextmanager
def bind_notification_context(
    notification_id: str, **extra_context: Any
) -> Generator[None, None, None]:
    """Bind a notification id (and extras such as worker_id) within the block."""
    context = {"notification_id": notification_id, **extra_context}
    structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())


def get_correlation_id() -> Optional[str]:
    """Return the correlation id bound in the current context, if any."""
    return structlog.contextvars.get_contextvars().get("correlation_id")


def clear_request_context() -> None:
    """Clear all context vars (end of request or worker iteration)."""
    structlog.contextvars.clear_contextvars()
