"""Idempotency cache factory."""

from typing import TYPE_CHECKING

from infrastructure.idempotency.cache import IdempotencyCache
from infrastructure.idempotency.dynamodb import DynamoDBCache
from infrastructure.idempotency.memory import InMemoryCache
from infrastructure.logging import get_module_logger

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()


def create_cache(settings: "Settings") -> IdempotencyCache:
    """Create the idempotency cache for the configured notification backend.

    Returns:
        DynamoDBCache shared across instances for the dynamodb backend,
        InMemoryCache otherwise.
    """
    ttl_seconds = settings.idempotency.IDEMPOTENCY_TTL_SECONDS
    if settings.notifications.backend == "dynamodb":
        cache: IdempotencyCache = DynamoDBCache(
            table_name=settings.storage.IDEMPOTENCY_TABLE, ttl_seconds=ttl_seconds
        )
    else:
        cache = InMemoryCache(ttl_seconds=ttl_seconds)
    logger.info(
        "initialized_idempotency_cache", backend=settings.notifications.backend
    )
    return cache
