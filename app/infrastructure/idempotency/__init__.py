"""Infrastructure idempotency cache.

Suppresses duplicate notification submissions. With the DynamoDB backend
all instances share one cache table, so a submission retried against a
different instance still returns the original notification id.

Usage:

    from infrastructure.idempotency import IdempotencyKeyBuilder, create_cache

    cache = create_cache(settings)
    key = IdempotencyKeyBuilder("notifications").build(
        "submit", user_id=user_id, key=idempotency_key
    )

    cached = cache.get(key)
    if cached:
        return cached["notification_id"]

    notification_id = create_notification(...)
    cache.set(key, {"notification_id": notification_id})
"""

from infrastructure.idempotency.cache import IdempotencyCache
from infrastructure.idempotency.dynamodb import DynamoDBCache
from infrastructure.idempotency.factory import create_cache
from infrastructure.idempotency.key_builder import IdempotencyKeyBuilder
from infrastructure.idempotency.memory import InMemoryCache

__all__ = [
    "IdempotencyCache",
    "create_cache",
    "DynamoDBCache",
    "IdempotencyKeyBuilder",
    "InMemoryCache",
]
