"""Idempotency key builder for consistent key generation."""

import hashlib
from typing import Any


class IdempotencyKeyBuilder:
    """Build deterministic idempotency keys.

    Caller supplied keys are scoped by namespace, operation and the
    remaining components, so two users reusing the same key never collide.

    Example:
        >>> builder = IdempotencyKeyBuilder(namespace="notifications")
        >>> key = builder.build(
        ...     operation="submit",
        ...     user_id="user-123",
        ...     key="order-789-placed",
        ... )
        >>> key
        'notifications:submit:a1b2c3d4e5f6a7b8'
    """

    def __init__(self, namespace: str):
        self.namespace = namespace

    def build(self, operation: str, **components: Any) -> str:
        """Build idempotency key from components.

        Args:
            operation: Operation type (e.g., "submit")
            **components: Key components (user_id, key, ...)

        Returns:
            Idempotency key string
        """
        sorted_components = sorted(components.items())

        key_parts = [self.namespace, operation]
        key_parts.extend(f"{k}={v}" for k, v in sorted_components)
        key_string = "|".join(str(part) for part in key_parts)

        key_hash = hashlib.sha256(key_string.encode()).hexdigest()[:16]

        return f"{self.namespace}:{operation}:{key_hash}"
