"""Storage table settings for the DynamoDB backend."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class StorageSettings(InfrastructureSettings):
    """DynamoDB table names used when NOTIFICATION_BACKEND is 'dynamodb'.

    Table Schemas:
        notifications: PK notification_id; GSI user_id-created_at-index
        delivery attempts: PK notification_id, SK attempt_key; GSI external_id-index
        preferences: PK user_id
        endpoints: PK user_id
        dispatch queue: PK notification_id; GSI queue-sort_key-index
        idempotency: PK idempotency_key (TTL attribute 'ttl')

    Environment Variables:
        NOTIFICATIONS_TABLE, DELIVERY_ATTEMPTS_TABLE, PREFERENCES_TABLE,
        ENDPOINTS_TABLE, DISPATCH_QUEUE_TABLE, IDEMPOTENCY_TABLE
    """

    NOTIFICATIONS_TABLE: str = Field(
        default="notifications", alias="NOTIFICATIONS_TABLE"
    )
    DELIVERY_ATTEMPTS_TABLE: str = Field(
        default="notification_delivery_attempts", alias="DELIVERY_ATTEMPTS_TABLE"
    )
    PREFERENCES_TABLE: str = Field(
        default="notification_preferences", alias="PREFERENCES_TABLE"
    )
    ENDPOINTS_TABLE: str = Field(
        default="notification_endpoints", alias="ENDPOINTS_TABLE"
    )
    DISPATCH_QUEUE_TABLE: str = Field(
        default="notification_dispatch_queue", alias="DISPATCH_QUEUE_TABLE"
    )
    IDEMPOTENCY_TABLE: str = Field(
        default="notification_idempotency", alias="IDEMPOTENCY_TABLE"
    )
