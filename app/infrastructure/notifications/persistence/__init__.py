"""Persistent storage backends for the delivery core."""

from infrastructure.notifications.persistence.dynamodb import (
    DynamoDBDeliveryLedger,
    DynamoDBDispatchQueue,
    DynamoDBEndpointStore,
    DynamoDBPreferenceStore,
)

__all__ = [
    "DynamoDBDeliveryLedger",
    "DynamoDBDispatchQueue",
    "DynamoDBEndpointStore",
    "DynamoDBPreferenceStore",
]
