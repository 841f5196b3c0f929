"""Email and SMS gateway client."""

from .client import (
    NotifyClient,
    epoch_seconds,
    create_jwt_token,
)

__all__ = [
    "NotifyClient",
    "epoch_seconds",
    "create_jwt_token",
]
