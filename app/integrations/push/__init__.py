"""Push gateway client."""

from .client import PushClient

__all__ = ["PushClient"]
