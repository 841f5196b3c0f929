"""Chat messaging gateway client."""

from .client import ChatClient

__all__ = ["ChatClient"]
