"""Integration settings __init__ - exports all integration settings."""

from infrastructure.configuration.integrations.aws import AwsSettings
from infrastructure.configuration.integrations.chat import ChatSettings
from infrastructure.configuration.integrations.notify import NotifySettings
from infrastructure.configuration.integrations.push import PushSettings

__all__ = [
    "AwsSettings",
    "ChatSettings",
    "NotifySettings",
    "PushSettings",
]
