"""Chat messaging gateway integration settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class ChatSettings(IntegrationSettings):
    """Chat messaging (WhatsApp-style) gateway configuration.

    Environment Variables:
        CHAT_API_URL: Messaging gateway base URL
        CHAT_ACCOUNT_ID: Gateway account identifier
        CHAT_AUTH_TOKEN: Gateway auth token
        CHAT_SENDER: Sender handle messages are sent from
        CHAT_STATUS_CALLBACK_URL: Public URL the gateway posts status updates to
        CHAT_TIMEOUT_SECONDS: HTTP timeout for gateway calls
    """

    CHAT_API_URL: str = Field(default="", alias="CHAT_API_URL")
    CHAT_ACCOUNT_ID: str | None = Field(default=None, alias="CHAT_ACCOUNT_ID")
    CHAT_AUTH_TOKEN: str | None = Field(default=None, alias="CHAT_AUTH_TOKEN")
    CHAT_SENDER: str = Field(default="", alias="CHAT_SENDER")
    CHAT_STATUS_CALLBACK_URL: str | None = Field(
        default=None, alias="CHAT_STATUS_CALLBACK_URL"
    )
    CHAT_TIMEOUT_SECONDS: int = Field(default=10, alias="CHAT_TIMEOUT_SECONDS")
