"""Push gateway integration settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class PushSettings(IntegrationSettings):
    """Push gateway configuration.

    Environment Variables:
        PUSH_API_URL: Push gateway base URL
        PUSH_API_KEY: Server key for the push gateway
        PUSH_TTL_SECONDS: Time-to-live requested for push messages
        PUSH_TIMEOUT_SECONDS: HTTP timeout for gateway calls
    """

    PUSH_API_URL: str = Field(default="", alias="PUSH_API_URL")
    PUSH_API_KEY: str | None = Field(default=None, alias="PUSH_API_KEY")
    PUSH_TTL_SECONDS: int = Field(default=86400, alias="PUSH_TTL_SECONDS")
    PUSH_TIMEOUT_SECONDS: int = Field(default=10, alias="PUSH_TIMEOUT_SECONDS")
