"""Email and SMS gateway integration settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class NotifySettings(IntegrationSettings):
    """Messaging gateway configuration for the email and SMS channels.

    Both channels go through the same REST gateway, authenticated with a
    short-lived HS256 JWT signed with the service secret.

    Environment Variables:
        NOTIFY_CLIENT_ID: Gateway service account identifier (JWT issuer)
        NOTIFY_CLIENT_SECRET: Gateway service account secret
        NOTIFY_API_URL: Gateway API endpoint URL
        NOTIFY_EMAIL_FROM: Sender address for email notifications
        NOTIFY_SMS_SENDER: Sender id for SMS notifications
        NOTIFY_TIMEOUT_SECONDS: HTTP timeout for gateway calls

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        api_url = settings.notify.NOTIFY_API_URL
        ```
    """

    NOTIFY_CLIENT_ID: str | None = Field(default=None, alias="NOTIFY_CLIENT_ID")
    NOTIFY_CLIENT_SECRET: str | None = Field(
        default=None, alias="NOTIFY_CLIENT_SECRET"
    )
    NOTIFY_API_URL: str = Field(default="", alias="NOTIFY_API_URL")
    NOTIFY_EMAIL_FROM: str = Field(
        default="noreply@quickbite.app", alias="NOTIFY_EMAIL_FROM"
    )
    NOTIFY_SMS_SENDER: str = Field(default="QBITE", alias="NOTIFY_SMS_SENDER")
    NOTIFY_TIMEOUT_SECONDS: int = Field(default=10, alias="NOTIFY_TIMEOUT_SECONDS")
