"""Server infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class ServerSettings(InfrastructureSettings):
    """Server and application runtime configuration.

    Environment Variables:
        BACKEND_URL: Backend API base URL (default: http://127.0.0.1:8000)
        CORS_ALLOW_ORIGINS: Comma separated origins allowed outside production
        APP_BASE_URL: Public web app URL used in rendered messages
        DEFAULT_RATE_LIMIT: slowapi default limit for API routes
        UNSUBSCRIBE_SECRET: HS256 secret signing email unsubscribe links

    Example:
        ```python
        from infrastructure.services import get_settings

        backend_url = get_settings().server.BACKEND_URL
        ```
    """

    BACKEND_URL: str = Field(default="http://127.0.0.1:8000", alias="BACKEND_URL")
    CORS_ALLOW_ORIGINS: str = Field(
        default="http://localhost:8000,http://127.0.0.1:8000",
        alias="CORS_ALLOW_ORIGINS",
    )
    APP_BASE_URL: str = Field(default="https://quickbite.app", alias="APP_BASE_URL")
    DEFAULT_RATE_LIMIT: str = Field(default="120/minute", alias="DEFAULT_RATE_LIMIT")
    UNSUBSCRIBE_SECRET: str = Field(default="", alias="UNSUBSCRIBE_SECRET")

    @property
    def cors_origins(self) -> list[str]:
        """CORS origins as a list."""
        return [
            origin.strip()
            for origin in self.CORS_ALLOW_ORIGINS.split(",")
            if origin.strip()
        ]
