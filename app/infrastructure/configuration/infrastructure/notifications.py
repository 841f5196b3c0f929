"""Notification delivery core settings."""

from pydantic import Field, field_validator

from infrastructure.configuration.base import InfrastructureSettings


class NotificationSettings(InfrastructureSettings):
    """Delivery core configuration: backend, worker pool, fan-out and retries.

    Environment Variables:
        NOTIFICATION_BACKEND: 'memory' (development, tests) or 'dynamodb'
        NOTIFICATION_WORKER_COUNT: Number of queue consumer threads (default: 4)
        NOTIFICATION_POLL_INTERVAL_SECONDS: Idle sleep between empty polls
        NOTIFICATION_FANOUT_MAX_WORKERS: Threads used for per-channel fan-out
        NOTIFICATION_CHANNEL_TIMEOUT_SECONDS: Per-channel send timeout
        NOTIFICATION_MAX_RETRIES: Default max retries per notification (default: 3)
        NOTIFICATION_RETRY_BASE_DELAY_SECONDS: Base backoff delay (default: 30s)
        NOTIFICATION_RETRY_MAX_DELAY_SECONDS: Backoff cap (default: 900s)
        NOTIFICATION_DEFAULT_TIMEZONE: Timezone for new preference records
        NOTIFICATION_SESSION_INACTIVITY_SECONDS: Realtime session idle threshold
        NOTIFICATION_SESSION_SWEEP_MINUTES: Interval of the session sweep job
        NOTIFICATION_BULK_LIMIT: Maximum notifications per bulk submission
        NOTIFICATION_FREQUENCY_WINDOW_SECONDS: Window used for frequency caps
        NOTIFICATION_SCHEDULED_TASKS_ENABLED: Run background jobs in this process

    Exponential Backoff:
        Delay calculation: min(base_delay * (2 ^ retry_count), max_delay)

        Example with defaults (base=30s, max=900s):
            Retry 1: 30s
            Retry 2: 60s
            Retry 3: 120s
    """

    backend: str = Field(
        default="memory",
        alias="NOTIFICATION_BACKEND",
        description="Storage backend: 'memory' or 'dynamodb'",
    )
    worker_count: int = Field(
        default=4,
        alias="NOTIFICATION_WORKER_COUNT",
        description="Number of dispatch queue consumers",
    )
    poll_interval_seconds: float = Field(
        default=0.5,
        alias="NOTIFICATION_POLL_INTERVAL_SECONDS",
        description="Sleep between polls when the queue has no ready item",
    )
    fanout_max_workers: int = Field(
        default=10,
        alias="NOTIFICATION_FANOUT_MAX_WORKERS",
        description="Thread pool size for concurrent channel sends",
    )
    channel_timeout_seconds: float = Field(
        default=15.0,
        alias="NOTIFICATION_CHANNEL_TIMEOUT_SECONDS",
        description="Maximum time to wait for a single channel send",
    )
    max_retries: int = Field(
        default=3,
        alias="NOTIFICATION_MAX_RETRIES",
        description="Retries after the first dispatch before FAILED",
    )
    retry_base_delay_seconds: int = Field(
        default=30,
        alias="NOTIFICATION_RETRY_BASE_DELAY_SECONDS",
        description="Base delay for exponential backoff (seconds)",
    )
    retry_max_delay_seconds: int = Field(
        default=900,
        alias="NOTIFICATION_RETRY_MAX_DELAY_SECONDS",
        description="Maximum delay for exponential backoff (seconds)",
    )
    default_timezone: str = Field(
        default="Asia/Kolkata",
        alias="NOTIFICATION_DEFAULT_TIMEZONE",
        description="Timezone assigned to new preference records",
    )
    session_inactivity_seconds: int = Field(
        default=300,
        alias="NOTIFICATION_SESSION_INACTIVITY_SECONDS",
        description="Realtime sessions idle longer than this are swept",
    )
    session_sweep_minutes: int = Field(
        default=5,
        alias="NOTIFICATION_SESSION_SWEEP_MINUTES",
        description="Interval of the inactive session sweep job",
    )
    bulk_limit: int = Field(
        default=1000,
        alias="NOTIFICATION_BULK_LIMIT",
        description="Maximum notifications accepted by one bulk submission",
    )
    frequency_window_seconds: int = Field(
        default=3600,
        alias="NOTIFICATION_FREQUENCY_WINDOW_SECONDS",
        description="Rolling window for per-user frequency caps",
    )
    scheduled_tasks_enabled: bool = Field(
        default=True,
        alias="NOTIFICATION_SCHEDULED_TASKS_ENABLED",
        description="Run the scheduled maintenance jobs in this process",
    )

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Only the memory and dynamodb backends exist."""
        value = v.lower()
        if value not in ("memory", "dynamodb"):
            raise ValueError(f"Unsupported notification backend: {v}")
        return value
