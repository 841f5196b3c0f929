"""Notification delivery core models.

Channel-agnostic models shared by the resolver, orchestrator, queue,
ledger and HTTP layer. Upstream services describe what happened
(type, title, body, data); the delivery core decides how and where the
recipient hears about it.

Uses Pydantic BaseModel for:
- Runtime input validation (API requests and stored records)
- Timezone-aware timestamps (naive datetimes are treated as UTC)
- Consistent JSON serialization for the API and DynamoDB backends
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import pytz
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class NotificationType(Enum):
    """What happened, as reported by the upstream service."""

    ORDER_PLACED = "order_placed"
    ORDER_CONFIRMED = "order_confirmed"
    ORDER_PREPARING = "order_preparing"
    ORDER_READY = "order_ready"
    ORDER_PICKED_UP = "order_picked_up"
    ORDER_OUT_FOR_DELIVERY = "order_out_for_delivery"
    ORDER_DELIVERED = "order_delivered"
    ORDER_CANCELLED = "order_cancelled"
    ORDER_DELAYED = "order_delayed"
    PAYMENT_SUCCESS = "payment_success"
    PAYMENT_FAILED = "payment_failed"
    REFUND_PROCESSED = "refund_processed"
    DELIVERY_ASSIGNED = "delivery_assigned"
    DELIVERY_ARRIVED = "delivery_arrived"
    PROMOTIONAL_OFFER = "promotional_offer"
    LOYALTY_REWARD = "loyalty_reward"
    REFERRAL_BONUS = "referral_bonus"
    BIRTHDAY_OFFER = "birthday_offer"
    NEW_RESTAURANT = "new_restaurant"
    RESTAURANT_REOPENED = "restaurant_reopened"
    FRIEND_ACTIVITY = "friend_activity"
    SYSTEM_MAINTENANCE = "system_maintenance"
    SECURITY_ALERT = "security_alert"
    ACCOUNT_UPDATE = "account_update"
    WEEKLY_DIGEST = "weekly_digest"
    CUSTOM_MESSAGE = "custom_message"


class NotificationPriority(Enum):
    """Notification priority levels.

    HIGH priority forces the SMS escalation channel, bypasses quiet hours
    and skips the dispatch queue when the notification is immediate.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Queue rank, lower is served first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    NotificationPriority.HIGH: 1,
    NotificationPriority.MEDIUM: 5,
    NotificationPriority.LOW: 10,
}


class Channel(Enum):
    """Delivery channels."""

    PUSH = "push"
    EMAIL = "email"
    SMS = "sms"
    CHAT = "chat"
    REALTIME = "realtime"


class NotificationStatus(Enum):
    """Aggregate delivery status of a notification."""

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"
    EXPIRED = "expired"


class AttemptOutcome(Enum):
    """Outcome of a single channel attempt."""

    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"


class Notification(BaseModel):
    """A notification addressed to one user.

    Attributes:
        id: Notification id (uuid4)
        user_id: Recipient user id
        type: NotificationType
        title: Short title (push title, email subject, chat heading)
        body: Message body
        data: Opaque payload forwarded to clients and templates
        priority: NotificationPriority (default: MEDIUM)
        channels: Explicit channel override, None to use type defaults
        template_id: Optional registered template id
        scheduled_at: Earliest dispatch time, None for immediate
        expires_at: Never attempted after this instant
        status: Aggregate NotificationStatus
        retry_count: Dispatch rounds that failed and were requeued
        max_retries: Retry budget (rounds = max_retries + 1)
        excluded_channels: Channels that failed permanently in an earlier
            round; later rounds skip them
        idempotency_key: Caller supplied key for duplicate suppression
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str = Field(..., min_length=1)
    type: NotificationType
    title: str
    body: str
    data: Dict[str, Any] = Field(default_factory=dict)
    priority: NotificationPriority = NotificationPriority.MEDIUM
    channels: Optional[List[Channel]] = None
    template_id: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    status: NotificationStatus = NotificationStatus.PENDING
    retry_count: int = Field(default=0, ge=0)
    max_retries: int = Field(default=3, ge=0)
    excluded_channels: List[Channel] = Field(default_factory=list)
    idempotency_key: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    sent_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    read_at: Optional[datetime] = None

    @field_validator(
        "scheduled_at",
        "expires_at",
        "created_at",
        "updated_at",
        "sent_at",
        "delivered_at",
        "read_at",
    )
    @classmethod
    def validate_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _ensure_aware(v)

    @model_validator(mode="after")
    def validate_retry_budget(self) -> "Notification":
        if self.retry_count > self.max_retries:
            raise ValueError(
                f"retry_count ({self.retry_count}) exceeds max_retries ({self.max_retries})"
            )
        return self

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or utc_now()) >= self.expires_at

    @property
    def is_read(self) -> bool:
        return self.read_at is not None


class DeliveryAttempt(BaseModel):
    """Append-only record of one channel attempt.

    Provider status callbacks never modify an attempt; they append a new
    record carrying the same external_id.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    notification_id: str
    channel: Channel
    attempt_number: int = Field(..., ge=1)
    outcome: AttemptOutcome
    external_id: Optional[str] = None
    response: Dict[str, Any] = Field(default_factory=dict)
    failure_reason: Optional[str] = None
    sent_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)


CATEGORY_NAMES = (
    "order_updates",
    "promotional_offers",
    "loyalty_updates",
    "social_activity",
    "security_alerts",
    "weekly_digest",
)


def _validate_hhmm(value: str) -> str:
    try:
        hours, minutes = value.split(":")
        if not (0 <= int(hours) <= 23 and 0 <= int(minutes) <= 59):
            raise ValueError
    except ValueError:
        raise ValueError(f"Time must be HH:MM, got {value!r}")
    return f"{int(hours):02d}:{int(minutes):02d}"


def _validate_timezone_name(value: str) -> str:
    if value not in pytz.all_timezones_set:
        raise ValueError(f"Unknown timezone: {value}")
    return value


class RecipientPreference(BaseModel):
    """Per-user delivery preferences.

    Created with defaults on first read, changed only by the user, and
    reset (never deleted) back to defaults.
    """

    user_id: str
    push_enabled: bool = True
    email_enabled: bool = True
    sms_enabled: bool = False
    chat_enabled: bool = False
    realtime_enabled: bool = True
    quiet_hours_enabled: bool = False
    quiet_hours_start: str = "22:00"
    quiet_hours_end: str = "08:00"
    timezone: str = "Asia/Kolkata"
    categories: Dict[str, bool] = Field(
        default_factory=lambda: {name: True for name in CATEGORY_NAMES}
    )
    frequency_cap: int = Field(default=10, ge=0)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("quiet_hours_start", "quiet_hours_end")
    @classmethod
    def validate_quiet_hours(cls, v: str) -> str:
        return _validate_hhmm(v)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        return _validate_timezone_name(v)

    @field_validator("categories")
    @classmethod
    def validate_categories(cls, v: Dict[str, bool]) -> Dict[str, bool]:
        unknown = set(v) - set(CATEGORY_NAMES)
        if unknown:
            raise ValueError(f"Unknown categories: {sorted(unknown)}")
        return {name: v.get(name, True) for name in CATEGORY_NAMES}

    def is_channel_enabled(self, channel: Channel) -> bool:
        return getattr(self, f"{channel.value}_enabled")

    def is_category_enabled(self, category: str) -> bool:
        return self.categories.get(category, True)


class PreferenceUpdate(BaseModel):
    """Partial preference update; only fields that are set are applied."""

    push_enabled: Optional[bool] = None
    email_enabled: Optional[bool] = None
    sms_enabled: Optional[bool] = None
    chat_enabled: Optional[bool] = None
    realtime_enabled: Optional[bool] = None
    quiet_hours_enabled: Optional[bool] = None
    quiet_hours_start: Optional[str] = None
    quiet_hours_end: Optional[str] = None
    timezone: Optional[str] = None
    categories: Optional[Dict[str, bool]] = None
    frequency_cap: Optional[int] = Field(default=None, ge=0)


class RecipientEndpoints(BaseModel):
    """Where a user can be reached.

    active_session is resolved from the realtime session registry at
    lookup time and never persisted.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    user_id: str
    device_tokens: List[str] = Field(default_factory=list)
    email: Optional[str] = None
    phone: Optional[str] = None
    chat_id: Optional[str] = None
    active_session: Optional[Any] = Field(default=None, exclude=True)

    @property
    def chat_handle(self) -> Optional[str]:
        return self.chat_id or self.phone


class EndpointsUpdate(BaseModel):
    """Replacement contact endpoints for a user."""

    device_tokens: List[str] = Field(default_factory=list)
    email: Optional[str] = None
    phone: Optional[str] = None
    chat_id: Optional[str] = None


class QueueItem(BaseModel):
    """Dispatch queue entry.

    Ordered by priority rank, then not_before, then enqueue sequence.
    """

    notification_id: str
    priority: NotificationPriority
    not_before: datetime
    enqueued_at: datetime = Field(default_factory=utc_now)
    expires_at: Optional[datetime] = None
    sequence: int = 0

    @property
    def sort_key(self) -> tuple:
        return (self.priority.rank, self.not_before, self.sequence)

    def is_ready(self, now: datetime) -> bool:
        return now >= self.not_before


class DeliveryResult(BaseModel):
    """Outcome of one channel adapter send.

    Attributes:
        channel: Channel that produced the result
        success: Provider accepted (or confirmed) the message
        terminal_status: SENT (accepted), DELIVERED (confirmed) or FAILED
        retryable: Failure is transient and the round may be retried
        external_id: Provider message id used to match status callbacks
        error: Failure description
        error_code: Machine error code
        response: Provider response payload
        invalidate_endpoint: The endpoint is permanently unusable
        endpoint: Endpoint value to invalidate
        stale_endpoints: Further endpoints reported dead (push tokens)
    """

    channel: Channel
    success: bool
    terminal_status: AttemptOutcome
    retryable: bool = False
    external_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    response: Dict[str, Any] = Field(default_factory=dict)
    invalidate_endpoint: bool = False
    endpoint: Optional[str] = None
    stale_endpoints: List[str] = Field(default_factory=list)

    def endpoints_to_invalidate(self) -> List[str]:
        found = list(self.stale_endpoints)
        if self.invalidate_endpoint and self.endpoint and self.endpoint not in found:
            found.append(self.endpoint)
        return found

    @classmethod
    def sent(
        cls,
        channel: Channel,
        external_id: Optional[str] = None,
        response: Optional[Dict[str, Any]] = None,
    ) -> "DeliveryResult":
        return cls(
            channel=channel,
            success=True,
            terminal_status=AttemptOutcome.SENT,
            external_id=external_id,
            response=response or {},
        )

    @classmethod
    def delivered(
        cls,
        channel: Channel,
        external_id: Optional[str] = None,
        response: Optional[Dict[str, Any]] = None,
    ) -> "DeliveryResult":
        return cls(
            channel=channel,
            success=True,
            terminal_status=AttemptOutcome.DELIVERED,
            external_id=external_id,
            response=response or {},
        )

    @classmethod
    def failed(
        cls,
        channel: Channel,
        error: str,
        error_code: Optional[str] = None,
        retryable: bool = False,
        invalidate_endpoint: bool = False,
        endpoint: Optional[str] = None,
        response: Optional[Dict[str, Any]] = None,
    ) -> "DeliveryResult":
        return cls(
            channel=channel,
            success=False,
            terminal_status=AttemptOutcome.FAILED,
            retryable=retryable,
            error=error,
            error_code=error_code,
            invalidate_endpoint=invalidate_endpoint,
            endpoint=endpoint,
            response=response or {},
        )


class AggregateResult(BaseModel):
    """Outcome of one orchestrator dispatch round."""

    notification_id: str
    status: NotificationStatus
    results: List[DeliveryResult] = Field(default_factory=list)
    retry_scheduled: bool = False
    next_attempt_at: Optional[datetime] = None

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)


class NotificationRequest(BaseModel):
    """Submission request from an upstream service."""

    type: NotificationType
    user_id: str = Field(..., min_length=1)
    title: str
    body: str
    data: Dict[str, Any] = Field(default_factory=dict)
    priority: NotificationPriority = NotificationPriority.MEDIUM
    channels: Optional[List[Channel]] = None
    scheduled_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    template_id: Optional[str] = None
    idempotency_key: Optional[str] = None

    @field_validator("title", "body")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Notification title and body cannot be empty")
        return v

    @field_validator("channels")
    @classmethod
    def validate_channels(cls, v: Optional[List[Channel]]) -> Optional[List[Channel]]:
        if v is not None and not v:
            raise ValueError("channels override cannot be empty")
        return v

    @field_validator("scheduled_at", "expires_at")
    @classmethod
    def validate_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _ensure_aware(v)


class NotificationStatusView(BaseModel):
    """Status of a notification together with its attempt history."""

    notification_id: str
    status: NotificationStatus
    retry_count: int
    attempts: List[DeliveryAttempt] = Field(default_factory=list)
    sent_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    read_at: Optional[datetime] = None


class NotificationFilters(BaseModel):
    """Filters for listing a user's notifications."""

    status: Optional[NotificationStatus] = None
    type: Optional[NotificationType] = None
    unread_only: bool = False

    def matches(self, notification: Notification) -> bool:
        if self.status is not None and notification.status != self.status:
            return False
        if self.type is not None and notification.type != self.type:
            return False
        if self.unread_only and notification.is_read:
            return False
        return True


class ProviderStatusUpdate(BaseModel):
    """Provider status webhook body."""

    message_id: str
    status: str
    error: Optional[str] = None
