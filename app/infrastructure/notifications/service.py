"""Notification service.

Composition root of the delivery core and the single entry point used by
the HTTP layer, background jobs and in-process callers. Collaborators are
injected (see ``factory.build_notification_service``); the worker pool is
owned here and started/stopped explicitly.

Usage:
    # Via dependency injection
    from infrastructure.services import NotificationServiceDep

    @router.post("/notifications")
    def submit(request: NotificationRequest, service: NotificationServiceDep):
        return {"notification_id": service.submit(request)}

    # Direct construction
    from infrastructure.notifications.factory import build_notification_service

    service = build_notification_service(settings)
    service.start()
    notification_id = service.submit(request)
    service.stop()
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional

import structlog
from infrastructure.idempotency import IdempotencyCache, IdempotencyKeyBuilder
from infrastructure.notifications import catalog
from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.directory import RecipientDirectory
from infrastructure.notifications.errors import (
    BulkLimitExceededError,
    InvalidTransitionError,
    NotificationNotFoundError,
)
from infrastructure.notifications.ledger import UNREAD_STATUSES, DeliveryLedger
from infrastructure.notifications.models import (
    AggregateResult,
    AttemptOutcome,
    Channel,
    EndpointsUpdate,
    Notification,
    NotificationFilters,
    NotificationPriority,
    NotificationRequest,
    NotificationStatus,
    NotificationStatusView,
    NotificationType,
    PreferenceUpdate,
    QueueItem,
    RecipientEndpoints,
    RecipientPreference,
    utc_now,
)
from infrastructure.notifications.orchestrator import DeliveryOrchestrator
from infrastructure.notifications.queue import DispatchQueue
from infrastructure.notifications.resolver import ChannelResolver
from infrastructure.notifications.sessions import RealtimeSessionRegistry
from infrastructure.notifications.templates import NotificationTemplate, TemplateRegistry
from infrastructure.notifications.unsubscribe import verify_unsubscribe_token
from infrastructure.notifications.workers import DispatchWorkerPool
from infrastructure.resilience.circuit_breaker import get_all_circuit_breaker_stats

logger = structlog.get_logger()

# Provider status strings (SMS, chat, email and push webhooks)
PROVIDER_STATUS_MAP: Dict[str, AttemptOutcome] = {
    "delivered": AttemptOutcome.DELIVERED,
    "failed": AttemptOutcome.FAILED,
    "undelivered": AttemptOutcome.FAILED,
    "bounced": AttemptOutcome.FAILED,
}

UNSUBSCRIBE_CATEGORIES = ("promotional_offers", "weekly_digest")


def map_provider_status(status: str) -> AttemptOutcome:
    return PROVIDER_STATUS_MAP.get(status.strip().lower(), AttemptOutcome.SENT)


class NotificationService:
    """Submit, dispatch and track notifications.

    Attributes:
        ledger: DeliveryLedger (notifications and attempts)
        queue: DispatchQueue
        directory: RecipientDirectory (preferences and endpoints)
        sessions: RealtimeSessionRegistry
        orchestrator: DeliveryOrchestrator
        channels: Adapter per Channel
        templates: TemplateRegistry shared with the channels
    """

    def __init__(
        self,
        ledger: DeliveryLedger,
        queue: DispatchQueue,
        directory: RecipientDirectory,
        sessions: RealtimeSessionRegistry,
        orchestrator: DeliveryOrchestrator,
        channels: Dict[Channel, NotificationChannel],
        idempotency_cache: Optional[IdempotencyCache] = None,
        templates: Optional[TemplateRegistry] = None,
        resolver: Optional[ChannelResolver] = None,
        worker_count: int = 4,
        poll_interval_seconds: float = 0.5,
        max_retries: int = 3,
        bulk_limit: int = 1000,
        frequency_window_seconds: int = 3600,
        session_inactivity_seconds: int = 300,
        idempotency_ttl_seconds: Optional[int] = None,
        unsubscribe_secret: Optional[str] = None,
    ):
        self.ledger = ledger
        self.queue = queue
        self.directory = directory
        self.sessions = sessions
        self.orchestrator = orchestrator
        self.channels = channels
        self.templates = templates or TemplateRegistry()
        self.resolver = resolver or ChannelResolver()
        self.idempotency_cache = idempotency_cache
        self.idempotency_ttl_seconds = idempotency_ttl_seconds
        self.max_retries = max_retries
        self.bulk_limit = bulk_limit
        self.frequency_window_seconds = frequency_window_seconds
        self.session_inactivity_seconds = session_inactivity_seconds
        self._unsubscribe_secret = unsubscribe_secret
        self._key_builder = IdempotencyKeyBuilder(namespace="notifications")
        self.workers = DispatchWorkerPool(
            queue=queue,
            handler=self.process_item,
            size=worker_count,
            poll_interval=poll_interval_seconds,
        )

    # Lifecycle

    def start(self) -> None:
        self.workers.start()
        logger.info("notification_service_started", channels=[c.value for c in self.channels])

    def stop(self) -> None:
        self.workers.stop()
        self.orchestrator.shutdown(wait=False)
        logger.info("notification_service_stopped")

    # Submission

    def _idempotency_key(self, request: NotificationRequest) -> Optional[str]:
        if not request.idempotency_key or self.idempotency_cache is None:
            return None
        return self._key_builder.build(
            "submit", user_id=request.user_id, key=request.idempotency_key
        )

    def submit(self, request: NotificationRequest) -> str:
        """Create a notification and schedule its first dispatch round.

        HIGH priority notifications due now are dispatched before
        returning; everything else goes through the dispatch queue.

        Returns:
            The notification id (the original id for a repeated
            idempotency key).
        """
        cache_key = self._idempotency_key(request)
        if cache_key:
            cached = self.idempotency_cache.get(cache_key)
            if cached and cached.get("notification_id"):
                logger.info(
                    "notification_already_submitted",
                    notification_id=cached["notification_id"],
                    user_id=request.user_id,
                )
                return cached["notification_id"]

        notification = Notification(**request.model_dump(), max_retries=self.max_retries)
        self.ledger.create(notification)
        if cache_key:
            self.idempotency_cache.set(
                cache_key,
                {"notification_id": notification.id},
                self.idempotency_ttl_seconds,
            )

        now = utc_now()
        is_due = notification.scheduled_at is None or notification.scheduled_at <= now
        logger.info(
            "notification_submitted",
            notification_id=notification.id,
            user_id=notification.user_id,
            type=notification.type.value,
            priority=notification.priority.value,
            scheduled_at=(
                notification.scheduled_at.isoformat() if notification.scheduled_at else None
            ),
        )

        if notification.priority == NotificationPriority.HIGH and is_due:
            self._dispatch_immediately(notification)
        else:
            self.queue.enqueue(notification)
        return notification.id

    def _dispatch_immediately(self, notification: Notification) -> None:
        try:
            self.dispatch(notification)
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "immediate_dispatch_failed",
                notification_id=notification.id,
                error=str(e),
                exc_info=True,
            )
            self.queue.enqueue(notification)

    def submit_bulk(self, requests: List[NotificationRequest]) -> List[str]:
        """Submit many notifications; all or nothing on the size check.

        Raises:
            BulkLimitExceededError: More than bulk_limit requests.
        """
        if len(requests) > self.bulk_limit:
            raise BulkLimitExceededError(len(requests), self.bulk_limit)
        ids = [self.submit(request) for request in requests]
        logger.info("bulk_notifications_submitted", count=len(ids))
        return ids

    def cancel(self, notification_id: str) -> bool:
        """Cancel a notification still waiting in the queue.

        Returns:
            True if it was removed before any dispatch round took it.
        """
        notification = self.ledger.require(notification_id)
        if notification.status != NotificationStatus.PENDING:
            return False
        if not self.queue.remove(notification_id):
            return False
        self.ledger.transition(
            notification_id,
            NotificationStatus.EXPIRED,
            data={**notification.data, "cancelled": True},
        )
        logger.info("notification_cancelled", notification_id=notification_id)
        return True

    def retry(self, notification_id: str) -> str:
        """Resubmit a FAILED notification with a fresh retry budget.

        The original keeps its FAILED status and history; the copy
        references it through data['retry_of'].

        Returns:
            Id of the new notification.
        """
        original = self.ledger.require(notification_id)
        if original.status != NotificationStatus.FAILED:
            raise InvalidTransitionError(
                notification_id, original.status, NotificationStatus.PENDING
            )

        resubmitted = Notification(
            user_id=original.user_id,
            type=original.type,
            title=original.title,
            body=original.body,
            data={**original.data, "retry_of": original.id},
            priority=original.priority,
            channels=original.channels,
            template_id=original.template_id,
            expires_at=original.expires_at,
            max_retries=self.max_retries,
        )
        self.ledger.create(resubmitted)
        self.queue.enqueue(resubmitted)
        logger.info(
            "notification_manual_retry",
            notification_id=resubmitted.id,
            retry_of=original.id,
        )
        return resubmitted.id

    # Dispatch

    def _recent_count(self, notification: Notification, now) -> int:
        category = catalog.category_for(notification.type)
        if category not in catalog.FREQUENCY_CAPPED_CATEGORIES:
            return 0
        types = [t for t in NotificationType if catalog.category_for(t) == category]
        since = now - timedelta(seconds=self.frequency_window_seconds)
        count = self.ledger.count_recent(notification.user_id, types, since)
        # The notification being dispatched is part of the count
        return max(0, count - 1)

    def dispatch(self, notification: Notification, now=None) -> AggregateResult:
        """Resolve channels and run one dispatch round.

        Channels that failed permanently in an earlier round are not
        attempted again; when none remain the notification fails.
        """
        now = now or utc_now()
        preferences = self.directory.get_preferences(notification.user_id)
        channels = self.resolver.resolve(
            notification,
            preferences,
            now=now,
            recent_count=self._recent_count(notification, now),
        )
        if notification.excluded_channels:
            channels = [c for c in channels if c not in notification.excluded_channels]
            logger.debug(
                "excluded_channels_skipped",
                notification_id=notification.id,
                excluded=[c.value for c in notification.excluded_channels],
                remaining=[c.value for c in channels],
            )
        endpoints = self.directory.get_endpoints(notification.user_id)
        return self.orchestrator.dispatch(notification, endpoints, channels, now=now)

    def process_item(self, item: QueueItem) -> None:
        """Dispatch handler for queue items (called by the worker pool)."""
        notification = self.ledger.get(item.notification_id)
        if notification is None:
            logger.warning("queued_notification_missing", notification_id=item.notification_id)
            return
        if notification.status != NotificationStatus.PENDING:
            logger.debug(
                "queued_notification_skipped",
                notification_id=notification.id,
                status=notification.status.value,
            )
            return
        self.dispatch(notification)

    # Queries

    def get(self, notification_id: str) -> Notification:
        return self.ledger.require(notification_id)

    def get_status(self, notification_id: str) -> NotificationStatusView:
        notification = self.ledger.require(notification_id)
        return NotificationStatusView(
            notification_id=notification.id,
            status=notification.status,
            retry_count=notification.retry_count,
            attempts=self.ledger.attempts_for(notification_id),
            sent_at=notification.sent_at,
            delivered_at=notification.delivered_at,
            read_at=notification.read_at,
        )

    def list_for_user(
        self,
        user_id: str,
        filters: Optional[NotificationFilters] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Notification]:
        return self.ledger.list_for_user(user_id, filters, limit=limit, offset=offset)

    def unread_count(self, user_id: str) -> int:
        return self.ledger.unread_count(user_id)

    def mark_read(self, notification_id: str, user_id: Optional[str] = None) -> Notification:
        """Mark one notification read.

        Raises:
            NotificationNotFoundError: Unknown id, or owned by another user.
            InvalidTransitionError: Notification was never sent.
        """
        notification = self.ledger.require(notification_id)
        if user_id is not None and notification.user_id != user_id:
            raise NotificationNotFoundError(notification_id)
        if notification.is_read:
            return notification
        return self.ledger.mark_read(notification_id)

    def mark_all_read(self, user_id: str) -> int:
        unread = [
            n
            for n in self.ledger.list_for_user(
                user_id, NotificationFilters(unread_only=True), limit=self.bulk_limit
            )
            if n.status in UNREAD_STATUSES
        ]
        for notification in unread:
            self.ledger.mark_read(notification.id)
        logger.info("notifications_marked_read", user_id=user_id, count=len(unread))
        return len(unread)

    # Provider callbacks

    def on_provider_status(
        self,
        external_id: str,
        status: str,
        failure_reason: Optional[str] = None,
        channel: Optional[Channel] = None,
    ) -> Optional[Notification]:
        """Apply an asynchronous provider status report.

        Args:
            channel: Channel the report was received for; reports that do
                not match the attempt's channel are ignored.

        Returns:
            The notification, or None if external_id is unknown or was
            produced by another channel.
        """
        outcome = map_provider_status(status)
        notification = self.ledger.apply_provider_status(
            external_id,
            outcome,
            failure_reason=failure_reason,
            response={"provider_status": status},
            channel=channel,
        )
        if notification is not None:
            logger.info(
                "provider_status_applied",
                notification_id=notification.id,
                external_id=external_id,
                provider_status=status,
                status=notification.status.value,
            )
        return notification

    # Recipients

    def get_preferences(self, user_id: str) -> RecipientPreference:
        return self.directory.get_preferences(user_id)

    def update_preferences(self, user_id: str, patch: PreferenceUpdate) -> RecipientPreference:
        return self.directory.update_preferences(user_id, patch)

    def reset_preferences(self, user_id: str) -> RecipientPreference:
        return self.directory.reset_preferences(user_id)

    def get_endpoints(self, user_id: str) -> RecipientEndpoints:
        return self.directory.get_endpoints(user_id)

    def set_endpoints(self, user_id: str, update: EndpointsUpdate) -> RecipientEndpoints:
        return self.directory.set_endpoints(user_id, update)

    def unsubscribe(self, token: str) -> RecipientPreference:
        """Turn off email and marketing categories for a signed email link."""
        user_id = verify_unsubscribe_token(token, self._unsubscribe_secret)
        logger.info("email_unsubscribed", user_id=user_id)
        return self.directory.update_preferences(
            user_id,
            PreferenceUpdate(
                email_enabled=False,
                categories={name: False for name in UNSUBSCRIBE_CATEGORIES},
            ),
        )

    # Templates

    def register_template(self, template: NotificationTemplate) -> NotificationTemplate:
        self.templates.register(template)
        return self.templates.get(template.id)

    def list_templates(self) -> List[NotificationTemplate]:
        return self.templates.list_templates()

    # Operations

    def sweep_sessions(self) -> int:
        return self.sessions.sweep_inactive(self.session_inactivity_seconds)

    def queue_depth(self) -> int:
        return self.queue.depth()

    def in_flight_count(self) -> int:
        return self.workers.in_flight_count()

    def channel_health(self) -> Dict[str, Dict[str, Any]]:
        report = {}
        for channel, adapter in self.channels.items():
            try:
                result = adapter.health_check()
                report[channel.value] = {
                    "healthy": result.is_success,
                    "message": result.message,
                    "error_code": result.error_code,
                }
            except Exception as e:  # pylint: disable=broad-except
                logger.error(
                    "channel_health_check_error",
                    channel=channel.value,
                    error=str(e),
                )
                report[channel.value] = {
                    "healthy": False,
                    "message": str(e),
                    "error_code": "HEALTH_CHECK_ERROR",
                }
        return report

    def queue_stats(self) -> Dict[str, Any]:
        return {
            "queue_depth": self.queue_depth(),
            "in_flight": self.in_flight_count(),
            "online_users": self.sessions.online_count(),
            "sessions": self.sessions.session_count(),
            "workers": self.workers.stats(),
            "circuit_breakers": get_all_circuit_breaker_stats(),
        }

    def health_check(self) -> Dict[str, Any]:
        channels = self.channel_health()
        healthy = all(c["healthy"] for c in channels.values())
        return {
            "status": "healthy" if healthy else "degraded",
            "workers_running": self.workers.is_running,
            "channels": channels,
            **self.queue_stats(),
        }
