"""Notification service factory.

Builds the delivery core from settings: storage backend (memory or
DynamoDB), channel adapters with their provider clients and circuit
breakers, orchestrator and service.
"""

from typing import Dict, TYPE_CHECKING

from infrastructure.idempotency import create_cache
from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels import (
    ChatChannel,
    EmailChannel,
    NotificationChannel,
    PushChannel,
    RealtimeChannel,
    SMSChannel,
)
from infrastructure.notifications.directory import (
    InMemoryEndpointStore,
    InMemoryPreferenceStore,
    RecipientDirectory,
)
from infrastructure.notifications.ledger import InMemoryDeliveryLedger
from infrastructure.notifications.models import Channel
from infrastructure.notifications.orchestrator import DeliveryOrchestrator
from infrastructure.notifications.queue import InMemoryDispatchQueue
from infrastructure.notifications.service import NotificationService
from infrastructure.notifications.sessions import RealtimeSessionRegistry
from infrastructure.notifications.templates import TemplateRegistry
from integrations.chat import ChatClient
from integrations.notify import NotifyClient
from integrations.push import PushClient

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()


def build_channels(
    settings: "Settings",
    sessions: RealtimeSessionRegistry,
    templates: TemplateRegistry,
) -> Dict[Channel, NotificationChannel]:
    """Create one adapter per channel."""
    notify_client = NotifyClient(settings.notify)
    app_base_url = settings.server.APP_BASE_URL
    return {
        Channel.PUSH: PushChannel(PushClient(settings.push), templates=templates),
        Channel.EMAIL: EmailChannel(
            notify_client,
            templates=templates,
            app_base_url=app_base_url,
            unsubscribe_secret=settings.server.UNSUBSCRIBE_SECRET,
        ),
        Channel.SMS: SMSChannel(
            notify_client, templates=templates, app_base_url=app_base_url
        ),
        Channel.CHAT: ChatChannel(ChatClient(settings.chat), templates=templates),
        Channel.REALTIME: RealtimeChannel(
            sessions,
            send_timeout_seconds=settings.notifications.channel_timeout_seconds,
        ),
    }


def build_notification_service(settings: "Settings") -> NotificationService:
    """Build the notification service for the configured backend.

    Args:
        settings: Application settings.

    Returns:
        NotificationService, not yet started.
    """
    config = settings.notifications
    sessions = RealtimeSessionRegistry()
    templates = TemplateRegistry()

    if config.backend == "dynamodb":
        # Import here so the memory backend never loads boto3 clients
        from infrastructure.notifications.persistence import (
            DynamoDBDeliveryLedger,
            DynamoDBDispatchQueue,
            DynamoDBEndpointStore,
            DynamoDBPreferenceStore,
        )

        storage = settings.storage
        ledger = DynamoDBDeliveryLedger(
            storage.NOTIFICATIONS_TABLE, storage.DELIVERY_ATTEMPTS_TABLE
        )
        queue = DynamoDBDispatchQueue(storage.DISPATCH_QUEUE_TABLE)
        preference_store = DynamoDBPreferenceStore(storage.PREFERENCES_TABLE)
        endpoint_store = DynamoDBEndpointStore(storage.ENDPOINTS_TABLE)
    else:
        ledger = InMemoryDeliveryLedger()
        queue = InMemoryDispatchQueue()
        preference_store = InMemoryPreferenceStore()
        endpoint_store = InMemoryEndpointStore()

    directory = RecipientDirectory(
        preference_store,
        endpoint_store,
        sessions,
        default_timezone=config.default_timezone,
    )
    channels = build_channels(settings, sessions, templates)
    orchestrator = DeliveryOrchestrator(
        ledger=ledger,
        directory=directory,
        queue=queue,
        channels=channels,
        max_workers=config.fanout_max_workers,
        channel_timeout_seconds=config.channel_timeout_seconds,
        retry_base_delay_seconds=config.retry_base_delay_seconds,
        retry_max_delay_seconds=config.retry_max_delay_seconds,
    )

    service = NotificationService(
        ledger=ledger,
        queue=queue,
        directory=directory,
        sessions=sessions,
        orchestrator=orchestrator,
        channels=channels,
        idempotency_cache=create_cache(settings),
        templates=templates,
        worker_count=config.worker_count,
        poll_interval_seconds=config.poll_interval_seconds,
        max_retries=config.max_retries,
        bulk_limit=config.bulk_limit,
        frequency_window_seconds=config.frequency_window_seconds,
        session_inactivity_seconds=config.session_inactivity_seconds,
        idempotency_ttl_seconds=settings.idempotency.IDEMPOTENCY_TTL_SECONDS,
        unsubscribe_secret=settings.server.UNSUBSCRIBE_SECRET,
    )
    logger.info(
        "notification_service_built",
        backend=config.backend,
        worker_count=config.worker_count,
    )
    return service
