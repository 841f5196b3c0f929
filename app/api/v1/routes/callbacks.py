"""Provider delivery status webhooks."""

from fastapi import APIRouter, Request

from api.dependencies.rate_limits import callback_key_func, get_limiter
from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import Channel, ProviderStatusUpdate
from infrastructure.services import NotificationServiceDep

logger = get_module_logger()
router = APIRouter(tags=["Callbacks"])
limiter = get_limiter()


@router.post("/callbacks/{channel}/status")
@limiter.limit("600/minute", key_func=callback_key_func)
def provider_status_callback(
    request: Request,  # pylint: disable=unused-argument
    channel: Channel,
    payload: ProviderStatusUpdate,
    service: NotificationServiceDep,
):
    """Apply a provider status report to the attempt that produced message_id.

    Unknown message ids, and ids produced by a different channel, are
    acknowledged without effect so providers do not keep retrying.
    """
    notification = service.on_provider_status(
        payload.message_id,
        payload.status,
        failure_reason=payload.error,
        channel=channel,
    )
    if notification is None:
        logger.info(
            "provider_callback_ignored",
            channel=channel.value,
            message_id=payload.message_id,
            provider_status=payload.status,
        )
        return {"matched": False}
    return {
        "matched": True,
        "notification_id": notification.id,
        "status": notification.status.value,
    }
