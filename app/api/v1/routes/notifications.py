"""Notification submission, status and inbox routes."""

from typing import List, Optional

from fastapi import APIRouter, Query, Request, status
from pydantic import BaseModel, Field

from api.dependencies.rate_limits import default_rate_limit, get_limiter
from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import (
    Notification,
    NotificationFilters,
    NotificationRequest,
    NotificationStatus,
    NotificationStatusView,
    NotificationType,
)
from infrastructure.notifications.templates import NotificationTemplate
from infrastructure.services import NotificationServiceDep

logger = get_module_logger()
router = APIRouter(tags=["Notifications"])
limiter = get_limiter()


class SubmitResponse(BaseModel):
    notification_id: str


class BulkNotificationRequest(BaseModel):
    notifications: List[NotificationRequest] = Field(..., min_length=1)


class BulkSubmitResponse(BaseModel):
    notification_ids: List[str]
    count: int


class NotificationListResponse(BaseModel):
    notifications: List[Notification]
    unread_count: int
    limit: int
    offset: int


@router.post(
    "/notifications",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=SubmitResponse,
)
@limiter.limit(default_rate_limit)
def submit_notification(
    request: Request,  # pylint: disable=unused-argument
    payload: NotificationRequest,
    service: NotificationServiceDep,
):
    """Accept a notification for delivery.

    HIGH priority notifications are dispatched before the response is
    returned; everything else is queued. Repeating an idempotency_key
    returns the id of the first submission.
    """
    notification_id = service.submit(payload)
    return SubmitResponse(notification_id=notification_id)


@router.post(
    "/notifications/bulk",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=BulkSubmitResponse,
)
@limiter.limit(default_rate_limit)
def submit_bulk(
    request: Request,  # pylint: disable=unused-argument
    payload: BulkNotificationRequest,
    service: NotificationServiceDep,
):
    """Accept a batch of notifications (all rejected if over the bulk limit)."""
    ids = service.submit_bulk(payload.notifications)
    return BulkSubmitResponse(notification_ids=ids, count=len(ids))


@router.get("/notifications/{notification_id}", response_model=Notification)
@limiter.limit(default_rate_limit)
def get_notification(
    request: Request,  # pylint: disable=unused-argument
    notification_id: str,
    service: NotificationServiceDep,
):
    return service.get(notification_id)


@router.get(
    "/notifications/{notification_id}/status",
    response_model=NotificationStatusView,
)
@limiter.limit(default_rate_limit)
def get_notification_status(
    request: Request,  # pylint: disable=unused-argument
    notification_id: str,
    service: NotificationServiceDep,
):
    """Current status with every delivery attempt recorded so far."""
    return service.get_status(notification_id)


@router.post("/notifications/{notification_id}/cancel")
@limiter.limit(default_rate_limit)
def cancel_notification(
    request: Request,  # pylint: disable=unused-argument
    notification_id: str,
    service: NotificationServiceDep,
):
    """Cancel a queued notification.

    Returns ``cancelled: false`` when a dispatch round already took it.
    """
    cancelled = service.cancel(notification_id)
    return {"notification_id": notification_id, "cancelled": cancelled}


@router.post(
    "/notifications/{notification_id}/retry",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=SubmitResponse,
)
@limiter.limit(default_rate_limit)
def retry_notification(
    request: Request,  # pylint: disable=unused-argument
    notification_id: str,
    service: NotificationServiceDep,
):
    """Resubmit a FAILED notification with a fresh retry budget."""
    return SubmitResponse(notification_id=service.retry(notification_id))


@router.post("/notifications/{notification_id}/read", response_model=Notification)
@limiter.limit(default_rate_limit)
def mark_notification_read(
    request: Request,  # pylint: disable=unused-argument
    notification_id: str,
    service: NotificationServiceDep,
    user_id: Optional[str] = Query(default=None),
):
    return service.mark_read(notification_id, user_id=user_id)


@router.get(
    "/users/{user_id}/notifications",
    response_model=NotificationListResponse,
)
@limiter.limit(default_rate_limit)
def list_user_notifications(
    request: Request,  # pylint: disable=unused-argument
    user_id: str,
    service: NotificationServiceDep,
    status_filter: Optional[NotificationStatus] = Query(default=None, alias="status"),
    type_filter: Optional[NotificationType] = Query(default=None, alias="type"),
    unread_only: bool = False,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
):
    """Newest first, with the user's unread count."""
    filters = NotificationFilters(
        status=status_filter, type=type_filter, unread_only=unread_only
    )
    notifications = service.list_for_user(user_id, filters, limit=limit, offset=offset)
    return NotificationListResponse(
        notifications=notifications,
        unread_count=service.unread_count(user_id),
        limit=limit,
        offset=offset,
    )


@router.post("/users/{user_id}/notifications/read-all")
@limiter.limit(default_rate_limit)
def mark_all_read(
    request: Request,  # pylint: disable=unused-argument
    user_id: str,
    service: NotificationServiceDep,
):
    return {"user_id": user_id, "updated": service.mark_all_read(user_id)}


@router.get("/users/{user_id}/notifications/unread-count")
@limiter.limit(default_rate_limit)
def get_unread_count(
    request: Request,  # pylint: disable=unused-argument
    user_id: str,
    service: NotificationServiceDep,
):
    return {"user_id": user_id, "unread_count": service.unread_count(user_id)}


@router.get("/templates", response_model=List[NotificationTemplate])
@limiter.limit(default_rate_limit)
def list_templates(
    request: Request,  # pylint: disable=unused-argument
    service: NotificationServiceDep,
):
    return service.list_templates()


@router.put("/templates/{template_id}", response_model=NotificationTemplate)
@limiter.limit(default_rate_limit)
def register_template(
    request: Request,  # pylint: disable=unused-argument
    template_id: str,
    template: NotificationTemplate,
    service: NotificationServiceDep,
):
    """Create or replace a template; replacing bumps its version."""
    registered = service.register_template(template.model_copy(update={"id": template_id}))
    logger.info(
        "template_updated",
        template_id=template_id,
        channel=registered.channel.value,
        version=registered.version,
    )
    return registered
