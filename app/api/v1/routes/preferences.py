"""Recipient preference, endpoint and unsubscribe routes."""

from fastapi import APIRouter, Query, Request

from api.dependencies.rate_limits import default_rate_limit, get_limiter
from infrastructure.notifications.models import (
    EndpointsUpdate,
    PreferenceUpdate,
    RecipientEndpoints,
    RecipientPreference,
)
from infrastructure.services import NotificationServiceDep

router = APIRouter(tags=["Preferences"])
limiter = get_limiter()


@router.get("/users/{user_id}/preferences", response_model=RecipientPreference)
@limiter.limit(default_rate_limit)
def get_preferences(
    request: Request,  # pylint: disable=unused-argument
    user_id: str,
    service: NotificationServiceDep,
):
    """Stored preferences (defaults are created on first read)."""
    return service.get_preferences(user_id)


@router.patch("/users/{user_id}/preferences", response_model=RecipientPreference)
@limiter.limit(default_rate_limit)
def update_preferences(
    request: Request,  # pylint: disable=unused-argument
    user_id: str,
    patch: PreferenceUpdate,
    service: NotificationServiceDep,
):
    """Apply the fields present in the body; category toggles are merged."""
    return service.update_preferences(user_id, patch)


@router.post("/users/{user_id}/preferences/reset", response_model=RecipientPreference)
@limiter.limit(default_rate_limit)
def reset_preferences(
    request: Request,  # pylint: disable=unused-argument
    user_id: str,
    service: NotificationServiceDep,
):
    return service.reset_preferences(user_id)


@router.get("/users/{user_id}/endpoints", response_model=RecipientEndpoints)
@limiter.limit(default_rate_limit)
def get_endpoints(
    request: Request,  # pylint: disable=unused-argument
    user_id: str,
    service: NotificationServiceDep,
):
    return service.get_endpoints(user_id)


@router.put("/users/{user_id}/endpoints", response_model=RecipientEndpoints)
@limiter.limit(default_rate_limit)
def set_endpoints(
    request: Request,  # pylint: disable=unused-argument
    user_id: str,
    update: EndpointsUpdate,
    service: NotificationServiceDep,
):
    """Replace the device tokens, email, phone and chat id of a user."""
    return service.set_endpoints(user_id, update)


@router.get("/unsubscribe", response_model=RecipientPreference)
@limiter.limit("30/minute")
def unsubscribe(
    request: Request,  # pylint: disable=unused-argument
    service: NotificationServiceDep,
    token: str = Query(..., min_length=1),
):
    """One-click unsubscribe from the signed link in email footers."""
    return service.unsubscribe(token)
