"""Queue and delivery health routes."""

from fastapi import APIRouter, Request

from api.dependencies.rate_limits import get_limiter
from infrastructure.services import NotificationServiceDep

router = APIRouter(tags=["Operations"])
limiter = get_limiter()


@router.get("/queue/stats")
@limiter.limit("60/minute")
def get_queue_stats(
    request: Request,  # pylint: disable=unused-argument
    service: NotificationServiceDep,
):
    """Queue depth, in-flight rounds, online sessions and circuit breakers."""
    return service.queue_stats()


@router.get("/health/delivery")
@limiter.limit("60/minute")
def get_delivery_health(
    request: Request,  # pylint: disable=unused-argument
    service: NotificationServiceDep,
):
    """Channel provider health plus queue statistics."""
    return service.health_check()
