from fastapi import APIRouter
from api.v1.routes.notifications import router as notifications_router
from api.v1.routes.preferences import router as preferences_router
from api.v1.routes.callbacks import router as callbacks_router
from api.v1.routes.queue import router as queue_router
from api.v1.routes.realtime import router as realtime_router


# Main v1 router (includes all endpoints)
router = APIRouter()
router.include_router(notifications_router)
router.include_router(preferences_router)
router.include_router(callbacks_router)
router.include_router(queue_router)
router.include_router(realtime_router)
