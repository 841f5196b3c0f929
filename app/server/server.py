from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from infrastructure.services import get_settings
from infrastructure.logging import get_module_logger
from api.router import api_router
from api.dependencies.error_handlers import setup_error_handlers
from api.dependencies.rate_limits import setup_rate_limiter
from server.lifespan import lifespan
from server.middleware import RequestContextMiddleware

logger = get_module_logger()
settings = get_settings()


handler = FastAPI(title="Notification Service", lifespan=lifespan)
setup_rate_limiter(handler)
setup_error_handlers(handler)


allow_origins = ["*"] if settings.is_production else settings.server.cors_origins
handler.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
handler.add_middleware(RequestContextMiddleware)


handler.include_router(api_router)
