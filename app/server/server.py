from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.errors import register_exception_handlers
from api.router import api_router
from infrastructure.logging import get_module_logger
from infrastructure.services.providers import get_settings
from server.lifespan import lifespan
from server.middleware import RequestContextMiddleware

logger = get_module_logger()
settings = get_settings()


handler = FastAPI(title="hoa-notify", lifespan=lifespan)
register_exception_handlers(handler)


allow_origins = ["*"] if settings.is_production else settings.server.origins
handler.add_middleware(RequestContextMiddleware)
handler.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


handler.include_router(api_router)
