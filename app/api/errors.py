"""Mapping of engine exceptions to HTTP responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from infrastructure.logging import get_module_logger
from infrastructure.notifications import (
    NotFoundError,
    NotificationError,
    ProviderError,
    UnauthorizedError,
    ValidationError,
)
from infrastructure.persistence import RepositoryError

logger = get_module_logger()

STATUS_CODES = {
    ValidationError: 400,
    NotFoundError: 404,
    UnauthorizedError: 403,
    ProviderError: 502,
}


def status_code_for(exc: Exception) -> int:
    for exc_type, status_code in STATUS_CODES.items():
        if isinstance(exc, exc_type):
            return status_code
    return 500


async def notification_error_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code = status_code_for(exc)
    logger.info(
        "notification_request_rejected",
        path=request.url.path,
        method=request.method,
        status_code=status_code,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


async def repository_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "repository_error",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_code=getattr(exc, "error_code", None),
    )
    return JSONResponse(
        status_code=503, content={"detail": "Storage temporarily unavailable"}
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NotificationError, notification_error_handler)
    app.add_exception_handler(RepositoryError, repository_error_handler)
