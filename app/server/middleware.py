from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from infrastructure.logging import bind_request_context
from infrastructure.services.providers import get_settings


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a correlation id and the caller to every log line of a request."""

    async def dispatch(self, request: Request, call_next):
        user_header = get_settings().server.user_header
        with bind_request_context(
            correlation_id=request.headers.get("X-Correlation-ID"),
            user_id=request.headers.get(user_header),
            request_path=request.url.path,
            request_method=request.method,
        ):
            return await call_next(request)
