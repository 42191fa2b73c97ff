"""Caller identity for API routes.

Authentication happens upstream; the gateway forwards the resident id in a
header (``X-User-Id`` by default, see SERVER_USER_HEADER).
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from infrastructure.logging import get_module_logger
from infrastructure.services.providers import get_settings

logger = get_module_logger()


def get_current_user_id(request: Request) -> str:
    """Return the calling resident's id or reject the request with 401."""
    header = get_settings().server.user_header
    user_id = request.headers.get(header, "").strip()
    if not user_id:
        logger.warning(
            "missing_user_header",
            header=header,
            path=request.url.path,
            method=request.method,
        )
        raise HTTPException(status_code=401, detail=f"Missing {header} header")
    return user_id


CurrentUserId = Annotated[str, Depends(get_current_user_id)]
