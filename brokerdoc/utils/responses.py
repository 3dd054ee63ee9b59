from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from fastapi import Request
from fastapi.responses import JSONResponse

from brokerdoc.core.exceptions import AppError
from brokerdoc.schemas.common import ErrorDetail
from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)


def create_error_detail(
    title: str,
    status: int,
    detail: str,
    request: Optional[Request] = None,
    instance: Optional[str] = None,
) -> ErrorDetail:
    """Create a standardized error detail (RFC 7807)."""
    request_id = str(uuid4())
    if request and hasattr(request.state, "correlation_id"):
        request_id = request.state.correlation_id

    return ErrorDetail(
        title=title,
        status=status,
        detail=detail,
        instance=instance or (request.url.path if request else None),
        request_id=request_id,
        timestamp=datetime.now(timezone.utc),
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError as a problem details response."""
    if exc.status_code >= 500:
        LOGGER.error(
            f"{exc.title}: {exc.message}",
            exc_info=exc.original_error or exc,
            extra={"path": request.url.path},
        )
    else:
        LOGGER.warning(f"{exc.title}: {exc.message}", extra={"path": request.url.path})

    error_detail = create_error_detail(
        title=exc.title,
        status=exc.status_code,
        detail=exc.message,
        request=request,
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_detail.model_dump(mode="json"),
        media_type="application/problem+json",
        headers=headers,
    )
