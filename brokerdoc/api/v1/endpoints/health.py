"""Health check API endpoints."""

from fastapi import APIRouter, Request

from brokerdoc.core.config import settings
from brokerdoc.schemas.common import HealthCheckResponse
from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=HealthCheckResponse,
    summary="Health check endpoint",
    description="Check if the service is running and the database is reachable",
    operation_id="get_service_health_status",
)
async def health_check(request: Request) -> HealthCheckResponse:
    """Health check endpoint."""
    db_client = getattr(request.app.state, "db_client", None)
    db_health = await db_client.health_check() if db_client else {"status": "unavailable"}

    return HealthCheckResponse(
        status="healthy" if db_health["status"] == "healthy" else "degraded",
        version=settings.app_version,
        service=settings.app_name,
        database=db_health["status"],
    )
