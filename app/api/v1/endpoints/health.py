"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from app.config import settings
from app.core.firebase import is_firebase_initialized
from app.core.redis_client import check_redis_connection
from app.database import check_database_connection

router = APIRouter()


class HealthResponse(BaseModel):
    """Liveness of the scheduling API."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Liveness plus the state of each backing service."""

    database: str
    redis: str
    push: str


def _label(healthy: bool) -> str:
    return "healthy" if healthy else "unhealthy"


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Detailed health check",
)
async def detailed_health_check() -> DetailedHealthResponse:
    """
    Report database, Redis and push delivery status.

    Only the database is required for scheduling; Redis (statistics cache)
    and Firebase (push) failing degrade the service without stopping it.

    Returns:
        Detailed health status
    """
    db_healthy = await check_database_connection()
    redis_healthy = await check_redis_connection()

    if not db_healthy:
        overall = "unhealthy"
    elif not redis_healthy:
        overall = "degraded"
    else:
        overall = "healthy"

    return DetailedHealthResponse(
        status=overall,
        version=settings.app_version,
        environment=settings.environment,
        database=_label(db_healthy),
        redis=_label(redis_healthy),
        push="enabled" if is_firebase_initialized() else "disabled",
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    return {"message": "pong"}
