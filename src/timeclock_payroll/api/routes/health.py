"""Health check endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from timeclock_payroll.api.dependencies import ServicesDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Service status plus the storage backend state."""

    status: str
    timestamp: datetime
    storage: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
)
def health_check(services: ServicesDep) -> HealthResponse:
    """Check API and storage health."""
    storage_status = "memory"
    if services.session_factory is not None:
        storage_status = "unhealthy"
        try:
            with services.session_factory() as session:
                session.execute(text("SELECT 1"))
            storage_status = "healthy"
        except SQLAlchemyError:
            logger.exception("Database health check failed")

    return HealthResponse(
        status="degraded" if storage_status == "unhealthy" else "healthy",
        timestamp=datetime.now(timezone.utc),
        storage=storage_status,
    )


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check() -> dict[str, str]:
    """Report that routes are mounted and services are built."""
    return {"status": "ready"}


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> dict[str, str]:
    """Report that the process is serving requests."""
    return {"status": "alive"}
