"""Health check endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: Literal["ok", "degraded", "unhealthy"]
    database: Literal["connected", "disconnected"] | None = None
    job_worker: Literal["running", "stopped"] | None = None


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness probe; does not touch the database."""
    return HealthResponse(status="ok")


@router.get("/health/ready", response_model=HealthResponse)
async def readiness_check(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> HealthResponse:
    """Readiness check covering database connectivity and the sync worker.

    Returns:
        ``ok`` when both are up, ``degraded`` when only the worker is down,
        ``unhealthy`` when the database is unreachable.
    """
    worker = getattr(request.app.state, "job_worker", None)
    worker_state: Literal["running", "stopped"] = (
        "running" if worker is not None and worker.is_running else "stopped"
    )

    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error(
            "health.database_disconnected",
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
        )
        return HealthResponse(status="unhealthy", database="disconnected", job_worker=worker_state)

    status: Literal["ok", "degraded"] = "ok" if worker_state == "running" else "degraded"
    return HealthResponse(status=status, database="connected", job_worker=worker_state)
