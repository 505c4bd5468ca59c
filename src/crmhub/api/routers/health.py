"""Health check endpoints."""

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: str
    search: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check application health status.

    Returns:
        Health status including database connectivity and whether the
        external search provider is configured.
    """
    from crmhub.core.config import get_settings
    from crmhub.models.database import get_engine

    settings = get_settings()

    # Check database
    db_status = "healthy"
    try:
        engine = get_engine()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except RuntimeError:
        db_status = "not initialized"
    except Exception:
        db_status = "error"

    search_status = "configured" if settings.has_search_config() else "not configured"

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        version=settings.app_version,
        database=db_status,
        search=search_status,
    )


@router.get("/ready")
async def readiness_check() -> dict:
    """Kubernetes readiness probe.

    Returns:
        Simple ready status.
    """
    return {"ready": True}


@router.get("/live")
async def liveness_check() -> dict:
    """Kubernetes liveness probe."""
    return {"alive": True}
