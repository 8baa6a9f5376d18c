"""Health check endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import background
from app.dependencies import get_db
from app.schemas import HealthCheckResponse
from app.services.cache_service import CacheService, get_cache

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
):
    """Report database and Redis reachability plus the side-effect backlog."""
    try:
        await db.execute(text("SELECT 1"))
        db_status = "ok"
    except SQLAlchemyError as e:
        db_status = f"error: {e}"

    redis_status = "ok" if await cache.health_check() else "error: ping failed"
    services = {"database": db_status, "redis": redis_status}

    return HealthCheckResponse(
        status="ok" if all(s == "ok" for s in services.values()) else "degraded",
        database=db_status,
        redis=redis_status,
        pending_side_effects=background.pending_count(),
        services=services,
    )
