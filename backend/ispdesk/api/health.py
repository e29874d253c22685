"""Liveness checks for the API, its database and the revenue cache."""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ispdesk.core.cache import REVENUE_PREFIX
from ispdesk.core.config import settings
from ispdesk.db.redis import get_redis
from ispdesk.db.session import get_db
from ispdesk.models.customer import Customer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Process is up."""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


@router.get("/health/db")
async def health_check_db(
    response: Response, db: AsyncSession = Depends(get_db)
) -> dict[str, str | int]:
    """Database reachable and the customers table readable."""
    try:
        customers = await db.scalar(select(func.count(Customer.id)))
        return {"status": "healthy", "database": "connected", "customers": customers or 0}
    except Exception as e:
        logger.exception("Database health check failed")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "unhealthy", "database": str(e)}


@router.get("/health/redis")
async def health_check_redis(response: Response) -> dict[str, str | int]:
    """Redis reachable; revenue views fall back to recomputation when it is not."""
    try:
        redis = await get_redis()
        await redis.ping()
        cached_views = 0
        async for _ in redis.scan_iter(match=f"{REVENUE_PREFIX}:*"):
            cached_views += 1
        return {"status": "healthy", "redis": "connected", "cached_views": cached_views}
    except Exception as e:
        logger.exception("Redis health check failed")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "unhealthy", "redis": str(e)}
