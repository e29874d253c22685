"""Redis caching helpers for derived billing views.

Every helper swallows Redis failures and reports a miss instead: the
revenue views are always recomputable from the database, so an
unavailable cache only costs latency.
"""

import json
import logging
from typing import Any

from ispdesk.db.redis import get_redis

logger = logging.getLogger(__name__)

REVENUE_PREFIX = "revenues"


def revenue_cache_key(view: str, *parts: object) -> str:
    """Build a cache key for a revenue view.

    Args:
        view: View name, e.g. "summary" or "yearly"
        *parts: Period and filter components; None renders as "all"

    Returns:
        Key such as "revenues:summary:2024:02:all"
    """
    rendered = ["all" if part is None else str(part) for part in parts]
    return ":".join([REVENUE_PREFIX, view, *rendered])


async def cache_get(key: str) -> Any | None:
    """Get a JSON value from cache, or None on miss or error."""
    try:
        redis = await get_redis()
        value = await redis.get(key)

        if value is not None:
            logger.debug("Cache hit: %s", key)
            return json.loads(value)

        logger.debug("Cache miss: %s", key)
        return None

    except Exception:
        logger.exception("Error getting from cache key '%s'", key)
        return None


async def cache_set(key: str, value: Any, ttl: int = 300) -> bool:
    """Set a JSON-serializable value with a TTL in seconds."""
    try:
        redis = await get_redis()
        await redis.setex(key, ttl, json.dumps(value, default=str))
        logger.debug("Cache set: %s (TTL: %ss)", key, ttl)
        return True

    except Exception:
        logger.exception("Error setting cache key '%s'", key)
        return False


async def cache_invalidate(pattern: str) -> int:
    """Invalidate all cache keys matching a pattern.

    Args:
        pattern: Redis key pattern (e.g., "revenues:*")

    Returns:
        Number of keys deleted
    """
    try:
        redis = await get_redis()
        keys = [key async for key in redis.scan_iter(match=pattern)]

        if keys:
            deleted: int = await redis.delete(*keys)
            logger.info("Cache invalidated: %s keys matching '%s'", deleted, pattern)
            return deleted

        return 0

    except Exception:
        logger.exception("Error invalidating cache pattern '%s'", pattern)
        return 0


async def invalidate_revenue_views() -> int:
    """Drop every cached revenue view after a customer or city mutation."""
    return await cache_invalidate(f"{REVENUE_PREFIX}:*")
