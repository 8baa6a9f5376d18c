"""Redis cache for reviewer hotspot results.

Hotspots are recomputed from every review in the window, so results are
kept in Redis for LOCATIONS_CACHE_TTL_SECONDS and dropped whenever a review
is added or deleted. A Redis outage never fails a request: every error is
logged and treated as a cache miss.
"""

from typing import List, Optional

import structlog
from pydantic import TypeAdapter, ValidationError
from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError

from app.config import settings
from app.schemas.review import LocationWindow, LocationWithCount

logger = structlog.get_logger(__name__)

LOCATIONS_KEY_PREFIX = "reviews:locations"

_locations_adapter = TypeAdapter(List[LocationWithCount])


def cache_key_for_locations(window: LocationWindow, value: int) -> str:
    return f"{LOCATIONS_KEY_PREFIX}:{window.value}:{value}"


class CacheService:
    """Async Redis cache for clustered reviewer locations."""

    def __init__(self, redis_url: str, ttl: int = settings.LOCATIONS_CACHE_TTL_SECONDS):
        """Initialize cache service.

        Args:
            redis_url: Redis connection URL (e.g., "redis://localhost:6379/0")
            ttl: Lifetime of a cached hotspot list in seconds
        """
        self.redis_url = redis_url
        self.ttl = ttl
        self._redis: Optional[Redis] = None
        self.logger = logger.bind(service="cache_service")

    async def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            self.logger.info("redis_connection_created", url=self.redis_url)

        return self._redis

    async def get_locations(
        self,
        window: LocationWindow,
        value: int,
    ) -> Optional[List[LocationWithCount]]:
        """Cached hotspots for a window, or None on a miss.

        Unreadable entries count as a miss.
        """
        key = cache_key_for_locations(window, value)
        try:
            redis = await self._get_redis()
            raw = await redis.get(key)
        except RedisError as e:
            self.logger.error("cache_get_failed", key=key, error=str(e), exc_info=True)
            return None

        if raw is None:
            self.logger.debug("cache_miss", key=key)
            return None

        try:
            locations = _locations_adapter.validate_json(raw)
        except ValidationError:
            self.logger.warning("cache_entry_invalid", key=key)
            return None

        self.logger.debug("cache_hit", key=key, clusters=len(locations))
        return locations

    async def set_locations(
        self,
        window: LocationWindow,
        value: int,
        locations: List[LocationWithCount],
    ) -> bool:
        """Store hotspots for a window. Returns False if Redis refused."""
        key = cache_key_for_locations(window, value)
        payload = _locations_adapter.dump_json(locations).decode()
        try:
            redis = await self._get_redis()
            await redis.set(key, payload, ex=self.ttl)
        except RedisError as e:
            self.logger.error("cache_set_failed", key=key, error=str(e), exc_info=True)
            return False

        self.logger.debug("cache_set", key=key, ttl=self.ttl, clusters=len(locations))
        return True

    async def invalidate_locations(self) -> int:
        """Drop every cached hotspot list.

        Returns:
            Number of keys deleted, 0 on error
        """
        try:
            redis = await self._get_redis()
            keys = [key async for key in redis.scan_iter(match=f"{LOCATIONS_KEY_PREFIX}:*", count=100)]
            deleted = await redis.delete(*keys) if keys else 0
        except RedisError as e:
            self.logger.error("cache_invalidate_failed", error=str(e), exc_info=True)
            return 0

        if deleted:
            self.logger.info("locations_cache_invalidated", keys_deleted=deleted)
        return deleted

    async def health_check(self) -> bool:
        try:
            redis = await self._get_redis()
            await redis.ping()
            return True

        except Exception as e:
            self.logger.error("redis_health_check_failed", error=str(e))
            return False

    async def close(self) -> None:
        """Close Redis connection. Called on application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            self.logger.info("redis_connection_closed")


# Global cache instance
_cache_instance: Optional[CacheService] = None


def get_cache_service() -> CacheService:
    """Get or create the global cache service instance."""
    global _cache_instance

    if _cache_instance is None:
        _cache_instance = CacheService(settings.REDIS_URL)
        logger.info("cache_service_initialized", redis_url=settings.REDIS_URL)

    return _cache_instance


async def get_cache() -> CacheService:
    """FastAPI dependency for cache service."""
    return get_cache_service()
