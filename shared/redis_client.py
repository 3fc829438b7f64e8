# shared/redis_client.py
import logging
from typing import Optional

import redis.asyncio as redis

from shared.settings import Settings, get_settings

logger = logging.getLogger(__name__)

# Global Redis client
_redis_client: Optional[redis.Redis] = None


async def init_redis(settings: Settings = None):
    """Initialize Redis connection"""
    global _redis_client
    settings = settings or get_settings()

    _redis_client = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
        health_check_interval=30,
        socket_connect_timeout=5,
        retry_on_timeout=True,
    )

    # Test connection
    await _redis_client.ping()


async def close_redis():
    """Close Redis connection"""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


class RedisCache:
    """Utility class for common Redis caching operations"""

    def __init__(self, client: redis.Redis, prefix: str = "cache"):
        self.client = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        """Generate namespaced key"""
        return f"{self.prefix}:{key}"

    async def get(self, key: str) -> Optional[str]:
        """Get value from cache"""
        return await self.client.get(self._key(key))

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """Set value in cache with optional TTL"""
        if ttl:
            await self.client.setex(self._key(key), ttl, value)
        else:
            await self.client.set(self._key(key), value)


async def get_search_cache() -> Optional[RedisCache]:
    """
    Dependency returning the recipe search cache.

    Returns None when Redis was not reachable at startup; search then runs
    uncached.
    """
    if not _redis_client:
        return None
    return RedisCache(_redis_client, "recipe_search")
