"""
Redis Cache Service for caching reference data.
Delivery rules change rarely and are read on every fence form load.
"""
import json
from typing import Optional, Any, List
from redis.asyncio import Redis

from fenceline.app.core.settings import get_settings


class CacheService:
    """Service for caching operations using Redis."""

    _redis: Optional[Redis] = None

    # Default TTL values (in seconds)
    TTL_RULES = 3600           # 1 hour - rules are edited by operators only
    TTL_DEFAULT = 300          # 5 minutes - default for other data

    # Cache keys
    KEY_RULES = "delivery_rules:all"

    @classmethod
    async def get_redis(cls) -> Redis:
        """Get or create Redis connection."""
        if cls._redis is None:
            settings = get_settings()
            cls._redis = Redis(
                host=settings.REDIS_HOST,
                port=settings.REDIS_PORT,
                db=settings.REDIS_DB,
                decode_responses=True
            )
        return cls._redis

    @classmethod
    async def close(cls):
        """Close Redis connection."""
        if cls._redis:
            await cls._redis.aclose()
            cls._redis = None

    def __init__(self, redis: Redis):
        self.redis = redis

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        data = await self.redis.get(key)
        if data:
            return json.loads(data)
        return None

    async def set(self, key: str, value: Any, ttl: int = TTL_DEFAULT):
        """Set value in cache with TTL."""
        await self.redis.set(key, json.dumps(value, ensure_ascii=False), ex=ttl)

    async def delete(self, key: str):
        await self.redis.delete(key)

    # ----- Delivery rules -----

    async def get_rules(self) -> Optional[List[dict]]:
        return await self.get(self.KEY_RULES)

    async def set_rules(self, rules: List[dict]):
        await self.set(self.KEY_RULES, rules, self.TTL_RULES)

    async def invalidate_rules(self):
        await self.delete(self.KEY_RULES)
