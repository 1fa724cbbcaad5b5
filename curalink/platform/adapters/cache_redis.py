import json
import logging
from typing import Any
from redis.exceptions import RedisError
from curalink.platform.adapters.redis_client import get_redis
from curalink.platform.ports.cache import CachePort

log = logging.getLogger(__name__)

class RedisCache(CachePort):
    """JSON values under SETEX. Redis errors degrade to a miss; the database stays the source of truth."""

    def __init__(self):
        self.redis = get_redis()

    async def get(self, key: str) -> Any | None:
        try:
            data = await self.redis.get(key)
        except RedisError:
            log.warning(f"Cache get failed for key={key}", exc_info=True)
            return None
        return None if data is None else json.loads(data)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            await self.redis.setex(key, ttl_seconds, json.dumps(value))
        except RedisError:
            log.warning(f"Cache set failed for key={key}", exc_info=True)

    async def delete(self, key: str) -> None:
        try:
            await self.redis.delete(key)
        except RedisError:
            log.warning(f"Cache delete failed for key={key}", exc_info=True)
