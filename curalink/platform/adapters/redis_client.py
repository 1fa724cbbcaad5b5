from redis.asyncio import Redis, from_url
from curalink.core.config import settings

_client: Redis | None = None

def get_redis() -> Redis:
    """Process-wide client shared by the Redis cache and the Redis event bus."""
    global _client
    if _client is None:
        if not settings.REDIS_URL:
            raise RuntimeError("REDIS_URL not configured")
        _client = from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
    return _client

async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.close()
        _client = None
