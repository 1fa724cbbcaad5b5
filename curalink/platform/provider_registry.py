from curalink.core.config import settings
from curalink.platform.ports.event_bus import EventBusPort
from curalink.platform.ports.cache import CachePort
from curalink.platform.adapters.bus_noop import NoopEventBus
from curalink.platform.adapters.bus_redis import RedisEventBus
from curalink.platform.adapters.cache_memory import MemoryCache
from curalink.platform.adapters.cache_redis import RedisCache
from curalink.platform.adapters.redis_client import close_redis

class ProviderRegistry:
    """Lazily builds the configured infrastructure adapters, one instance each per process."""

    _event_bus: EventBusPort | None = None
    _cache: CachePort | None = None

    @classmethod
    def event_bus(cls) -> EventBusPort:
        if cls._event_bus is None:
            cls._event_bus = RedisEventBus() if settings.EVENT_BUS_PROVIDER.lower() == "redis" else NoopEventBus()
        return cls._event_bus

    @classmethod
    def cache(cls) -> CachePort:
        if cls._cache is None:
            cls._cache = RedisCache() if settings.CACHE_PROVIDER == "redis" else MemoryCache()
        return cls._cache

    @classmethod
    def reset(cls) -> None:
        cls._event_bus = None
        cls._cache = None

    @classmethod
    async def close(cls) -> None:
        uses_redis = isinstance(cls._cache, RedisCache) or isinstance(cls._event_bus, RedisEventBus)
        cls.reset()
        if uses_redis:
            await close_redis()

registry = ProviderRegistry()
