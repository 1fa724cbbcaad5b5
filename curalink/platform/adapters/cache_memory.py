import time
from typing import Any
from curalink.platform.ports.cache import CachePort

class MemoryCache(CachePort):
    """Per-process TTL cache. Expired entries are dropped on read and swept on write."""

    def __init__(self, clock=time.monotonic, sweep_interval_seconds: float = 30.0):
        self._clock = clock
        self._sweep_interval = sweep_interval_seconds
        self._next_sweep = clock() + sweep_interval_seconds
        self._entries: dict[str, tuple[float, Any]] = {}

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        now = self._clock()
        if now >= self._next_sweep:
            self._sweep(now)
        self._entries[key] = (now + ttl_seconds, value)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def _sweep(self, now: float) -> None:
        self._entries = {k: e for k, e in self._entries.items() if e[0] > now}
        self._next_sweep = now + self._sweep_interval

    def __len__(self) -> int:
        return len(self._entries)
