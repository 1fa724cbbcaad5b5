import json
import logging
from curalink.core.config import settings
from curalink.platform.adapters.redis_client import get_redis
from curalink.platform.ports.event_bus import EventBusPort

log = logging.getLogger(__name__)

DEFAULT_STREAM = "curalink.events"

class RedisEventBus(EventBusPort):
    """Appends each event to a capped Redis stream, one entry per event."""

    def __init__(self):
        self.redis = get_redis()
        self.stream = settings.REDIS_STREAM or DEFAULT_STREAM

    async def publish(self, topic: str, key: str, value: dict) -> None:
        # flat fields so consumers can filter on event_type without decoding the payload
        entry = {
            "topic": topic,
            "key": key,
            "event_type": value.get("event_type", ""),
            "outbox_id": value.get("outbox_id", ""),
            "body": json.dumps(value),
        }
        entry_id = await self.redis.xadd(self.stream, entry, maxlen=settings.REDIS_STREAM_MAXLEN, approximate=True)
        log.debug(f"XADD {self.stream} {entry_id} {entry['event_type']} subject={key}")
