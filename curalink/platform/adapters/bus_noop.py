import logging
from curalink.platform.ports.event_bus import EventBusPort

log = logging.getLogger(__name__)

class NoopEventBus(EventBusPort):
    """Default when no broker is configured: events are logged and dropped."""

    async def publish(self, topic: str, key: str, value: dict) -> None:
        log.debug(f"{topic}: {value.get('event_type')} subject={key} (not delivered, no bus configured)")
