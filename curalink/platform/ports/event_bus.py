from typing import Protocol, runtime_checkable

@runtime_checkable
class EventBusPort(Protocol):
    """Delivers outbox envelopes downstream. Delivery is at-least-once; ``key`` is the subject id."""

    async def publish(self, topic: str, key: str, value: dict) -> None: ...
