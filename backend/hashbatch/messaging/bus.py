"""Event bus interface and backend selection."""

import logging
from typing import Any, Awaitable, Callable, Protocol

from hashbatch.config import TransportConfig

logger = logging.getLogger(__name__)

Payload = dict[str, Any]
Handler = Callable[[Payload], Awaitable[None]]


class EventBus(Protocol):
    """At-least-once publish/subscribe over named channels.

    Each consumed channel is handled by its own task; deliveries on one
    channel reach its handler one at a time.
    """

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def publish(self, channel: str, payload: Payload) -> None: ...

    async def consume(self, channel: str, handler: Handler) -> None: ...


def create_event_bus(config: TransportConfig) -> EventBus:
    """Build the bus selected by ``transport.backend``."""
    if config.backend == "memory":
        from .memory import InMemoryEventBus

        logger.info("Using in-memory event bus")
        return InMemoryEventBus()

    from .redis_streams import RedisStreamsEventBus

    return RedisStreamsEventBus(config)
