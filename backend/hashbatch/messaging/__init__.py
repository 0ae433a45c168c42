"""Event transport for hashbatch - named channels, at-least-once delivery."""

from .bus import EventBus, Handler, Payload, create_event_bus
from .exceptions import EventBusError
from .memory import InMemoryEventBus
from .redis_streams import RedisStreamsEventBus

__all__ = [
    "EventBus",
    "Handler",
    "Payload",
    "create_event_bus",
    "EventBusError",
    "InMemoryEventBus",
    "RedisStreamsEventBus",
]
