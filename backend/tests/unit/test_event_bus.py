"""Tests for the event bus backends."""

import asyncio

import pytest

from hashbatch.config import TransportConfig
from hashbatch.messaging import (
    EventBusError,
    InMemoryEventBus,
    RedisStreamsEventBus,
    create_event_bus,
)


def test_publish_fans_out_to_every_consumer() -> None:
    async def run() -> None:
        bus = InMemoryEventBus()
        await bus.start()
        first, second = [], []

        async def record_first(payload):
            first.append(payload)

        async def record_second(payload):
            second.append(payload)

        await bus.consume("news", record_first)
        await bus.consume("news", record_second)
        await bus.publish("news", {"n": 1})
        await bus.publish("other", {"n": 2})
        await bus.drain()

        assert first == second == [{"n": 1}]
        await bus.stop()

    asyncio.run(run())


def test_deliveries_on_one_channel_are_sequential() -> None:
    async def run() -> None:
        bus = InMemoryEventBus()
        await bus.start()
        active = 0
        peak = 0
        seen = []

        async def slow(payload):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0)
            seen.append(payload["n"])
            active -= 1

        await bus.consume("work", slow)
        for n in range(5):
            await bus.publish("work", {"n": n})
        await bus.drain()

        assert peak == 1
        assert seen == [0, 1, 2, 3, 4]
        await bus.stop()

    asyncio.run(run())


def test_handler_error_does_not_stop_consumer() -> None:
    async def run() -> None:
        bus = InMemoryEventBus()
        await bus.start()
        seen = []

        async def picky(payload):
            if payload["n"] == 0:
                raise ValueError("bad message")
            seen.append(payload["n"])

        await bus.consume("work", picky)
        await bus.publish("work", {"n": 0})
        await bus.publish("work", {"n": 1})
        await bus.drain()

        assert seen == [1]
        await bus.stop()

    asyncio.run(run())


def test_drain_waits_for_chained_publishes() -> None:
    async def run() -> None:
        bus = InMemoryEventBus()
        await bus.start()
        seen = []

        async def relay(payload):
            await bus.publish("second", payload)

        async def record(payload):
            seen.append(payload)

        await bus.consume("first", relay)
        await bus.consume("second", record)
        await bus.publish("first", {"n": 1})
        await bus.drain()

        assert seen == [{"n": 1}]
        await bus.stop()

    asyncio.run(run())


def test_publish_requires_running_bus() -> None:
    async def run() -> None:
        bus = InMemoryEventBus()
        with pytest.raises(EventBusError):
            await bus.publish("news", {})

    asyncio.run(run())


def test_payload_must_be_json_serializable() -> None:
    async def run() -> None:
        bus = InMemoryEventBus()
        await bus.start()
        with pytest.raises(TypeError):
            await bus.publish("news", {"when": object()})
        await bus.stop()

    asyncio.run(run())


def test_backend_selection() -> None:
    assert isinstance(create_event_bus(TransportConfig(backend="memory")), InMemoryEventBus)
    redis_bus = create_event_bus(TransportConfig(stream_prefix="pfx"))
    assert isinstance(redis_bus, RedisStreamsEventBus)
    assert redis_bus.stream_key("claim-identifier") == "pfx:claim-identifier"


class RecordingRedis:
    """Just enough of redis.asyncio.Redis for publishing."""

    def __init__(self):
        self.added: list[tuple[str, dict, dict]] = []

    async def ping(self) -> bool:
        return True

    async def xadd(self, name, fields, **kwargs) -> str:
        self.added.append((name, fields, kwargs))
        return f"{len(self.added)}-0"


def test_redis_publish_caps_stream_length() -> None:
    redis = RecordingRedis()

    async def run() -> None:
        bus = RedisStreamsEventBus(
            TransportConfig(stream_prefix="hb", max_stream_length=500), redis=redis
        )
        await bus.start()
        await bus.publish("create-next-batch.request", {})
        await bus.stop()

    asyncio.run(run())

    [(name, fields, kwargs)] = redis.added
    assert name == "hb:create-next-batch.request"
    assert fields == {"payload": "{}"}
    assert kwargs == {"maxlen": 500, "approximate": True}


def test_max_stream_length_must_be_positive() -> None:
    with pytest.raises(ValueError):
        TransportConfig(max_stream_length=0)
