"""In-process event bus over asyncio queues."""

import asyncio
import json
import logging
from dataclasses import dataclass, field

from .bus import Handler, Payload
from .exceptions import EventBusError

logger = logging.getLogger(__name__)


@dataclass
class _Subscription:
    channel: str
    handler: Handler
    queue: asyncio.Queue = field(default_factory=asyncio.Queue)
    task: asyncio.Task | None = None


class InMemoryEventBus:
    """Fan-out bus for a single process.

    Payloads are JSON-encoded on publish and decoded on delivery so handlers
    see exactly what a networked transport would hand them. Messages published
    to a channel nobody consumes are dropped.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[_Subscription]] = {}
        self._running = False
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()

    async def start(self) -> None:
        self._running = True
        logger.info("In-memory event bus started")

    async def stop(self) -> None:
        self._running = False
        tasks = [
            sub.task
            for subs in self._subscriptions.values()
            for sub in subs
            if sub.task is not None
        ]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._subscriptions.clear()
        self._in_flight = 0
        self._idle.set()
        logger.info("In-memory event bus stopped")

    async def publish(self, channel: str, payload: Payload) -> None:
        if not self._running:
            raise EventBusError(f"Cannot publish to {channel}: bus is not running")

        encoded = json.dumps(payload)
        subscriptions = self._subscriptions.get(str(channel), [])
        if not subscriptions:
            logger.debug(f"No consumers for {channel}, message dropped")
            return

        for sub in subscriptions:
            self._in_flight += 1
            self._idle.clear()
            sub.queue.put_nowait(encoded)

    async def consume(self, channel: str, handler: Handler) -> None:
        sub = _Subscription(channel=str(channel), handler=handler)
        sub.task = asyncio.create_task(
            self._consume_loop(sub), name=f"consume:{channel}"
        )
        self._subscriptions.setdefault(str(channel), []).append(sub)
        logger.debug(f"Consuming {channel}")

    async def drain(self) -> None:
        """Wait until every published message has been handled.

        Includes messages published by handlers while draining.
        """
        await self._idle.wait()

    async def _consume_loop(self, sub: _Subscription) -> None:
        while True:
            encoded = await sub.queue.get()
            try:
                await sub.handler(json.loads(encoded))
            except Exception as e:
                logger.error(
                    f"Handler for {sub.channel} raised: {e}", exc_info=True
                )
            finally:
                sub.queue.task_done()
                self._in_flight -= 1
                if self._in_flight == 0:
                    self._idle.set()
