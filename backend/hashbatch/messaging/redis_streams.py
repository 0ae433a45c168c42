"""Event bus over Redis Streams with consumer groups.

Every channel is a stream named ``<stream_prefix>:<channel>`` whose entries
carry a single ``payload`` field holding JSON. Each consumed channel gets a
task that reads through the service's consumer group and acknowledges an
entry only after its handler returned, so an entry whose handler raised, or
whose process died mid-handling, is delivered again when the consumer next
starts.

Acknowledging does not delete. Each XADD trims its stream to roughly
``max_stream_length`` entries, so a consumer that falls further behind than
that loses the oldest ones.
"""

import asyncio
import json
import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError, ResponseError

from hashbatch.config import TransportConfig, sanitize_url

from .bus import Handler, Payload
from .exceptions import EventBusError

logger = logging.getLogger(__name__)

PAYLOAD_FIELD = "payload"


class RedisStreamsEventBus:
    def __init__(self, config: TransportConfig, redis: Redis | None = None):
        self.config = config
        self._redis = redis
        self._owns_client = redis is None
        self._tasks: list[asyncio.Task] = []
        self._running = False

    @property
    def redis(self) -> Redis:
        if self._redis is None:
            raise EventBusError("Event bus not started. Call start() first.")
        return self._redis

    def stream_key(self, channel: str) -> str:
        return f"{self.config.stream_prefix}:{channel}"

    async def start(self) -> None:
        if self._redis is None:
            self._redis = Redis.from_url(self.config.url, decode_responses=True)
        await self._redis.ping()
        self._running = True
        logger.info(
            f"Redis event bus started (url={sanitize_url(self.config.url)}, "
            f"group={self.config.consumer_group}, consumer={self.config.consumer_name})"
        )

    async def stop(self) -> None:
        self._running = False
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

        if self._redis is not None and self._owns_client:
            await self._redis.aclose()
            self._redis = None
        logger.info("Redis event bus stopped")

    async def publish(self, channel: str, payload: Payload) -> None:
        if not self._running:
            raise EventBusError(f"Cannot publish to {channel}: bus is not running")

        message_id = await self.redis.xadd(
            self.stream_key(channel),
            {PAYLOAD_FIELD: json.dumps(payload)},
            maxlen=self.config.max_stream_length,
            approximate=True,
        )
        logger.debug(f"Published {message_id} to {channel}")

    async def consume(self, channel: str, handler: Handler) -> None:
        key = self.stream_key(channel)
        await self._ensure_group(key)
        task = asyncio.create_task(
            self._consume_loop(str(channel), key, handler), name=f"consume:{channel}"
        )
        self._tasks.append(task)
        logger.debug(f"Consuming {channel} from {key}")

    async def _ensure_group(self, key: str) -> None:
        try:
            await self.redis.xgroup_create(
                name=key, groupname=self.config.consumer_group, id="0", mkstream=True
            )
        except ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise

    async def _consume_loop(self, channel: str, key: str, handler: Handler) -> None:
        # "0" replays this consumer's un-acknowledged entries, ">" reads new ones.
        cursor = "0"

        while self._running:
            try:
                response = await self.redis.xreadgroup(
                    groupname=self.config.consumer_group,
                    consumername=self.config.consumer_name,
                    streams={key: cursor},
                    count=self.config.read_count,
                    block=self.config.block_ms,
                )
            except RedisError as e:
                logger.error(f"Failed to read {channel}: {e}")
                await asyncio.sleep(self.config.block_ms / 1000)
                continue

            entries = [
                entry
                for _stream, stream_entries in response or []
                for entry in stream_entries
            ]

            if cursor != ">":
                if not entries:
                    cursor = ">"
                    continue
                cursor = entries[-1][0]

            for message_id, fields in entries:
                try:
                    await self._dispatch(channel, key, handler, message_id, fields)
                except RedisError as e:
                    logger.error(f"Failed to acknowledge {message_id} on {channel}: {e}")

    async def _dispatch(
        self,
        channel: str,
        key: str,
        handler: Handler,
        message_id: str,
        fields: dict[str, str] | None,
    ) -> None:
        try:
            payload = json.loads((fields or {})[PAYLOAD_FIELD])
        except (KeyError, TypeError, json.JSONDecodeError) as e:
            logger.error(f"Dropping undecodable entry {message_id} on {channel}: {e}")
            await self.redis.xack(key, self.config.consumer_group, message_id)
            return

        try:
            await handler(payload)
        except Exception as e:
            logger.error(
                f"Handler for {channel} raised on {message_id}, leaving it pending: {e}",
                exc_info=True,
            )
            return

        await self.redis.xack(key, self.config.consumer_group, message_id)
