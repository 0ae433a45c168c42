"""Composition root: builds the store, bus, IPFS client, router and timer once."""

import asyncio
import logging
import signal
from contextlib import AsyncExitStack

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from hashbatch.config import Settings, sanitize_url
from hashbatch.messaging import EventBus, create_event_bus
from hashbatch.router import DirectoryService, Router
from hashbatch.scheduler import create_scheduler
from hashbatch.services.ipfs import create_ipfs_client
from hashbatch.storage import ClaimStore, InMemoryClaimStore, MongoClaimStore
from hashbatch.storage.connection import check_db_connection, close_db, init_db

logger = logging.getLogger(__name__)


async def open_claim_store(settings: Settings, stack: AsyncExitStack) -> ClaimStore:
    """Open the claim store selected by ``database.backend``."""
    if settings.database.backend == "memory":
        logger.info("Using in-memory claim store")
        return InMemoryClaimStore()

    await init_db(settings.database)
    stack.push_async_callback(close_db)
    if not await check_db_connection():
        raise ConnectionError(
            f"MongoDB not reachable at {sanitize_url(settings.database.url)}"
        )
    logger.info(
        f"Connected to MongoDB {sanitize_url(settings.database.url)} "
        f"(database={settings.database.name})"
    )
    return MongoClaimStore()


async def open_event_bus(settings: Settings, stack: AsyncExitStack) -> EventBus:
    messaging = create_event_bus(settings.transport)
    await messaging.start()
    stack.push_async_callback(messaging.stop)
    return messaging


class HashBatcher:
    """The running service.

    Collaborators may be passed in; anything left out is built from settings.
    """

    def __init__(
        self,
        settings: Settings,
        claims: ClaimStore | None = None,
        messaging: EventBus | None = None,
        directories: DirectoryService | None = None,
    ):
        self.settings = settings
        self.claims = claims
        self.messaging = messaging
        self.directories = directories
        self.router: Router | None = None
        self.scheduler: AsyncIOScheduler | None = None
        self._stack: AsyncExitStack | None = None

    async def start(self) -> None:
        settings = self.settings
        logger.info(
            "Hashbatch starting "
            f"(database={settings.database.backend}:{sanitize_url(settings.database.url)}, "
            f"transport={settings.transport.backend}:{sanitize_url(settings.transport.url)}, "
            f"ipfs={settings.ipfs.url}, "
            f"interval={settings.scheduler.create_next_batch_interval_seconds}s)"
        )

        self._stack = AsyncExitStack()
        try:
            # Closed in reverse: the bus stops its consumers before the store
            # and the IPFS client they use go away.
            if self.directories is None:
                self.directories = await self._stack.enter_async_context(
                    create_ipfs_client(settings.ipfs)
                )
            if self.claims is None:
                self.claims = await open_claim_store(settings, self._stack)
            if self.messaging is None:
                self.messaging = await open_event_bus(settings, self._stack)

            self.router = Router(self.messaging, self.claims, self.directories)
            await self.router.start()

            self.scheduler = create_scheduler(settings.scheduler, self.messaging)
            self.scheduler.start()
        except BaseException:
            await self._stack.aclose()
            raise

        logger.info("Hashbatch started")

    async def stop(self) -> None:
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        self.scheduler = None

        if self._stack is not None:
            await self._stack.aclose()
            self._stack = None
        logger.info("Hashbatch stopped")


async def run_service(settings: Settings) -> None:
    """Run until SIGINT or SIGTERM."""
    batcher = HashBatcher(settings)
    await batcher.start()

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers; Ctrl+C still raises
            pass

    try:
        await stop_event.wait()
        logger.info("Received shutdown signal")
    finally:
        await batcher.stop()
