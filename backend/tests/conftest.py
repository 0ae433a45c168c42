"""Shared fakes for the batching saga tests."""

import hashlib
from collections import defaultdict
from typing import Sequence

import pytest

from hashbatch.messages import Exchange
from hashbatch.messaging import InMemoryEventBus
from hashbatch.router import Router
from hashbatch.storage import InMemoryClaimStore

OUTBOUND_CHANNELS = [
    Exchange.CREATE_NEXT_BATCH_SUCCESS,
    Exchange.CREATE_NEXT_BATCH_FAILURE,
    Exchange.COMPLETE_HASHES_SUCCESS,
    Exchange.COMPLETE_HASHES_FAILURE,
]


class FakeDirectoryService:
    """Deterministic stand-in for the IPFS directory builder."""

    def __init__(
        self,
        empty_hash: str = "QmEmptyDirectory",
        reference: str | None = None,
        error: Exception | None = None,
    ):
        self.empty_hash = empty_hash
        self.reference = reference
        self.error = error
        self.added: list[list[str]] = []

    async def create_empty_directory(self) -> str:
        if self.error is not None:
            raise self.error
        return self.empty_hash

    async def add_files_to_directory(
        self, directory_hash: str, file_hashes: Sequence[str]
    ) -> str:
        self.added.append(list(file_hashes))
        if not file_hashes:
            return directory_hash
        if self.reference is not None:
            return self.reference
        digest = hashlib.sha256(
            ",".join([directory_hash, *file_hashes]).encode()
        ).hexdigest()
        return f"Qm{digest[:44]}"


class FlakyClaimStore(InMemoryClaimStore):
    """Fails the first ``failures`` calls to mark_complete."""

    def __init__(self, failures: int = 1):
        super().__init__()
        self.failures = failures
        self.mark_calls = 0

    async def mark_complete(self, identifiers):
        self.mark_calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("claim store unreachable")
        return await super().mark_complete(identifiers)


class SagaHarness:
    """Router wired to an in-memory bus and store, recording outbound events."""

    def __init__(self, claims, directories, messaging=None):
        self.claims = claims
        self.directories = directories
        self.messaging = messaging if messaging is not None else InMemoryEventBus()
        self.router = Router(self.messaging, claims, directories)
        self.events: dict[str, list[dict]] = defaultdict(list)

    async def start(self) -> "SagaHarness":
        await self.messaging.start()
        await self.router.start()
        for channel in OUTBOUND_CHANNELS:
            await self.messaging.consume(channel, self._recorder(str(channel)))
        return self

    def _recorder(self, channel: str):
        async def record(payload: dict) -> None:
            self.events[channel].append(payload)

        return record

    async def send(self, channel: Exchange, payload: dict) -> None:
        await self.messaging.publish(channel, payload)
        await self.messaging.drain()

    async def stop(self) -> None:
        await self.messaging.stop()


@pytest.fixture
def directories() -> FakeDirectoryService:
    return FakeDirectoryService()


@pytest.fixture
def harness_factory():
    """Build a SagaHarness; call ``await harness.start()`` inside the event loop."""

    def factory(claims=None, directories=None, messaging=None) -> SagaHarness:
        return SagaHarness(
            claims if claims is not None else InMemoryClaimStore(),
            directories if directories is not None else FakeDirectoryService(),
            messaging,
        )

    return factory


@pytest.fixture
def flaky_store_factory():
    return FlakyClaimStore


@pytest.fixture
def directory_factory():
    return FakeDirectoryService
