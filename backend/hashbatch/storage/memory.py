"""In-process claim store for single-process runs and tests."""

import asyncio
import logging
from typing import Iterable

from .models import ClaimEntry, utcnow

logger = logging.getLogger(__name__)


class InMemoryClaimStore:
    """Keeps claims in a list, in insertion order. Nothing survives a restart."""

    def __init__(self) -> None:
        self._entries: list[ClaimEntry] = []
        self._lock = asyncio.Lock()

    async def add_entry(self, identifier: str) -> None:
        async with self._lock:
            self._entries.append(ClaimEntry(identifier=identifier))
        logger.debug(f"Added claim {identifier}")

    async def find_pending(self) -> list[ClaimEntry]:
        async with self._lock:
            return [
                entry.model_copy() for entry in self._entries if not entry.is_complete
            ]

    async def mark_complete(self, identifiers: Iterable[str]) -> int:
        wanted = set(identifiers)
        now = utcnow()
        count = 0
        async with self._lock:
            for entry in self._entries:
                if entry.identifier in wanted and not entry.is_complete:
                    entry.completed_at = now
                    count += 1
        logger.debug(f"Marked {count} claims complete")
        return count

    async def all_entries(self) -> list[ClaimEntry]:
        """Every claim, completed or not."""
        async with self._lock:
            return [entry.model_copy() for entry in self._entries]

    async def count_pending(self) -> int:
        async with self._lock:
            return sum(1 for entry in self._entries if not entry.is_complete)
