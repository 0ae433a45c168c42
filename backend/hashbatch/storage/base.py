"""Claim store interface shared by the MongoDB and in-memory stores."""

from typing import Iterable, Protocol

from .models import ClaimEntry


class ClaimStore(Protocol):
    async def add_entry(self, identifier: str) -> None:
        """Append a pending claim. Duplicate identifiers become separate claims."""
        ...

    async def find_pending(self) -> list[ClaimEntry]:
        """Return every claim without ``completed_at``, in insertion order."""
        ...

    async def mark_complete(self, identifiers: Iterable[str]) -> int:
        """Set ``completed_at`` on pending claims for these identifiers.

        Already completed claims are left untouched, so repeating the call is a
        no-op. Returns the number of claims newly completed.
        """
        ...

    async def count_pending(self) -> int:
        ...
