"""MongoDB claim store backed by Beanie."""

import logging
from typing import Iterable

from beanie.operators import In, Set
from pymongo import ASCENDING

from .models import ClaimDocument, ClaimEntry, utcnow

logger = logging.getLogger(__name__)


class MongoClaimStore:
    """Claim store over the ``claim_entries`` collection.

    Requires ``init_db()`` to have registered ``ClaimDocument`` with Beanie.
    """

    async def add_entry(self, identifier: str) -> None:
        await ClaimDocument(identifier=identifier).insert()
        logger.debug(f"Added claim {identifier}")

    async def find_pending(self) -> list[ClaimEntry]:
        return (
            await ClaimDocument.find(ClaimDocument.completed_at == None)  # noqa: E711
            .sort([("_id", ASCENDING)])
            .project(ClaimEntry)
            .to_list()
        )

    async def mark_complete(self, identifiers: Iterable[str]) -> int:
        wanted = list(dict.fromkeys(identifiers))
        if not wanted:
            return 0

        result = await ClaimDocument.find(
            In(ClaimDocument.identifier, wanted),
            ClaimDocument.completed_at == None,  # noqa: E711
        ).update(Set({ClaimDocument.completed_at: utcnow()}))

        count = result.modified_count if result is not None else 0
        logger.debug(f"Marked {count} claims complete")
        return count

    async def count_pending(self) -> int:
        return await ClaimDocument.find(
            ClaimDocument.completed_at == None  # noqa: E711
        ).count()
