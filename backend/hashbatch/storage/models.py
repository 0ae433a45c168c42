"""Claim entry models.

``ClaimEntry`` is the plain record every store returns. ``ClaimDocument`` is
its Beanie document in the ``claim_entries`` collection.
"""

from datetime import datetime, timezone

from beanie import Document, Indexed
from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ClaimEntry(BaseModel):
    """One claimed identifier and its completion state."""

    identifier: str
    claimed_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None

    @property
    def is_complete(self) -> bool:
        return self.completed_at is not None


class ClaimDocument(Document):
    identifier: Indexed(str)
    claimed_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None

    class Settings:
        name = "claim_entries"
        indexes = ["completed_at"]
