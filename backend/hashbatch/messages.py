"""Event channels and per-channel payload schemas.

Payloads travel as JSON objects. Field names on the wire are camelCase
(``directoryReference``) while the models expose snake_case attributes.
"""

from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from hashbatch.exceptions import MalformedPayloadError


class Exchange(str, Enum):
    """Named channels consumed or published by the batcher."""

    CLAIM_IDENTIFIER = "claim-identifier"
    CREATE_NEXT_BATCH_REQUEST = "create-next-batch.request"
    CREATE_NEXT_BATCH_SUCCESS = "create-next-batch.success"
    CREATE_NEXT_BATCH_FAILURE = "create-next-batch.failure"
    ANCHORING_CONFIRMATION = "anchoring.confirmation"
    COMPLETE_HASHES_REQUEST = "complete-hashes.request"
    COMPLETE_HASHES_SUCCESS = "complete-hashes.success"
    COMPLETE_HASHES_FAILURE = "complete-hashes.failure"

    def __str__(self) -> str:
        return self.value


class EventMessage(BaseModel):
    """Base payload model."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ClaimIdentifierMessage(EventMessage):
    identifier: str = Field(min_length=1)


class CreateNextBatchRequest(EventMessage):
    pass


class BatchMessage(EventMessage):
    """A batch: the grouped identifiers and the directory that holds them.

    Used for create-next-batch.success, anchoring.confirmation,
    complete-hashes.request and complete-hashes.success.
    """

    identifiers: list[str]
    directory_reference: str = Field(alias="directoryReference")


class CreateNextBatchFailure(EventMessage):
    error: str


class CompleteHashesFailure(BatchMessage):
    error: str


M = TypeVar("M", bound=EventMessage)


def parse_payload(model: type[M], channel: Exchange | str, payload: Any) -> M:
    """Validate a decoded payload against its channel schema.

    Raises:
        MalformedPayloadError: If required fields are missing or invalid.
    """
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise MalformedPayloadError(str(channel), e) from e


def describe_error(error: BaseException) -> str:
    """Render an exception for the ``error`` field of failure events."""
    return f"{type(error).__name__}: {error}"
