"""Tests for channel payload schemas."""

import pytest

from hashbatch.exceptions import MalformedPayloadError
from hashbatch.messages import (
    BatchMessage,
    ClaimIdentifierMessage,
    CompleteHashesFailure,
    Exchange,
    describe_error,
    parse_payload,
)


def test_batch_message_uses_camel_case_on_the_wire() -> None:
    message = parse_payload(
        BatchMessage,
        Exchange.ANCHORING_CONFIRMATION,
        {"identifiers": ["QmA"], "directoryReference": "QmDir", "extra": 1},
    )
    assert message.directory_reference == "QmDir"
    assert message.to_payload() == {"identifiers": ["QmA"], "directoryReference": "QmDir"}


def test_failure_payload_carries_error_and_batch() -> None:
    failure = CompleteHashesFailure(
        error=describe_error(TimeoutError("slow")),
        identifiers=["QmA"],
        directory_reference="QmDir",
    )
    assert failure.to_payload() == {
        "identifiers": ["QmA"],
        "directoryReference": "QmDir",
        "error": "TimeoutError: slow",
    }


@pytest.mark.parametrize(
    "payload",
    [{}, {"identifier": ""}, {"identifier": None}, ["QmA"], "QmA"],
)
def test_invalid_claim_payload_raises_malformed(payload) -> None:
    with pytest.raises(MalformedPayloadError) as exc_info:
        parse_payload(ClaimIdentifierMessage, Exchange.CLAIM_IDENTIFIER, payload)
    assert exc_info.value.channel == "claim-identifier"
    assert "claim-identifier" in str(exc_info.value)


def test_missing_directory_reference_is_named_in_error() -> None:
    with pytest.raises(MalformedPayloadError) as exc_info:
        parse_payload(
            BatchMessage, Exchange.COMPLETE_HASHES_REQUEST, {"identifiers": []}
        )
    assert "directoryReference" in exc_info.value.detail


def test_channel_names() -> None:
    assert str(Exchange.CREATE_NEXT_BATCH_REQUEST) == "create-next-batch.request"
    assert f"{Exchange.COMPLETE_HASHES_FAILURE}" == "complete-hashes.failure"
