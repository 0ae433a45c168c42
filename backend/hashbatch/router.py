"""Event handlers for the batching saga.

Claims arrive one at a time and are stored as pending. On every
create-next-batch request the pending claims are grouped into one IPFS
directory and announced. When the downstream anchoring process confirms a
batch, the confirmation is routed to a complete-hashes request and the
claims it names are marked complete.

Batch membership is never stored: it travels only in event payloads. A
confirmation that never arrives leaves its claims pending, and the next build
groups them again.
"""

import logging
from typing import Protocol, Sequence

from hashbatch.messages import (
    BatchMessage,
    ClaimIdentifierMessage,
    CompleteHashesFailure,
    CreateNextBatchFailure,
    EventMessage,
    Exchange,
    describe_error,
    parse_payload,
)
from hashbatch.messaging import EventBus, Payload
from hashbatch.storage import ClaimStore

logger = logging.getLogger(__name__)


class DirectoryService(Protocol):
    async def create_empty_directory(self) -> str: ...

    async def add_files_to_directory(
        self, directory_hash: str, file_hashes: Sequence[str]
    ) -> str: ...


class Router:
    def __init__(
        self,
        messaging: EventBus,
        claims: ClaimStore,
        directories: DirectoryService,
    ):
        self.messaging = messaging
        self.claims = claims
        self.directories = directories

    async def start(self) -> None:
        await self.messaging.consume(Exchange.CLAIM_IDENTIFIER, self.on_claim_identifier)
        await self.messaging.consume(
            Exchange.CREATE_NEXT_BATCH_REQUEST, self.on_create_next_batch_request
        )
        await self.messaging.consume(
            Exchange.ANCHORING_CONFIRMATION, self.on_anchoring_confirmation
        )
        await self.messaging.consume(
            Exchange.COMPLETE_HASHES_REQUEST, self.on_complete_hashes_request
        )
        logger.info("Router started")

    async def _publish(self, channel: Exchange, message: EventMessage) -> None:
        await self.messaging.publish(channel, message.to_payload())

    # Intake

    async def on_claim_identifier(self, payload: Payload) -> None:
        try:
            message = parse_payload(
                ClaimIdentifierMessage, Exchange.CLAIM_IDENTIFIER, payload
            )
            await self.claims.add_entry(message.identifier)
        except Exception as e:
            logger.error(
                f"Failed to add claimed identifier to be batched: {e}", exc_info=True
            )

    # Batch builder

    async def on_create_next_batch_request(self, payload: Payload) -> None:
        logger.debug("Create next batch request")
        try:
            batch = await self.create_next_batch()
            logger.debug(
                f"Create next batch success: {len(batch.identifiers)} hashes "
                f"in {batch.directory_reference}"
            )
            await self._publish(Exchange.CREATE_NEXT_BATCH_SUCCESS, batch)
        except Exception as e:
            logger.error(f"Create next batch failure: {e}", exc_info=True)
            try:
                await self._publish(
                    Exchange.CREATE_NEXT_BATCH_FAILURE,
                    CreateNextBatchFailure(error=describe_error(e)),
                )
            except Exception as publish_error:
                logger.error(
                    f"Failed to publish {Exchange.CREATE_NEXT_BATCH_FAILURE}: "
                    f"{publish_error}"
                )

    async def create_next_batch(self) -> BatchMessage:
        """Group every pending claim into a fresh IPFS directory.

        An empty selection is not an error: it yields the empty directory.
        Nothing is written to the claim store.
        """
        entries = await self.claims.find_pending()
        identifiers = [entry.identifier for entry in entries]
        empty_directory = await self.directories.create_empty_directory()
        directory_reference = await self.directories.add_files_to_directory(
            empty_directory, identifiers
        )
        return BatchMessage(
            identifiers=identifiers, directory_reference=directory_reference
        )

    # Completion saga

    async def on_anchoring_confirmation(self, payload: Payload) -> None:
        # Routing only: the completion logic lives in complete_hashes().
        # The confirmation is forwarded exactly as received.
        try:
            parse_payload(BatchMessage, Exchange.ANCHORING_CONFIRMATION, payload)
            await self.messaging.publish(Exchange.COMPLETE_HASHES_REQUEST, payload)
        except Exception as e:
            logger.error(
                f"Failed to publish {Exchange.COMPLETE_HASHES_REQUEST}: {e}",
                exc_info=True,
            )

    async def on_complete_hashes_request(self, payload: Payload) -> None:
        try:
            message = parse_payload(
                BatchMessage, Exchange.COMPLETE_HASHES_REQUEST, payload
            )
            logger.debug(
                f"Mark hashes complete request: {len(message.identifiers)} hashes "
                f"in {message.directory_reference}"
            )
            await self.complete_hashes(message)
            # Marked again whether or not complete_hashes() succeeded; the
            # store ignores claims that are already complete.
            await self.claims.mark_complete(message.identifiers)
            logger.debug("Mark hashes complete success")
        except Exception as e:
            logger.error(f"Mark hashes complete failure: {e}", exc_info=True)

    async def complete_hashes(self, message: BatchMessage) -> None:
        """Mark a confirmed batch complete and publish the outcome.

        Never raises: a failure is published as complete-hashes.failure.
        """
        try:
            await self.claims.mark_complete(message.identifiers)
            await self._publish(Exchange.COMPLETE_HASHES_SUCCESS, message)
        except Exception as e:
            logger.error(f"Complete hashes failure: {e}")
            failure = CompleteHashesFailure(
                error=describe_error(e),
                identifiers=message.identifiers,
                directory_reference=message.directory_reference,
            )
            try:
                await self._publish(Exchange.COMPLETE_HASHES_FAILURE, failure)
            except Exception as publish_error:
                logger.error(
                    f"Failed to publish {Exchange.COMPLETE_HASHES_FAILURE}: "
                    f"{publish_error}"
                )
