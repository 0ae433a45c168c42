"""Batch creation timer using APScheduler."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from hashbatch.config import SchedulerConfig
from hashbatch.messages import CreateNextBatchRequest, Exchange
from hashbatch.messaging import EventBus

logger = logging.getLogger(__name__)

CREATE_NEXT_BATCH_JOB_ID = "create-next-batch"


async def request_next_batch(messaging: EventBus) -> None:
    """Publish an empty create-next-batch request."""
    await messaging.publish(
        Exchange.CREATE_NEXT_BATCH_REQUEST, CreateNextBatchRequest().to_payload()
    )


def create_scheduler(config: SchedulerConfig, messaging: EventBus) -> AsyncIOScheduler:
    """Build the scheduler with the batch creation job registered (not started)."""
    scheduler = AsyncIOScheduler(timezone="UTC")

    # The job only publishes, so overlapping ticks are allowed to run.
    scheduler.add_job(
        request_next_batch,
        IntervalTrigger(seconds=config.create_next_batch_interval_seconds),
        args=[messaging],
        id=CREATE_NEXT_BATCH_JOB_ID,
        name="Batcher: Create Next Batch",
        max_instances=100,
        coalesce=False,
    )
    logger.info(
        f"Registered job: Create Next Batch "
        f"(every {config.create_next_batch_interval_seconds} s)"
    )

    return scheduler
