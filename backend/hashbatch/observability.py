"""Logfire cloud observability initialization and instrumentation."""

import logging

import logfire

from hashbatch import __version__
from hashbatch.config import Settings

logger = logging.getLogger(__name__)


def initialize_logfire(settings: Settings) -> None:
    """
    Initialize Logfire with the batcher's instrumentation.

    Must be called ONCE at application startup, BEFORE any client is created.

    This function configures Logfire cloud tracking and instruments:
    - HTTPX clients (IPFS RPC API)
    - PyMongo (claim store)
    - Redis (event transport)
    - Python logging (bridges to Logfire)

    Args:
        settings: Application settings containing Logfire token

    Returns:
        None. Logs success or warning messages.
    """
    if not settings.logfire_token:
        logger.warning("Logfire token not set - observability disabled")
        return

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="hashbatch",
            service_version=__version__,
        )

        logfire.instrument_httpx()

        # PyMongo and Redis instrumentation need their OpenTelemetry extras
        for name, instrument in (
            ("PyMongo", logfire.instrument_pymongo),
            ("Redis", logfire.instrument_redis),
        ):
            try:
                instrument()
            except Exception as instrument_error:
                logger.debug(f"{name} instrumentation skipped: {instrument_error}")

        # Bridge Python logging to Logfire
        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        logger.info("✓ Logfire cloud tracking initialized")

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
        # Continue running - observability is optional
