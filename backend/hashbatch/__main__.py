"""Hashbatch CLI entry point."""

import argparse
import asyncio
import logging
import sys
from contextlib import AsyncExitStack
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

env_file = Path.cwd() / ".env"
load_dotenv(env_file)

from hashbatch import __version__
from hashbatch.app import open_claim_store, open_event_bus, run_service
from hashbatch.config import get_settings, sanitize_url
from hashbatch.messages import (
    BatchMessage,
    ClaimIdentifierMessage,
    CreateNextBatchRequest,
    EventMessage,
    Exchange,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

CONFIG_TEMPLATE = """# Hashbatch Configuration
# Environment variables (e.g. TRANSPORT__URL) override values in this file.

database:
  backend: mongodb
  url: mongodb://localhost:27017
  name: hashbatch

transport:
  backend: redis
  url: redis://localhost:6379/0
  stream_prefix: hashbatch
  consumer_group: hashbatch
  consumer_name: hashbatch-1
  max_stream_length: 10000

ipfs:
  url: http://localhost:5001
  timeout_seconds: 30
  max_retries: 3

scheduler:
  create_next_batch_interval_seconds: 30
"""


def _init_logfire() -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        from hashbatch.observability import initialize_logfire

        initialize_logfire(get_settings())
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


def _require_shared_transport() -> bool:
    settings = get_settings()
    if settings.transport.backend == "memory":
        print(
            "\n❌ transport.backend is 'memory': events published here never "
            "reach a running service. Configure the redis transport.\n"
        )
        return False
    return True


async def _publish_all(messages: list[tuple[Exchange, EventMessage]]) -> None:
    async with AsyncExitStack() as stack:
        messaging = await open_event_bus(get_settings(), stack)
        for channel, message in messages:
            await messaging.publish(channel, message.to_payload())


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize data directory and configuration file."""
    data_dir = Path("data").resolve()

    try:
        data_dir.mkdir(exist_ok=True)
        logger.info(f"Created data directory: {data_dir}")

        config_path = data_dir / "config.yaml"
        if not config_path.exists():
            config_path.write_text(CONFIG_TEMPLATE)
            logger.info(f"Created config template: {config_path}")
        else:
            logger.info(f"Config file already exists: {config_path}")

        print(f"\n✓ Data directory initialized at {data_dir}")
        print("\nNext steps:")
        print("1. Review data/config.yaml (or set overrides in .env)")
        print("2. Run 'python -m hashbatch config' to verify configuration")
        print("3. Run 'python -m hashbatch run' to start the batcher\n")

        return 0

    except Exception as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()

        print("\n=== Hashbatch Configuration ===\n")
        print(f"Data Directory: {settings.data_dir}")
        print(f"Log Level: {settings.log_level}\n")

        print("Claim Store:")
        print(f"  Backend: {settings.database.backend}")
        print(f"  URL: {sanitize_url(settings.database.url)}")
        print(f"  Database: {settings.database.name}\n")

        print("Transport:")
        print(f"  Backend: {settings.transport.backend}")
        print(f"  URL: {sanitize_url(settings.transport.url)}")
        print(f"  Stream Prefix: {settings.transport.stream_prefix}")
        print(f"  Consumer: {settings.transport.consumer_group}/{settings.transport.consumer_name}\n")

        print("IPFS:")
        print(f"  URL: {settings.ipfs.url}")
        print(f"  Timeout: {settings.ipfs.timeout_seconds}s")
        print(f"  Max Retries: {settings.ipfs.max_retries}\n")

        print("Scheduler:")
        print(
            f"  Create Next Batch Every: "
            f"{settings.scheduler.create_next_batch_interval_seconds}s\n"
        )

        print(f"Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")

        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"\n❌ Failed to load configuration: {e}\n")
        return 1


def cmd_status(args: argparse.Namespace) -> int:
    """Display the number of pending claims."""

    async def _count() -> int:
        async with AsyncExitStack() as stack:
            claims = await open_claim_store(settings, stack)
            return await claims.count_pending()

    try:
        settings = get_settings()
        if settings.database.backend == "memory":
            print("\n❌ database.backend is 'memory': no shared store to inspect.\n")
            return 1

        pending = asyncio.run(_count())
        print("\n=== Hashbatch Status ===\n")
        print(f"Pending claims: {pending}\n")
        return 0

    except Exception as e:
        logger.error(f"Failed to read status: {e}")
        print(f"\n❌ Failed to read status: {e}\n")
        return 1


def cmd_claim(args: argparse.Namespace) -> int:
    """Publish claim-identifier events."""
    if not _require_shared_transport():
        return 1

    try:
        messages = [
            (Exchange.CLAIM_IDENTIFIER, ClaimIdentifierMessage(identifier=identifier))
            for identifier in args.identifiers
        ]
        asyncio.run(_publish_all(messages))
        print(f"\n✓ Claimed {len(messages)} identifiers\n")
        return 0

    except ValidationError as e:
        print(f"\n❌ Invalid identifier: {e.errors()[0]['msg']}\n")
        return 1
    except Exception as e:
        logger.error(f"Claim failed: {e}", exc_info=True)
        print(f"\n❌ Claim failed: {e}\n")
        return 1


def cmd_build(args: argparse.Namespace) -> int:
    """Request a batch now instead of waiting for the next tick."""
    if not _require_shared_transport():
        return 1

    try:
        asyncio.run(
            _publish_all([(Exchange.CREATE_NEXT_BATCH_REQUEST, CreateNextBatchRequest())])
        )
        print("\n✓ Requested next batch\n")
        return 0

    except Exception as e:
        logger.error(f"Build request failed: {e}", exc_info=True)
        print(f"\n❌ Build request failed: {e}\n")
        return 1


def cmd_confirm(args: argparse.Namespace) -> int:
    """Publish an anchoring confirmation for a batch."""
    if not _require_shared_transport():
        return 1

    try:
        message = BatchMessage(
            identifiers=args.identifiers,
            directory_reference=args.directory_reference,
        )
        asyncio.run(_publish_all([(Exchange.ANCHORING_CONFIRMATION, message)]))
        print(
            f"\n✓ Confirmed {len(message.identifiers)} identifiers "
            f"in {message.directory_reference}\n"
        )
        return 0

    except Exception as e:
        logger.error(f"Confirmation failed: {e}", exc_info=True)
        print(f"\n❌ Confirmation failed: {e}\n")
        return 1


def cmd_run(args: argparse.Namespace) -> int:
    """Start the batcher."""
    try:
        _init_logfire()

        settings = get_settings()
        if args.debug:
            logging.getLogger().setLevel(logging.DEBUG)
        else:
            logging.getLogger().setLevel(settings.log_level.upper())

        print("\n=== Hashbatch ===\n")
        print(f"Version: {__version__}")
        print(
            f"Batch Interval: {settings.scheduler.create_next_batch_interval_seconds}s\n"
        )

        asyncio.run(run_service(settings))
        return 0

    except KeyboardInterrupt:
        print("\n\nReceived interrupt signal. Shutting down...\n")
        return 0
    except Exception as e:
        logger.error(f"Failed to start batcher: {e}", exc_info=True)
        print(f"\nFailed to start: {e}\n")
        return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hashbatch",
        description="Hashbatch: groups claimed IPFS hashes into directory batches",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Hashbatch {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser(
        "init",
        help="Initialize data directory and configuration file",
    )
    parser_init.set_defaults(func=cmd_init)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_status = subparsers.add_parser(
        "status",
        help="Display the number of pending claims",
    )
    parser_status.set_defaults(func=cmd_status)

    parser_claim = subparsers.add_parser(
        "claim",
        help="Publish claim-identifier events",
    )
    parser_claim.add_argument("identifiers", nargs="+", help="IPFS hashes to claim")
    parser_claim.set_defaults(func=cmd_claim)

    parser_build = subparsers.add_parser(
        "build",
        help="Request the next batch now",
    )
    parser_build.set_defaults(func=cmd_build)

    parser_confirm = subparsers.add_parser(
        "confirm",
        help="Publish an anchoring confirmation for a batch",
    )
    parser_confirm.add_argument(
        "--directory-reference",
        required=True,
        help="Directory hash of the anchored batch",
    )
    parser_confirm.add_argument(
        "identifiers", nargs="*", help="IPFS hashes in the batch"
    )
    parser_confirm.set_defaults(func=cmd_confirm)

    parser_run = subparsers.add_parser(
        "run",
        help="Start the batcher",
    )
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser_run.set_defaults(func=cmd_run)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
