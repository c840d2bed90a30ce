#!/usr/bin/env python3
"""Command-line interface for the local billing database.

Usage:
    billing-sdk rates
    billing-sdk summary
    billing-sdk payments --sort amount --desc
    billing-sdk export --output backup.json
    billing-sdk import backup.json
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from .connectors import database_connectors
from .database import DatabaseManager
from .errors import BillingSDKError, ParseError
from .rates import RateService
from .services import SORT_KEYS, BillingService

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ISSUES = 1
EXIT_FAILURE = 2


async def run_rates_async() -> int:
    """Fetch current rates and print them.

    Returns:
        0 for live rates, 1 when the fallback was used.
    """
    snapshot = await RateService().load_rates()
    print(json.dumps(snapshot.to_dict(), indent=2))
    if snapshot.is_fallback:
        logger.warning("Live rates unavailable, fallback rates shown")
        return EXIT_ISSUES
    return EXIT_OK


async def run_with_service_async(
    command: str,
    parsed_args: argparse.Namespace,
    database_url: Optional[str] = None,
) -> int:
    """Run a dataset command against the local database.

    Args:
        command: One of ``summary``, ``payments``, ``export``, ``import``.
        parsed_args: Parsed command-line arguments.
        database_url: Database URL. Defaults to DATABASE_URL.

    Returns:
        Exit code.
    """
    manager = DatabaseManager(database_url=database_url)
    await manager.initialize()
    service = BillingService.from_connectors(*database_connectors(manager))
    try:
        await service.start(load_rates=not parsed_args.offline)

        if command == "summary":
            print(json.dumps(service.summary().model_dump(), indent=2))
            return EXIT_OK

        if command == "payments":
            rows = service.payment_rows(sort_by=parsed_args.sort, descending=parsed_args.desc)
            for row in rows:
                days = "-" if row.days_until is None else row.days_until
                print(
                    f"{row.payment.next_payment}  {row.urgency:<4}  {days:>4}  "
                    f"{row.monthly_base:>12.2f} RUB  {row.payment.server_id}  {row.provider_name}"
                )
            return EXIT_OK

        if command == "export":
            output = service.export_json()
            if parsed_args.output:
                with open(parsed_args.output, "w", encoding="utf-8") as f:
                    f.write(output)
                logger.info(f"Export written to {parsed_args.output}")
            else:
                print(output)
            return EXIT_OK

        if command == "import":
            with open(parsed_args.file, encoding="utf-8") as f:
                text = f.read()
            result = await service.import_json(text)
            print(json.dumps(result.to_summary_dict(), indent=2))
            if not result.success:
                for error in result.errors:
                    logger.warning(error)
                logger.warning(f"Import completed with {len(result.errors)} errors")
                return EXIT_ISSUES
            return EXIT_OK

        raise ValueError(f"Unknown command: {command}")
    except ParseError as e:
        logger.error(f"Invalid import document: {e}")
        return EXIT_FAILURE
    except BillingSDKError as e:
        logger.error(f"{command} failed: {e}")
        return EXIT_FAILURE
    finally:
        await service.stop()
        await manager.shutdown()


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="billing-sdk",
        description="Recurring server payments: rates, totals, import and export.",
    )
    parser.add_argument(
        "--database-url",
        help="Database URL (default: DATABASE_URL or ./billing.db)",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Do not fetch live rates; use the fallback rates",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("rates", help="Fetch and print current exchange rates")
    subparsers.add_parser("summary", help="Print payment totals")

    payments_parser = subparsers.add_parser("payments", help="List payments by urgency")
    payments_parser.add_argument(
        "--sort",
        choices=SORT_KEYS,
        default="date",
        help="Sort key (default: date)",
    )
    payments_parser.add_argument(
        "--desc",
        action="store_true",
        help="Sort in descending order",
    )

    export_parser = subparsers.add_parser("export", help="Export all providers and payments")
    export_parser.add_argument(
        "--output", "-o",
        help="Output file path (default: stdout)",
    )

    import_parser = subparsers.add_parser("import", help="Import an exported document")
    import_parser.add_argument("file", help="Path to the JSON document")

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point for the CLI.

    Args:
        args: Optional list of command-line arguments (for testing).

    Returns:
        Exit code: 0 ok, 1 completed with issues, 2 failure.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return EXIT_ISSUES

    if parsed_args.command == "rates":
        return asyncio.run(run_rates_async())

    try:
        return asyncio.run(run_with_service_async(
            parsed_args.command,
            parsed_args,
            database_url=parsed_args.database_url,
        ))
    except (OSError, ValueError) as e:
        logger.error(str(e))
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
