# main.py

"""Entry point for the pricy price tracker."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from src.config.logging_config import setup_logging
from src.config.settings import Settings

logger = logging.getLogger("pricy.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="pricy",
        description="Tool for tracking prices from various online stores.",
    )
    parser.add_argument(
        "-d",
        "--database",
        type=Path,
        default=Settings.DEFAULT_DATABASE_PATH,
        help=(
            'Path to the price store file (e.g. "db.json", '
            "default: $PRICY_DATABASE or db.json)."
        ),
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Settings.DEFAULT_CONFIG_PATH,
        help=(
            'Path to the products configuration file (e.g. "config.toml", '
            "default: $PRICY_CONFIG or config.toml)."
        ),
    )
    parser.add_argument(
        "--show",
        action="store_true",
        default=False,
        help="Print the stored prices and exit without fetching.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Also log INFO messages to the console.",
    )
    return parser


def main() -> None:
    """Run a price check, or show the store with --show."""
    parser = _build_parser()
    args = parser.parse_args()

    log_file = setup_logging(
        verbose=args.verbose,
        run_name="show" if args.show else "check",
    )
    logger.info("pricy starting, log file: %s", log_file)

    from src.cli.runner import run_price_check, show_store

    if args.show:
        exit_code = show_store(args.database)
    else:
        exit_code = asyncio.run(
            run_price_check(args.database, args.config)
        )
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
