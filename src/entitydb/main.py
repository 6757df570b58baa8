#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from sqlalchemy import inspect

from entitydb import __version__
from entitydb.adapters.sqlalchemy import connect, shutdown, startup
from entitydb.common import configure_logging, report_exception
from entitydb.config import DatabaseConfig, get_database_config

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect an entitydb database")
    parser.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy database URI (defaults to DATABASE_URI or the data directory)",
    )
    parser.add_argument(
        "--list-tables",
        action="store_true",
        help="Print the tables present in the configured database",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(list(argv))


def _resolve_config(args: argparse.Namespace) -> DatabaseConfig:
    config = get_database_config()
    if args.database_uri:
        return DatabaseConfig(
            uri=args.database_uri, batch_size=config.batch_size, echo=config.echo
        )
    return config


def list_tables() -> list[str]:
    with connect() as connection:
        return sorted(inspect(connection).get_table_names())


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO, force=True)

    try:
        config = _resolve_config(args)
        startup(database_uri=config.uri, echo=config.echo, force=True)
        try:
            if args.list_tables:
                for name in list_tables():
                    print(name)
            else:
                log.info("entitydb %s, batch size %s", __version__, config.batch_size)
        finally:
            shutdown()
    except Exception as exc:  # noqa: BLE001
        report_exception(exc, log)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    print("\nClosed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    signal(SIGINT, sigint_handler)
    main()
