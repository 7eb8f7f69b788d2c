#!/usr/bin/env python3
"""
Fleet database maintenance commands.

Usage:
    python scripts/manage_db.py [GLOBAL OPTIONS] COMMAND [ARGS]

Commands:
    init                    Create tables and seed data; print table row counts
    query SQL [PARAM ...]   Run a SELECT and print the rows
    run SQL [PARAM ...]     Run a mutating statement, then save (development)
    check-admin             Verify the stored admin password

Global options:
    --env NAME              Override ENVIRONMENT ("production" = remote backend)
    --db-path PATH          Override DEV_DB_PATH
    --log-level LEVEL       Log level (default: settings LOG_LEVEL)
    --log-json              Emit JSON log lines
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sqlite3
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

# Ensure project root is on sys.path for fleetdb.* imports
_project_root = Path(__file__).resolve().parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from libsql_client import LibsqlError
from sqlalchemy.exc import SQLAlchemyError

from fleetdb.db import DatabaseConfigError, PersistenceGateway, QueryResult, create_gateway
from fleetdb.db.schema import ADMIN_ID, DEFAULT_ADMIN_PASSWORD, TABLE_NAMES
from fleetdb.logging_config import setup_logging
from fleetdb.security import verify_password
from fleetdb.settings import Settings, get_settings

_DB_ERRORS = (sqlite3.Error, SQLAlchemyError, LibsqlError, DatabaseConfigError, OSError)


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fleet database maintenance -- init, query, run, check-admin.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--env", default=None, help="Override ENVIRONMENT")
    parser.add_argument("--db-path", default=None, help="Override DEV_DB_PATH")
    parser.add_argument("--log-level", default=None, help="Log level name")
    parser.add_argument("--log-json", action="store_true", help="Emit JSON log lines")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Create tables and seed data")

    query = sub.add_parser("query", help="Run a SELECT and print rows")
    query.add_argument("sql")
    query.add_argument("params", nargs="*")
    query.add_argument("--json", action="store_true", help="Print rows as JSON objects")

    run = sub.add_parser("run", help="Run a mutating statement and save")
    run.add_argument("sql")
    run.add_argument("params", nargs="*")

    check = sub.add_parser("check-admin", help="Verify the stored admin password")
    check.add_argument("--password", default=DEFAULT_ADMIN_PASSWORD)

    return parser.parse_args(argv)


def _build_settings(args: argparse.Namespace) -> Settings:
    overrides: dict[str, Any] = {}
    if args.env is not None:
        overrides["environment"] = args.env
    if args.db_path is not None:
        overrides["dev_db_path"] = Path(args.db_path)
    if not overrides:
        return get_settings()
    return Settings(**overrides)


def format_result(result: QueryResult, as_json: bool = False) -> str:
    """Render a result set as tab-separated text or JSON lines."""
    if as_json:
        return "\n".join(
            json.dumps(row, ensure_ascii=False, default=str)
            for row in result.rows_as_dicts()
        )
    lines = ["\t".join(result.columns)]
    lines.extend("\t".join("" if v is None else str(v) for v in row) for row in result.values)
    return "\n".join(lines)


async def _table_counts(db: PersistenceGateway) -> dict[str, int]:
    counts: dict[str, int] = {}
    for table in TABLE_NAMES:
        [result] = await db.exec_query(f"SELECT COUNT(*) FROM {table}")
        counts[table] = int(result.values[0][0])
    return counts


async def _dispatch(db: PersistenceGateway, args: argparse.Namespace) -> int:
    await db.initialize_database()

    if args.command == "init":
        for table, count in (await _table_counts(db)).items():
            print(f"{table}\t{count}")
        return 0

    if args.command == "query":
        [result] = await db.exec_query(args.sql, args.params)
        print(format_result(result, as_json=args.json))
        return 0

    if args.command == "run":
        outcome = await db.run_query(args.sql, args.params)
        await db.save_database()
        print(f"rows_affected={outcome.rows_affected} last_insert_id={outcome.last_insert_id}")
        return 0

    if args.command == "check-admin":
        [result] = await db.exec_query(
            "SELECT password FROM users WHERE id = ?", [ADMIN_ID]
        )
        if not result.values:
            print("admin user not found", file=sys.stderr)
            return 1
        ok = verify_password(args.password, result.values[0][0])
        print("admin password OK" if ok else "admin password mismatch")
        return 0 if ok else 1

    raise ValueError(f"Unknown command: {args.command!r}")


async def _run(args: argparse.Namespace) -> int:
    """Build the gateway, run one command. Returns exit code."""
    settings = _build_settings(args)
    setup_logging(
        level=args.log_level or settings.log_level,
        json_format=args.log_json or settings.log_json,
    )

    try:
        db = create_gateway(settings)
    except _DB_ERRORS as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    async with db:
        try:
            return await _dispatch(db, args)
        except _DB_ERRORS as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1


def main(argv: Sequence[str] | None = None) -> int:
    """Parse args and run the requested command."""
    args = _parse_args(argv)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
