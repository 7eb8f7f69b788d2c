"""
Remote database backend via SQLAlchemy's async engine.

Every call is an independent round-trip in its own ``engine.begin()``
transaction. Statements are handed to the driver with
``exec_driver_sql`` so the ``?`` placeholders written for the embedded
backend work unchanged. Pooling, timeouts and retries, if any, are the
driver's own; nothing is layered on top here.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from fleetdb.db.base import ExecutionResult, Params, QueryResult, bind_params
from fleetdb.db.schema import CREATE_TABLES, DEFAULT_ADMIN_PASSWORD, seed_statements

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys = ON")
    finally:
        cursor.close()


class RemoteBackend:
    """Network database reached through an async SQLAlchemy engine.

    Args:
        url: SQLAlchemy async URL (``dialect+driver://...``). Credentials,
            if any, travel inside the URL.
        admin_password: Plaintext hashed into the seeded admin row.
        engine: Pre-built engine; ``url`` is ignored when given.
    """

    name = "remote"

    def __init__(
        self,
        url: str | None = None,
        admin_password: str = DEFAULT_ADMIN_PASSWORD,
        engine: AsyncEngine | None = None,
    ) -> None:
        if engine is None:
            if not url:
                raise ValueError("RemoteBackend requires a database URL or an engine")
            engine = create_async_engine(url, echo=False)

        self._engine = engine
        self._admin_password = admin_password

        if engine.dialect.name == "sqlite":
            event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        logger.info(
            "Remote database engine created (dialect=%s)", engine.dialect.name
        )

    async def initialize(self) -> None:
        """Create tables and seed rows; safe to repeat.

        Statements run one by one, each committed on its own. A failure
        partway leaves the earlier statements applied.
        """
        for statement in CREATE_TABLES:
            await self.run(statement)
        for statement, params in seed_statements(self._admin_password):
            await self.run(statement, params)
        logger.info("Remote database schema and seed data ensured")

    async def run(self, statement: str, params: Params = ()) -> ExecutionResult:
        async with self._engine.begin() as conn:
            result = await conn.exec_driver_sql(statement, bind_params(params))
            return ExecutionResult(
                rows_affected=result.rowcount,
                last_insert_id=result.lastrowid,
            )

    async def exec(self, statement: str, params: Params = ()) -> list[QueryResult]:
        async with self._engine.begin() as conn:
            result = await conn.exec_driver_sql(statement, bind_params(params))
            if not result.returns_rows:
                return [QueryResult()]
            columns = list(result.keys())
            values = [tuple(row) for row in result.fetchall()]
        return [QueryResult(columns=columns, values=values)]

    async def persist(self) -> None:
        """No-op: the remote service owns its own durability."""
        logger.debug("persist() skipped for remote backend")

    def handle(self) -> AsyncEngine:
        return self._engine

    async def close(self) -> None:
        await self._engine.dispose()
        logger.info("Remote database engine disposed")
