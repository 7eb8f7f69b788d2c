"""
libSQL backend for the managed production database (Turso).

Talks to the service through ``libsql_client``; every call is its own
round-trip. The client is created on first use, so building the backend
needs neither a running event loop nor network access.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any

import libsql_client

from fleetdb.db.base import ExecutionResult, Params, QueryResult, bind_params
from fleetdb.db.schema import CREATE_TABLES, DEFAULT_ADMIN_PASSWORD, seed_statements

logger = logging.getLogger(__name__)

# URL schemes served by libsql_client rather than a SQLAlchemy dialect.
LIBSQL_SCHEMES = ("libsql", "wss", "ws", "https", "http", "file")


def is_libsql_url(url: str) -> bool:
    scheme, sep, _ = url.partition(":")
    return bool(sep) and scheme.lower() in LIBSQL_SCHEMES


class LibsqlBackend:
    """Remote libSQL database reached with a URL and an auth token.

    Args:
        url: ``libsql://``, ``https://``, ``wss://`` ... URL of the database.
        auth_token: Token passed to ``libsql_client.create_client``.
        admin_password: Plaintext hashed into the seeded admin row.
        client: Pre-built client; ``url``/``auth_token`` are ignored when given.
    """

    name = "libsql"

    def __init__(
        self,
        url: str | None = None,
        auth_token: str | None = None,
        admin_password: str = DEFAULT_ADMIN_PASSWORD,
        client: Any = None,
    ) -> None:
        if client is None and not url:
            raise ValueError("LibsqlBackend requires a database URL or a client")
        self.url = url
        self._auth_token = auth_token
        self._admin_password = admin_password
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = libsql_client.create_client(
                url=self.url, auth_token=self._auth_token
            )
            logger.info("libSQL client created for %s", self.url)
        return self._client

    async def initialize(self) -> None:
        """Create tables and seed rows; safe to repeat."""
        for statement in CREATE_TABLES:
            await self.run(statement)
        for statement, params in seed_statements(self._admin_password):
            await self.run(statement, params)
        logger.info("libSQL database schema and seed data ensured")

    async def run(self, statement: str, params: Params = ()) -> ExecutionResult:
        result_set = await self._get_client().execute(
            statement, list(bind_params(params))
        )
        return ExecutionResult(
            rows_affected=result_set.rows_affected,
            last_insert_id=result_set.last_insert_rowid,
        )

    async def exec(self, statement: str, params: Params = ()) -> list[QueryResult]:
        result_set = await self._get_client().execute(
            statement, list(bind_params(params))
        )
        columns = list(result_set.columns)
        values = [
            tuple(row[i] for i in range(len(columns))) for row in result_set.rows
        ]
        return [QueryResult(columns=columns, values=values)]

    async def persist(self) -> None:
        """No-op: the remote service owns its own durability."""
        logger.debug("persist() skipped for libSQL backend")

    def handle(self) -> Any:
        return self._get_client()

    async def close(self) -> None:
        if self._client is None:
            return
        closing = self._client.close()
        if inspect.isawaitable(closing):
            await closing
        self._client = None
        logger.info("libSQL client closed")
