"""
Persistence gateway: one query interface over either backend.

``create_gateway()`` is called once at process start; the returned
``PersistenceGateway`` is passed to whatever needs the database. The
backend is chosen from settings at construction and fixed for the
lifetime of the gateway.

Usage::

    async with create_gateway() as db:
        await db.initialize_database()
        [result] = await db.exec_query("SELECT id, model FROM vehicles")
        await db.run_query(
            "INSERT INTO history (vehicleId, driverId) VALUES (?, ?)",
            ["QKE1B6", "2"],
        )
        await db.save_database()
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any

from fleetdb.db.base import DatabaseBackend, ExecutionResult, Params, QueryResult
from fleetdb.db.embedded import EmbeddedBackend
from fleetdb.db.errors import DatabaseConfigError
from fleetdb.db.libsql import LibsqlBackend, is_libsql_url
from fleetdb.db.remote import RemoteBackend
from fleetdb.settings import Settings, get_settings

logger = logging.getLogger(__name__)

DEVELOPMENT = "development"
PRODUCTION = "production"


class PersistenceGateway:
    """Logs and re-raises statement failures; delegates everything else."""

    def __init__(self, backend: DatabaseBackend, mode: str = DEVELOPMENT) -> None:
        self.backend = backend
        self.mode = mode

    async def initialize_database(self) -> None:
        """Ensure the four tables and the seed rows exist."""
        await self.backend.initialize()

    async def run_query(
        self, statement: str, params: Params = ()
    ) -> ExecutionResult:
        """Execute a statement for its side effects.

        Development mode does not save afterwards; call
        ``save_database()`` when the change must survive a restart.
        """
        try:
            return await self.backend.run(statement, params)
        except Exception:
            self._log_failure("Error running query", statement, params)
            raise

    async def exec_query(
        self, statement: str, params: Params = ()
    ) -> list[QueryResult]:
        """Execute a statement and return its rows as ``[QueryResult]``."""
        try:
            return await self.backend.exec(statement, params)
        except Exception:
            self._log_failure("Error executing query", statement, params)
            raise

    async def save_database(self) -> None:
        """Persist the embedded database to disk; no-op in production."""
        await self.backend.persist()

    def get_db(self) -> Any:
        """Return the live backend handle (sqlite3 connection, AsyncEngine or libSQL client).

        Results read through the handle are not normalized.
        """
        return self.backend.handle()

    async def close(self) -> None:
        await self.backend.close()
        logger.info("Persistence gateway closed (mode=%s)", self.mode)

    async def __aenter__(self) -> PersistenceGateway:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    @staticmethod
    def _log_failure(message: str, statement: str, params: Params) -> None:
        logger.exception(
            "%s: %s params=%r",
            message,
            statement,
            params,
            extra={"statement": statement, "params": _loggable_params(params)},
        )

    def __repr__(self) -> str:
        return f"<PersistenceGateway(mode={self.mode!r}, backend={self.backend.name!r})>"


def _loggable_params(params: Any) -> Any:
    """Parameters as a list for structured logs, or their repr if not a sequence."""
    if params is None:
        return []
    if isinstance(params, (str, bytes)):
        return repr(params)
    try:
        return list(params)
    except TypeError:
        return repr(params)


def create_backend(settings: Settings) -> DatabaseBackend:
    """Build the backend selected by ``settings.environment``.

    Production URLs with a libSQL scheme (``libsql://``, ``https://``,
    ``wss://`` ...) go to ``LibsqlBackend`` with the auth token; any other
    URL is treated as a SQLAlchemy async URL and goes to ``RemoteBackend``.

    Raises:
        DatabaseConfigError: production mode without a URL, or a libSQL
            URL without an auth token.
    """
    if not settings.is_production:
        return EmbeddedBackend(settings.dev_db_path)

    url = settings.database_url
    if not url:
        missing = ["DATABASE_URL"]
        if not settings.database_auth_token:
            missing.append("DATABASE_AUTH_TOKEN")
        raise DatabaseConfigError(
            f"Production database requires {', '.join(missing)}"
        )

    if is_libsql_url(url):
        if not settings.database_auth_token:
            raise DatabaseConfigError(
                "Production database requires DATABASE_AUTH_TOKEN"
            )
        return LibsqlBackend(url=url, auth_token=settings.database_auth_token)

    return RemoteBackend(url=url)


def create_gateway(settings: Settings | None = None) -> PersistenceGateway:
    """Construct the process-wide gateway from settings."""
    settings = settings or get_settings()
    backend = create_backend(settings)
    mode = PRODUCTION if settings.is_production else DEVELOPMENT
    logger.info("Persistence gateway using %s backend (mode=%s)", backend.name, mode)
    return PersistenceGateway(backend, mode=mode)
