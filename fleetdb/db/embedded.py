"""
Embedded SQLite backend for local development.

The whole database lives in an in-memory ``sqlite3`` connection. The
on-disk file is only read at ``initialize()`` and only written by an
explicit ``persist()``; statements never touch the file directly.
Single-process, single-user: the file is not locked.
"""

from __future__ import annotations

import logging
import os
import sqlite3
import stat
import tempfile
from pathlib import Path

from fleetdb.db.base import ExecutionResult, Params, QueryResult, bind_params
from fleetdb.db.schema import CREATE_TABLES, DEFAULT_ADMIN_PASSWORD, seed_statements

logger = logging.getLogger(__name__)


class EmbeddedBackend:
    """In-memory SQLite database persisted to a single file.

    Usage::

        backend = EmbeddedBackend("vehicles.db")
        await backend.initialize()
        await backend.run("UPDATE vehicles SET isCheckedOut = TRUE WHERE id = ?", ["QKE1B6"])
        await backend.persist()
    """

    name = "embedded"

    def __init__(
        self,
        db_path: str | os.PathLike[str],
        admin_password: str = DEFAULT_ADMIN_PASSWORD,
    ) -> None:
        self.db_path = Path(db_path)
        self._admin_password = admin_password
        self._conn: sqlite3.Connection | None = None

    @property
    def is_initialized(self) -> bool:
        return self._conn is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Load the database file, or create, seed and save a fresh one.

        An unreadable file (I/O error, corruption, zero bytes) is logged
        and replaced by a fresh database.
        """
        if self._conn is not None:
            return

        if self.db_path.exists():
            try:
                self._conn = self._load()
                logger.info("Loaded development database from %s", self.db_path)
                return
            except (OSError, sqlite3.DatabaseError):
                logger.exception(
                    "Error loading development database %s, recreating",
                    self.db_path,
                )

        self._conn = self._create_fresh()
        self._write_file()
        logger.info("Created and seeded development database at %s", self.db_path)

    def _load(self) -> sqlite3.Connection:
        data = self.db_path.read_bytes()
        if not data:
            raise sqlite3.DatabaseError(f"empty database file: {self.db_path}")

        conn = self._connect()
        try:
            conn.deserialize(data)
            # Deserialize is lazy about validation; touching the schema
            # surfaces "file is not a database" here instead of later.
            conn.execute("SELECT count(*) FROM sqlite_master").fetchone()
            conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    def _create_fresh(self) -> sqlite3.Connection:
        conn = self._connect()
        try:
            for statement in CREATE_TABLES:
                conn.execute(statement)
            for statement, params in seed_statements(self._admin_password):
                conn.execute(statement, params)
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    @staticmethod
    def _connect() -> sqlite3.Connection:
        # isolation_level=None: autocommit, so serialize() always sees
        # every executed statement.
        conn = sqlite3.connect(":memory:", isolation_level=None)
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    async def close(self) -> None:
        """Drop the in-memory database without saving it."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.debug("Embedded database connection closed")

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _require_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("EmbeddedBackend used before initialize()")
        return self._conn

    async def run(self, statement: str, params: Params = ()) -> ExecutionResult:
        conn = self._require_conn()
        cursor = conn.execute(statement, bind_params(params))
        try:
            return ExecutionResult(
                rows_affected=cursor.rowcount,
                last_insert_id=cursor.lastrowid,
            )
        finally:
            cursor.close()

    async def exec(self, statement: str, params: Params = ()) -> list[QueryResult]:
        conn = self._require_conn()
        cursor = conn.execute(statement, bind_params(params))
        try:
            if cursor.description is None:
                return [QueryResult()]
            columns = [column[0] for column in cursor.description]
            values = [tuple(row) for row in cursor.fetchall()]
            return [QueryResult(columns=columns, values=values)]
        finally:
            cursor.close()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def persist(self) -> None:
        """Serialize the in-memory database over the database file."""
        self._require_conn()
        try:
            self._write_file()
        except (OSError, sqlite3.Error):
            logger.exception("Error saving development database to %s", self.db_path)
            raise
        logger.info("Database saved successfully to %s", self.db_path)

    def _write_file(self) -> None:
        """Write the full database image atomically (tempfile + os.replace)."""
        data = self._require_conn().serialize()

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=self.db_path.parent,
            prefix=f".{self.db_path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            # mkstemp creates 0600; keep the mode a plain open() would give.
            os.chmod(temp_path, self._file_mode())
            os.replace(temp_path, self.db_path)
        except BaseException:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    def _file_mode(self) -> int:
        try:
            return stat.S_IMODE(self.db_path.stat().st_mode)
        except FileNotFoundError:
            umask = os.umask(0)
            os.umask(umask)
            return 0o666 & ~umask

    def handle(self) -> sqlite3.Connection:
        return self._require_conn()
