"""Session management and schema bootstrap.

Provides open_session(), which hands out one live connection per logical
operation, the atomic() transaction helper, and the ConnectionMixin with
schema setup and generic query helpers.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from pathlib import Path
from typing import Any

import aiosqlite

from ..config import ConnectionConfig
from ..exceptions import BackendError

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"

# Bumped whenever schema.sql changes shape
SCHEMA_VERSION = 1

ErrorSink = Callable[[BaseException], None]


def log_connection_error(error: BaseException) -> None:
    """Default sink for connection-level errors."""
    logger.error("Database connection error: %s", error, exc_info=error)


@asynccontextmanager
async def open_session(
    config: ConnectionConfig,
    on_error: ErrorSink | None = None,
) -> AsyncIterator[aiosqlite.Connection]:
    """Open a connection for the duration of one operation.

    The connection runs in autocommit mode; use atomic() for multi-statement
    transactions. aiosqlite errors raised inside the block are re-raised as
    BackendError. Errors raised while shutting the connection down are
    reported to ``on_error`` and never reach the caller.

    Args:
        config: Connection descriptor.
        on_error: Sink for connection shutdown errors. Defaults to logging.

    Raises:
        BackendError: If the database cannot be opened or a statement fails.
    """
    sink = on_error or log_connection_error
    try:
        conn = await aiosqlite.connect(
            str(config.database),
            timeout=config.timeout,
            isolation_level=None,
        )
    except aiosqlite.Error as e:
        msg = f"Cannot open database {config.database}: {e}"
        raise BackendError(msg) from e

    conn.row_factory = aiosqlite.Row
    try:
        await conn.execute("PRAGMA foreign_keys = ON")
        yield conn
    except aiosqlite.Error as e:
        raise BackendError(str(e)) from e
    finally:
        try:
            await conn.close()
        except Exception as e:
            sink(e)


@asynccontextmanager
async def atomic(conn: aiosqlite.Connection) -> AsyncIterator[aiosqlite.Connection]:
    """Run the enclosed statements as a single transaction.

    Commits on normal exit; rolls back if anything raises.
    """
    await conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        await conn.execute("ROLLBACK")
        raise
    await conn.execute("COMMIT")


class ConnectionMixin:
    """Base mixin holding the connection descriptor.

    Owns schema bootstrap and generic query helpers. Holds no connection
    between calls: every method opens and closes its own session.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        on_error: ErrorSink | None = None,
    ) -> None:
        """Initialize with a connection descriptor.

        Args:
            config: Where and how to reach the database.
            on_error: Sink for connection shutdown errors. Defaults to logging.
        """
        self.config = config
        self._on_error = on_error

    def _session(self) -> AbstractAsyncContextManager[aiosqlite.Connection]:
        return open_session(self.config, self._on_error)

    async def maybe_create_db(self) -> None:
        """Create the schema if it does not exist yet.

        Idempotent: existing tables and rows are left untouched.

        Raises:
            BackendError: If the schema cannot be applied.
        """
        schema_sql = SCHEMA_PATH.read_text()
        async with self._session() as conn:
            await conn.executescript(schema_sql)
            await conn.execute(
                "INSERT INTO version (version) VALUES (?) ON CONFLICT DO NOTHING",
                (SCHEMA_VERSION,),
            )
        logger.info("Database schema initialized: %s", self.config.database)

    async def get_schema_version(self) -> int | None:
        """Return the recorded schema version, or None if never bootstrapped.

        A missing database file is reported as None without creating it.
        """
        if not self.config.database.exists():
            return None
        async with self._session() as conn:
            async with conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name='version'"
            ) as cursor:
                if await cursor.fetchone() is None:
                    return None
            async with conn.execute("SELECT MAX(version) FROM version") as cursor:
                row = await cursor.fetchone()
        return int(row[0]) if row and row[0] is not None else None

    # =========================================================================
    # Generic Query Helpers (for testing)
    # =========================================================================

    async def execute_query(
        self,
        query: str,
        params: tuple[Any, ...] | None = None,
    ) -> list[dict[str, Any]]:
        """Execute a SELECT query and return results as list of dicts.

        Args:
            query: SQL SELECT query.
            params: Optional query parameters.

        Returns:
            List of result rows as dictionaries.
        """
        async with self._session() as conn:
            async with conn.execute(query, params or ()) as cursor:
                rows = await cursor.fetchall()
                return [dict(row) for row in rows]
