"""Database connection management and schema initialization.

Provides the base ConnectionMixin with connection lifecycle, schema setup,
the transaction context used for every read and write, and a generic query
helper.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

from ..exceptions import StoreError

logger = logging.getLogger(__name__)

# Schema ships inside the package: database/connection.py -> database/schema.sql
SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"

# Default database path
DEFAULT_DB_PATH = Path.cwd() / "tasks.db"

_REQUIRED_TASK_COLUMNS = {
    "scope",
    "position",
    "is_recurring",
    "origin_recurring_id",
    "version",
}


class ConnectionMixin:
    """Base mixin providing database connection management.

    Manages the aiosqlite connection lifecycle, schema initialization, and
    the store-wide write lock.

    The lock is held for the whole body of ``transaction()`` and is
    re-entrant for the asyncio task that owns it, so a facade operation can
    open a transaction and call store methods (which open their own) without
    deadlocking. Reads take the lock too: the connection is shared, and an
    unlocked reader would otherwise see a half-applied position shift.
    """

    def __init__(self, db_path: str | Path | None = None) -> None:
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file. Use ":memory:" for testing.
                     Defaults to tasks.db in the current working directory.
        """
        if db_path is None:
            self.db_path = DEFAULT_DB_PATH
        elif isinstance(db_path, str):
            self.db_path = Path(db_path) if db_path != ":memory:" else db_path  # type: ignore[assignment]
        else:
            self.db_path = db_path
        self._conn: aiosqlite.Connection | None = None
        self._initialized = False
        self._write_lock = asyncio.Lock()
        self._txn_owner: asyncio.Task[Any] | None = None

    async def __aenter__(self) -> ConnectionMixin:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    async def connect(self) -> None:
        """Open database connection and initialize schema."""
        db_path = str(self.db_path) if isinstance(self.db_path, Path) else self.db_path
        if db_path != ":memory:":
            resolved_path = Path(db_path).resolve()
            logger.info("Database: %s (exists: %s)", resolved_path, resolved_path.exists())
        self._conn = await aiosqlite.connect(db_path)
        self._conn.row_factory = aiosqlite.Row
        await self._conn.execute("PRAGMA foreign_keys = ON")
        try:
            await self._initialize_schema()
        except Exception:
            await self.close()
            raise

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None
            self._initialized = False

    async def _ensure_connected(self) -> None:
        """Ensure database is connected."""
        if self._conn is None:
            await self.connect()

    @property
    def _connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            msg = "Database not connected"
            raise RuntimeError(msg)
        return self._conn

    async def _initialize_schema(self) -> None:
        """Initialize database schema from SQL file.

        Raises:
            RuntimeError: If an existing database has an incompatible schema.
                          Delete the database file to start fresh.
        """
        conn = self._connection
        if self._initialized:
            return

        async with conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='tasks'"
        ) as cursor:
            row = await cursor.fetchone()
        if row:
            async with conn.execute("PRAGMA table_info(tasks)") as pragma_cursor:
                columns = {col[1] for col in await pragma_cursor.fetchall()}
            missing = _REQUIRED_TASK_COLUMNS - columns
            if missing:
                msg = (
                    f"Database schema is outdated (missing columns: {missing}).\n"
                    f"To fix: Delete {self.db_path} and run again."
                )
                raise RuntimeError(msg)

        schema_sql = SCHEMA_PATH.read_text()
        async with self._write_lock:
            try:
                await conn.executescript(schema_sql)
                await conn.commit()
            except sqlite3.Error as e:
                msg = f"Schema initialization failed: {e}"
                raise RuntimeError(msg) from e
        self._initialized = True
        logger.debug("Database schema initialized")

    # =========================================================================
    # Transactions
    # =========================================================================

    def _owns_transaction(self) -> bool:
        current = asyncio.current_task()
        return self._txn_owner is not None and self._txn_owner is current

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Run the enclosed reads and writes as one atomic, isolated unit.

        Commits when the block exits normally and rolls back on any
        exception. sqlite errors are re-raised as StoreError; domain errors
        propagate unchanged. Nested use from the owning task joins the outer
        transaction.

        Yields:
            The underlying aiosqlite connection.
        """
        await self._ensure_connected()
        conn = self._connection

        if self._owns_transaction():
            yield conn
            return

        async with self._write_lock:
            self._txn_owner = asyncio.current_task()
            try:
                yield conn
                await conn.commit()
            except sqlite3.Error as e:
                await conn.rollback()
                logger.warning("Transaction rolled back: %s", e)
                raise StoreError(f"Task store failure: {e}") from e
            except BaseException:
                await conn.rollback()
                raise
            finally:
                self._txn_owner = None

    # =========================================================================
    # Generic Query Helper (for testing)
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
        async with self.transaction() as conn:
            async with conn.execute(query, params or ()) as cursor:
                rows = await cursor.fetchall()
                return [dict(row) for row in rows]
