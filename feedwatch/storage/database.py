"""
SQLite database connection management.

The spool is a plain SQLite file so it can be inspected or edited with
any SQLite client. The ``sqlite3`` driver is blocking, so every call is
run in a worker thread and serialized on a single connection.
"""

import asyncio
import logging
import sqlite3
import threading
from collections.abc import Callable
from types import TracebackType
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

MEMORY_PATH = ":memory:"


class Database:
    """
    Async wrapper around one SQLite connection.

    Usage:
        db = Database("./data/spool.db")
        await db.connect()

        await db.execute("INSERT INTO ...", value)
        row = await db.fetchrow("SELECT ...", value)

        await db.close()

    ``":memory:"`` opens a private in-memory database, mostly useful for tests.
    """

    def __init__(self, path: str, busy_timeout_ms: int = 5000):
        """
        Initialize database connection manager.

        Args:
            path: SQLite file path or ":memory:"
            busy_timeout_ms: How long a write waits on a locked file
        """
        self._path = path
        self._busy_timeout_ms = busy_timeout_ms
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    @property
    def path(self) -> str:
        return self._path

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    async def connect(self) -> None:
        """Open the connection (autocommit mode, WAL journal for files)."""
        try:
            self._conn = await asyncio.to_thread(self._open)
            logger.info("Database connected: %s", self._path)
        except sqlite3.Error as e:
            logger.error("Failed to open database %s: %s", self._path, e)
            raise

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self._path,
            isolation_level=None,
            check_same_thread=False,
        )
        try:
            conn.execute(f"PRAGMA busy_timeout={int(self._busy_timeout_ms)};")
            if self._path != MEMORY_PATH:
                conn.execute("PRAGMA journal_mode=WAL;")
                conn.execute("PRAGMA synchronous=NORMAL;")
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    async def close(self) -> None:
        """Close the connection."""
        if self._conn is not None:
            conn, self._conn = self._conn, None
            await asyncio.to_thread(self._locked, conn.close)
            logger.info("Database connection closed")

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the connection, raising if not connected."""
        if self._conn is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._conn

    def _locked(self, fn: Callable[[], T]) -> T:
        with self._lock:
            return fn()

    async def _run(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        conn = self.connection
        return await asyncio.to_thread(self._locked, lambda: fn(conn))

    async def execute(self, query: str, *args: Any) -> int:
        """
        Execute a statement without returning rows.

        Returns:
            Number of rows changed
        """
        return await self._run(lambda conn: conn.execute(query, args).rowcount)

    async def fetchrow(self, query: str, *args: Any) -> tuple | None:
        """Execute a query and fetch the first row, or None."""
        return await self._run(lambda conn: conn.execute(query, args).fetchone())

    async def fetch(self, query: str, *args: Any) -> list[tuple]:
        """Execute a query and fetch all rows."""
        return await self._run(lambda conn: conn.execute(query, args).fetchall())

    async def fetchval(self, query: str, *args: Any) -> Any:
        """Execute a query and fetch the first column of the first row."""
        row = await self.fetchrow(query, *args)
        return row[0] if row else None

    async def execute_script_atomic(self, script: str) -> None:
        """
        Run a multi-statement script inside a single IMMEDIATE transaction.

        SQLite DDL is transactional, so a failure part-way leaves the
        database exactly as it was before the call.
        """

        def run(conn: sqlite3.Connection) -> None:
            try:
                conn.executescript(f"BEGIN IMMEDIATE;\n{script}\nCOMMIT;")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

        await self._run(run)

    async def health_check(self) -> bool:
        """
        Check if database is healthy.

        Returns:
            True if database is accessible
        """
        try:
            result = await self.fetchval("SELECT 1")
            return result == 1
        except (sqlite3.Error, RuntimeError):
            return False
