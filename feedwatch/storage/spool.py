"""
The spool: durable record of which items have been announced.

Whenever a feed is fetched, each item is looked up in the spool and skipped
if found. New items are announced before being added, so an item is never
announced twice. Items are grouped by source key so every monitoring
configuration keeps its own history.
"""

import logging
import sqlite3

from feedwatch.errors import StoreError, StoreInitError
from feedwatch.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS notifications (
    id          INTEGER PRIMARY KEY,
    source_key  TEXT NOT NULL,
    item_id     TEXT NOT NULL,
    notified_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
CREATE UNIQUE INDEX IF NOT EXISTS notifications_items
    ON notifications(source_key, item_id);
"""

_INSERT_SQL = "INSERT INTO notifications (source_key, item_id) VALUES (?, ?)"

_EXISTS_SQL = "SELECT 1 FROM notifications WHERE source_key = ? AND item_id = ?"


class Spool:
    """Membership and idempotent insertion of (source_key, item_id) pairs."""

    def __init__(self, database: Database) -> None:
        self._db = database

    @classmethod
    async def open(cls, path: str) -> "Spool":
        """
        Open the spool at ``path`` and make sure its schema exists.

        ``":memory:"`` gives an in-memory spool.

        Raises:
            StoreInitError: If the file cannot be opened or initialized
        """
        db = Database(path)
        try:
            await db.connect()
        except sqlite3.Error as e:
            raise StoreInitError(f"Cannot open spool {path}: {e}") from e

        spool = cls(db)
        try:
            await spool.initialize()
        except StoreInitError:
            await db.close()
            raise
        return spool

    async def initialize(self) -> None:
        """Create the notifications table and index (idempotent, atomic)."""
        logger.info("Initializing spool schema")
        try:
            await self._db.execute_script_atomic(_CREATE_SCHEMA_SQL)
        except sqlite3.Error as e:
            raise StoreInitError(f"Cannot initialize spool schema: {e}") from e

    async def close(self) -> None:
        await self._db.close()

    async def is_notified(self, source_key: str, item_id: str) -> bool:
        """Return True if the item was already announced for this source."""
        try:
            row = await self._db.fetchrow(_EXISTS_SQL, source_key, item_id)
        except sqlite3.Error as e:
            raise StoreError(
                f"Spool lookup failed for {source_key}/{item_id}: {e}"
            ) from e
        return row is not None

    async def mark_notified(self, source_key: str, item_id: str) -> bool:
        """
        Record the item as announced for this source.

        A pair that is already present is not an error: concurrent checks
        of the same item may both try to insert it.

        Returns:
            True if the pair was inserted, False if it was already present
        """
        logger.debug("Marking %s as notified on %s", item_id, source_key)
        try:
            await self._db.execute(_INSERT_SQL, source_key, item_id)
        except sqlite3.IntegrityError:
            logger.debug("Item %s already marked on %s", item_id, source_key)
            return False
        except sqlite3.Error as e:
            raise StoreError(
                f"Spool insert failed for {source_key}/{item_id}: {e}"
            ) from e
        return True

    async def count(self, source_key: str | None = None) -> int:
        """Count announced items, optionally for one source."""
        try:
            if source_key is None:
                value = await self._db.fetchval("SELECT COUNT(*) FROM notifications")
            else:
                value = await self._db.fetchval(
                    "SELECT COUNT(*) FROM notifications WHERE source_key = ?",
                    source_key,
                )
        except sqlite3.Error as e:
            raise StoreError(f"Spool count failed: {e}") from e
        return value or 0

    async def count_by_source(self) -> dict[str, int]:
        """Announced item counts grouped by source key."""
        try:
            rows = await self._db.fetch(
                "SELECT source_key, COUNT(*) FROM notifications "
                "GROUP BY source_key ORDER BY source_key"
            )
        except sqlite3.Error as e:
            raise StoreError(f"Spool count failed: {e}") from e
        return {key: count for key, count in rows}

    async def health_check(self) -> bool:
        return await self._db.health_check()
