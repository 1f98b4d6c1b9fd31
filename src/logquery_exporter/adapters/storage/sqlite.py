"""SQLite checkpoint store."""

import asyncio
import logging
import sqlite3
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosqlite

logger = logging.getLogger(__name__)

_CHECKPOINT_SCHEMA = """
CREATE TABLE IF NOT EXISTS checkpoints (
    key TEXT PRIMARY KEY,
    end_time INTEGER NOT NULL,
    updated_at REAL NOT NULL
);
"""

_SELECT_CHECKPOINT = """
SELECT end_time FROM checkpoints WHERE key = ?
"""

_UPSERT_CHECKPOINT = """
INSERT INTO checkpoints (key, end_time, updated_at) VALUES (?, ?, ?)
ON CONFLICT(key) DO UPDATE SET end_time = excluded.end_time,
    updated_at = excluded.updated_at
"""


class SQLiteCheckpointStore:
    """CheckpointStorePort backed by a SQLite table, one row per key.

    Several exporters can share one database by using distinct keys, such
    as their log group names. The schema is created on first use, and the
    database runs in WAL mode so a reader never blocks the writer.

    A ``:memory:`` database exists only as long as its connection, so that
    case keeps a single connection open until close().
    """

    def __init__(self, db_path: str, key: str = "default") -> None:
        self._db_path = db_path
        self._key = key
        self._ready = False
        self._setup_lock: asyncio.Lock | None = None
        self._memory_db: aiosqlite.Connection | None = None

    async def _setup(self) -> None:
        if self._ready:
            return
        # Created here rather than in __init__ so it binds to the running loop.
        if self._setup_lock is None:
            self._setup_lock = asyncio.Lock()
        async with self._setup_lock:
            if self._ready:
                return
            if self._db_path == ":memory:":
                self._memory_db = await aiosqlite.connect(self._db_path)
                await self._memory_db.executescript(_CHECKPOINT_SCHEMA)
            else:
                async with aiosqlite.connect(self._db_path) as db:
                    await db.execute("PRAGMA journal_mode=WAL")
                    await db.executescript(_CHECKPOINT_SCHEMA)
            self._ready = True

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[aiosqlite.Connection]:
        await self._setup()
        if self._memory_db is not None:
            yield self._memory_db
        else:
            async with aiosqlite.connect(self._db_path) as db:
                yield db

    async def read(self) -> int | None:
        """Return the checkpoint for this store's key, or None if unset."""
        try:
            async with self._connection() as db:
                async with db.execute(_SELECT_CHECKPOINT, (self._key,)) as cursor:
                    row = await cursor.fetchone()
        except sqlite3.Error as exc:
            logger.warning("Error reading checkpoint %r from %s: %s", self._key, self._db_path, exc)
            return None
        if row is None:
            return None
        value = row[0]
        if not isinstance(value, int) or value < 0:
            logger.warning("Ignoring invalid checkpoint %r for %r", value, self._key)
            return None
        return value

    async def write(self, checkpoint: int) -> None:
        """Persist the checkpoint. Failures are logged, not raised."""
        try:
            async with self._connection() as db:
                await db.execute(_UPSERT_CHECKPOINT, (self._key, checkpoint, time.time()))
                await db.commit()
        except sqlite3.Error as exc:
            logger.error("Error writing checkpoint %r to %s: %s", self._key, self._db_path, exc)

    async def close(self) -> None:
        """Release the ``:memory:`` connection; its data is discarded."""
        if self._memory_db is not None:
            await self._memory_db.close()
            self._memory_db = None
            self._ready = False
