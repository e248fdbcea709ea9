"""Database initialization and connection management."""
import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

from scholar_rewards.core.exceptions import StorageError

logger = logging.getLogger(__name__)

# Seconds a writer waits for another process holding the write lock
BUSY_TIMEOUT_SECONDS = 15


class Database:
    """Database connection manager.

    One shared connection per process. Single statements and every
    ``transaction()`` block are serialized through an asyncio lock so two
    coroutines never interleave statements inside the same SQLite
    transaction. ``BEGIN IMMEDIATE`` takes the database write lock up front,
    which serializes writers across processes as well.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    async def connect(self) -> aiosqlite.Connection:
        """Establish database connection."""
        if self._conn is None:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            # isolation_level=None: transactions are opened explicitly below
            self._conn = await aiosqlite.connect(
                self.db_path,
                timeout=BUSY_TIMEOUT_SECONDS,
                isolation_level=None,
            )
            self._conn.row_factory = aiosqlite.Row
            await self._conn.execute("PRAGMA foreign_keys = ON")
            if self.db_path != ":memory:":
                await self._conn.execute("PRAGMA journal_mode = WAL")

        return self._conn

    async def close(self):
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Run a block of statements as one atomic unit.

        Commits when the block exits normally, rolls back on any exception
        (including cancellation) and re-raises it.
        """
        conn = await self.connect()
        async with self._lock:
            try:
                await conn.execute("BEGIN IMMEDIATE")
            except aiosqlite.Error as e:
                raise StorageError(f"Could not start transaction: {e}") from e
            try:
                yield conn
            except BaseException:
                await conn.execute("ROLLBACK")
                raise
            else:
                try:
                    await conn.execute("COMMIT")
                except aiosqlite.Error as e:
                    await conn.execute("ROLLBACK")
                    raise StorageError(f"Commit failed: {e}") from e

    async def execute(self, query: str, params: tuple = ()) -> int:
        """Execute a single write statement. Returns affected row count."""
        conn = await self.connect()
        async with self._lock:
            cursor = await conn.execute(query, params)
            return cursor.rowcount

    async def fetchone(self, query: str, params: tuple = ()) -> Optional[dict]:
        """Fetch one result."""
        conn = await self.connect()
        async with self._lock:
            async with conn.execute(query, params) as cursor:
                row = await cursor.fetchone()
                return dict(row) if row else None

    async def fetchall(self, query: str, params: tuple = ()) -> list[dict]:
        """Fetch all results."""
        conn = await self.connect()
        async with self._lock:
            async with conn.execute(query, params) as cursor:
                return [dict(row) for row in await cursor.fetchall()]


async def init_database(db_path: str = "data/scholar_rewards.db") -> Database:
    """Initialize database with schema from migrations/init.sql."""
    migrations_path = Path(__file__).parent.parent / "database" / "migrations" / "init.sql"

    if not migrations_path.exists():
        raise FileNotFoundError(f"Migration file not found: {migrations_path}")

    schema_sql = migrations_path.read_text(encoding="utf-8")

    db = Database(db_path)
    conn = await db.connect()
    await conn.executescript(schema_sql)

    logger.info("Database initialized at %s", db_path)

    return db


# Global database instance (set by the entry point)
db: Optional[Database] = None


def get_db() -> Database:
    """Get global database instance."""
    if db is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return db
