"""SQLite storage adapter for points."""

import asyncio
import math
from collections.abc import AsyncIterable, AsyncIterator, Sequence
from contextlib import asynccontextmanager

import aiosqlite

from metricrelay.core.models import Point

_POINTS_SCHEMA = """
CREATE TABLE IF NOT EXISTS points (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    timestamp INTEGER NOT NULL,
    value REAL,
    host TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_points_name_timestamp ON points(name, timestamp);
"""

_INSERT_POINT = """
INSERT INTO points (name, timestamp, value, host) VALUES (?, ?, ?, ?)
"""

_SELECT_POINTS_SINCE = """
SELECT name, timestamp, value, host FROM points
WHERE timestamp > ?
ORDER BY timestamp ASC, id ASC
"""

_COUNT_POINTS = """
SELECT COUNT(*) FROM points
"""


class AsyncConnectionManager:
    """Opens aiosqlite connections to one database, creating the schema once.

    An in-memory database lives only as long as its connection, so for
    ``:memory:`` a single connection is opened on first use and reused
    until close(). File databases get a fresh connection per operation.
    """

    def __init__(self, db_path: str, schema: str) -> None:
        self._db_path = db_path
        self._schema = schema
        self._ready = False
        self._lock: asyncio.Lock | None = None
        self._shared: aiosqlite.Connection | None = None

    @property
    def in_memory(self) -> bool:
        return self._db_path == ":memory:"

    async def _prepare(self) -> None:
        # created lazily so the manager can be built outside a running loop
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            if self._ready:
                return
            if self.in_memory:
                self._shared = await aiosqlite.connect(":memory:")
                await self._shared.executescript(self._schema)
            else:
                async with aiosqlite.connect(self._db_path) as db:
                    await db.execute("PRAGMA journal_mode=WAL")
                    await db.executescript(self._schema)
            self._ready = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        if not self._ready:
            await self._prepare()
        if self._shared is not None:
            yield self._shared
            return
        db = await aiosqlite.connect(self._db_path)
        try:
            yield db
        finally:
            await db.close()

    async def close(self) -> None:
        if self._shared is not None:
            await self._shared.close()
            self._shared = None
            self._ready = False


class SQLitePointStorage:
    """SQLite implementation of PointWriterPort.

    Each batch is inserted with executemany in its own transaction, so a
    failed batch leaves no partial rows behind. Uses WAL mode for file
    databases so readers do not block the relay.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._manager = AsyncConnectionManager(db_path, _POINTS_SCHEMA)

    async def write_points(self, points: Sequence[Point]) -> None:
        """Insert a batch of points."""
        rows = [(p.name, p.timestamp, p.value, p.host) for p in points]
        async with self._manager.connection() as db:
            try:
                await db.executemany(_INSERT_POINT, rows)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    async def read(self, since: int = 0) -> AsyncIterable[Point]:
        """Read points with timestamp > since (ms), oldest first."""
        async with self._manager.connection() as db:
            async with db.execute(_SELECT_POINTS_SINCE, (since,)) as cursor:
                async for row in cursor:
                    # SQLite turns NaN into NULL on insert
                    value = math.nan if row[2] is None else row[2]
                    yield Point(name=row[0], timestamp=row[1], value=value, host=row[3])

    async def count(self) -> int:
        """Return total number of stored points."""
        async with self._manager.connection() as db:
            async with db.execute(_COUNT_POINTS) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    async def close(self) -> None:
        await self._manager.close()
