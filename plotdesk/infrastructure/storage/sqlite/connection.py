"""
aiosqlite connection pool for the reminder database.

The scheduler, manual send triggers and API requests share a fixed set of
WAL connections. Write transactions start with BEGIN IMMEDIATE, so a
conditional status UPDATE and the notification result append that follows
it hold the write lock together, even when a second process (the CLI scan)
uses the same file.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from plotdesk.config import get_logger, get_settings
from plotdesk.core.exceptions import StorageUnavailableError

logger = get_logger(__name__)

_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA foreign_keys=ON",
)


class ConnectionPool:
    """Fixed-size pool of WAL connections to one database file."""

    def __init__(
        self,
        db_path: Path,
        pool_size: int = 5,
        busy_timeout: int = 30000,
    ):
        self.db_path = db_path
        self.pool_size = pool_size
        self.busy_timeout = busy_timeout  # ms, also bounds waiting for a free connection

        self._idle: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue(maxsize=pool_size)
        self._connections: list[aiosqlite.Connection] = []
        self._initialized = False
        self._lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def _open(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self.db_path)
        try:
            for pragma in _PRAGMAS:
                await conn.execute(pragma)
            await conn.execute(f"PRAGMA busy_timeout={self.busy_timeout}")
        except aiosqlite.Error:
            await conn.close()
            raise
        conn.row_factory = aiosqlite.Row
        return conn

    async def initialize(self) -> None:
        """
        Open every connection.

        Raises:
            StorageUnavailableError: the database file cannot be opened
        """
        async with self._lock:
            if self._initialized:
                return

            opened: list[aiosqlite.Connection] = []
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                for _ in range(self.pool_size):
                    opened.append(await self._open())
            except (aiosqlite.Error, OSError) as e:
                for conn in opened:
                    await conn.close()
                logger.error("connection_pool_open_failed", db_path=str(self.db_path), error=str(e))
                raise StorageUnavailableError("sqlite", str(e)) from e

            for conn in opened:
                self._connections.append(conn)
                self._idle.put_nowait(conn)
            self._initialized = True
            logger.info(
                "connection_pool_initialized",
                db_path=str(self.db_path),
                pool_size=self.pool_size,
            )

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Borrow a connection, opening the pool on first use.

        Raises:
            StorageUnavailableError: no connection became free within busy_timeout
        """
        if not self._initialized:
            await self.initialize()

        try:
            conn = await asyncio.wait_for(self._idle.get(), timeout=self.busy_timeout / 1000)
        except TimeoutError as e:
            logger.warning("connection_pool_exhausted", pool_size=self.pool_size)
            raise StorageUnavailableError("sqlite", "no free connection") from e

        try:
            yield conn
        finally:
            self._idle.put_nowait(conn)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Borrow a connection inside BEGIN IMMEDIATE; commit on success, roll back on error."""
        async with self.acquire() as conn:
            if not conn.in_transaction:
                await conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                raise
            await conn.commit()

    async def ping(self) -> bool:
        """True when the database answers a trivial query."""
        try:
            async with self.acquire() as conn:
                cursor = await conn.execute("SELECT 1")
                return await cursor.fetchone() is not None
        except (aiosqlite.Error, OSError, StorageUnavailableError) as e:
            logger.warning("database_ping_failed", db_path=str(self.db_path), error=str(e))
            return False

    async def close(self) -> None:
        async with self._lock:
            for conn in self._connections:
                await conn.close()
            self._connections.clear()
            self._idle = asyncio.Queue(maxsize=self.pool_size)
            self._initialized = False
            logger.info("connection_pool_closed", db_path=str(self.db_path))


_pool: ConnectionPool | None = None


async def get_pool() -> ConnectionPool:
    """Process-wide pool for the configured database."""
    global _pool
    if _pool is None:
        storage = get_settings().storage
        pool = ConnectionPool(
            db_path=storage.db_path,
            pool_size=storage.pool_size,
            busy_timeout=storage.busy_timeout,
        )
        await pool.initialize()
        _pool = pool
    return _pool


async def close_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
