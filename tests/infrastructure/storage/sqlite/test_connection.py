"""Unit tests for SQLite connection pool."""

import asyncio
from pathlib import Path

import pytest

from plotdesk.core.exceptions import StorageUnavailableError
from plotdesk.infrastructure.storage.sqlite.connection import ConnectionPool


class TestConnectionPoolInit:
    """Tests for ConnectionPool initialization."""

    def test_init_defaults(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path)
        assert pool.db_path == temp_db_path
        assert pool.pool_size == 5
        assert pool.busy_timeout == 30000
        assert pool.initialized is False

    def test_init_custom_values(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=10, busy_timeout=60000)
        assert pool.pool_size == 10
        assert pool.busy_timeout == 60000


class TestConnectionPoolUsage:
    async def test_initialize_creates_connections(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=2)
        await pool.initialize()
        try:
            assert pool.initialized is True
            assert len(pool._connections) == 2
            assert temp_db_path.exists()
        finally:
            await pool.close()

    async def test_initialize_is_idempotent(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=2)
        await pool.initialize()
        await pool.initialize()
        try:
            assert len(pool._connections) == 2
        finally:
            await pool.close()

    async def test_acquire_initializes_lazily(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=1)
        try:
            async with pool.acquire() as conn:
                cursor = await conn.execute("PRAGMA journal_mode")
                row = await cursor.fetchone()
                assert row[0].lower() == "wal"
        finally:
            await pool.close()

    async def test_transaction_rolls_back_on_error(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=1)
        try:
            async with pool.transaction() as conn:
                await conn.execute("CREATE TABLE items (name TEXT)")

            with pytest.raises(RuntimeError):
                async with pool.transaction() as conn:
                    await conn.execute("INSERT INTO items VALUES ('lost')")
                    raise RuntimeError("abort")

            async with pool.acquire() as conn:
                cursor = await conn.execute("SELECT COUNT(*) FROM items")
                assert (await cursor.fetchone())[0] == 0
        finally:
            await pool.close()

    async def test_pool_limits_concurrent_connections(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=1)
        order: list[str] = []

        async def worker(name: str) -> None:
            async with pool.acquire():
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        try:
            await asyncio.gather(worker("a"), worker("b"))
            assert order == ["a-in", "a-out", "b-in", "b-out"]
        finally:
            await pool.close()

    async def test_ping(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=1)
        try:
            assert await pool.ping() is True
        finally:
            await pool.close()

    async def test_ping_unreachable_path(self, tmp_path: Path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("")
        pool = ConnectionPool(blocker / "db.sqlite", pool_size=1)
        assert await pool.ping() is False

    async def test_close_resets_state(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=2)
        await pool.initialize()
        await pool.close()
        assert pool.initialized is False
        assert pool._connections == []

    async def test_exhausted_pool_reports_unavailable(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=1, busy_timeout=50)
        try:
            async with pool.acquire():
                with pytest.raises(StorageUnavailableError):
                    async with pool.acquire():
                        pass
        finally:
            await pool.close()

    async def test_transaction_holds_write_lock(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=1)
        try:
            async with pool.transaction() as conn:
                assert conn.in_transaction is True
            async with pool.acquire() as conn:
                assert conn.in_transaction is False
        finally:
            await pool.close()
