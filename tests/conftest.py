"""Pytest configuration and fixtures."""

import asyncio
import os
from collections.abc import AsyncGenerator, Callable, Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

# Settings are read when the app module is imported below
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["REMINDER_AUTOSTART"] = "false"
os.environ["NOTIFY_RETRY_DELAY"] = "0"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from plotdesk.api.dependencies import get_bus, get_dispatcher, get_rem_store, get_scheduler
from plotdesk.api.main import app
from plotdesk.application.services import reset_services
from plotdesk.application.use_cases import CreatePaymentReminderUseCase
from plotdesk.config import reset_settings
from plotdesk.core.entities import NotificationChannelName, NotificationResult, Reminder
from plotdesk.core.events import EventBus
from plotdesk.core.interfaces import INotificationChannel
from plotdesk.core.services import NotificationDispatcher, ReminderScheduler
from plotdesk.infrastructure.storage.memory import InMemoryReminderStore
from plotdesk.infrastructure.storage.sqlite import ConnectionPool, SQLiteReminderStore
from plotdesk.infrastructure.storage.sqlite.migrations import initialize_database

# Fixed reference time for store and scheduler tests
NOW = datetime(2026, 3, 10, 10, 0, tzinfo=UTC)


class FakeChannel(INotificationChannel):
    """In-process channel that records sends and returns a scripted outcome."""

    def __init__(
        self,
        name: NotificationChannelName,
        succeed: bool = True,
        raises: Exception | None = None,
        delay: float = 0.0,
    ):
        self.name = name
        self.succeed = succeed
        self.raises = raises
        self.delay = delay
        self.sent: list[tuple[str, str]] = []

    @property
    def enabled(self) -> bool:
        return True

    @property
    def configured(self) -> bool:
        return True

    def normalize_destination(self, destination: str) -> str:
        return destination

    async def send(self, destination: str, message: str) -> NotificationResult:
        self.sent.append((destination, message))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raises is not None:
            raise self.raises
        if self.succeed:
            return NotificationResult(
                channel=self.name, success=True, message_id=f"{self.name.value}-{len(self.sent)}"
            )
        return NotificationResult(channel=self.name, success=False, error="rejected by gateway")

    def config_summary(self) -> dict[str, Any]:
        return {"enabled": True, "configured": True}


@pytest.fixture(autouse=True)
def _reset_singletons() -> Generator[None, None, None]:
    """Every test starts from fresh settings and service singletons."""
    reset_settings()
    reset_services()
    yield
    reset_services()
    reset_settings()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_reminder() -> Callable[..., Reminder]:
    """Factory for reminders due five days after NOW."""

    def _make(**overrides: Any) -> Reminder:
        data: dict[str, Any] = {
            "title": "Balance payment",
            "description": "Balance payment for plot booking",
            "customer_name": "Ravi Patil",
            "customer_phone": "9876543210",
            "amount": 150000,
            "due_date": NOW + timedelta(days=5),
        }
        data.update(overrides)
        return Reminder(**data)

    return _make


@pytest.fixture
def make_channel() -> Callable[..., FakeChannel]:
    return FakeChannel


@pytest.fixture
def channels() -> dict[NotificationChannelName, FakeChannel]:
    return {name: FakeChannel(name) for name in NotificationChannelName}


@pytest.fixture
def dispatcher(channels) -> NotificationDispatcher:
    return NotificationDispatcher(channels, company_name="TEST PROPERTY", channel_timeout=2.0)


@pytest.fixture
def memory_store() -> InMemoryReminderStore:
    return InMemoryReminderStore()


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Create a temporary database path."""
    return tmp_path / "test.db"


@pytest_asyncio.fixture
async def sqlite_pool(temp_db_path: Path) -> AsyncGenerator[ConnectionPool, None]:
    """Migrated temporary database behind a small pool."""
    await initialize_database(temp_db_path, create_backup_before=False)
    pool = ConnectionPool(temp_db_path, pool_size=2, busy_timeout=5000)
    await pool.initialize()
    yield pool
    await pool.close()


@pytest_asyncio.fixture
async def sqlite_store(sqlite_pool: ConnectionPool) -> SQLiteReminderStore:
    return SQLiteReminderStore(sqlite_pool)


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def store(request, temp_db_path: Path) -> AsyncGenerator[Any, None]:
    """Each reminder store backend, for behaviour both must share."""
    if request.param == "memory":
        yield InMemoryReminderStore()
        return

    await initialize_database(temp_db_path, create_backup_before=False)
    pool = ConnectionPool(temp_db_path, pool_size=2, busy_timeout=5000)
    await pool.initialize()
    yield SQLiteReminderStore(pool)
    await pool.close()


@pytest.fixture
def scheduler(memory_store, dispatcher) -> ReminderScheduler:
    return ReminderScheduler(memory_store, dispatcher, interval_seconds=3600, clock=lambda: NOW)


@pytest_asyncio.fixture
async def app_client(
    memory_store, dispatcher
) -> AsyncGenerator[AsyncClient, None]:
    """Async client over the app with an in-memory store and fake channels."""
    scheduler = ReminderScheduler(memory_store, dispatcher, interval_seconds=3600)
    bus = EventBus()
    CreatePaymentReminderUseCase(memory_store).register(bus)

    app.dependency_overrides[get_rem_store] = lambda: memory_store
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    app.dependency_overrides[get_bus] = lambda: bus

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
