"""
Storage infrastructure implementations.

The backend is chosen once at startup from STORAGE_BACKEND; handlers never
branch on connection state.
"""

from plotdesk.config import get_logger, get_settings
from plotdesk.core.interfaces import IReminderStore
from plotdesk.infrastructure.storage.memory import InMemoryReminderStore
from plotdesk.infrastructure.storage.sqlite import (
    ConnectionPool,
    SQLiteReminderStore,
    close_pool,
    get_pool,
)

logger = get_logger(__name__)


def create_reminder_store(backend: str | None = None) -> IReminderStore:
    """
    Create a reminder store for the configured backend.

    Args:
        backend: "sqlite" or "memory" (default from settings)
    """
    backend = backend or get_settings().storage.backend

    if backend == "sqlite":
        store: IReminderStore = SQLiteReminderStore()
    elif backend == "memory":
        store = InMemoryReminderStore()
    else:
        raise ValueError(f"Unknown storage backend: {backend}")

    logger.info("reminder_store_created", backend=backend)
    return store


__all__ = [
    "create_reminder_store",
    # Backends
    "SQLiteReminderStore",
    "InMemoryReminderStore",
    # Connection pool
    "ConnectionPool",
    "get_pool",
    "close_pool",
]
