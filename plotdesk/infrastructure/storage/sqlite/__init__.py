"""SQLite storage implementations."""

from plotdesk.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    close_pool,
    get_pool,
)
from plotdesk.infrastructure.storage.sqlite.reminder_store import SQLiteReminderStore

__all__ = [
    "ConnectionPool",
    "get_pool",
    "close_pool",
    "SQLiteReminderStore",
]
