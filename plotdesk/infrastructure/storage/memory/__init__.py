"""In-memory storage backend."""

from plotdesk.infrastructure.storage.memory.reminder_store import InMemoryReminderStore

__all__ = ["InMemoryReminderStore"]
