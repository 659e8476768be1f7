"""Core interfaces (ports) for dependency injection."""

from plotdesk.core.interfaces.notification import INotificationChannel
from plotdesk.core.interfaces.storage import (
    EDITABLE_FIELDS,
    IReminderStore,
    ReminderFilter,
    SortField,
)

__all__ = [
    # Notification interfaces
    "INotificationChannel",
    # Storage interfaces
    "IReminderStore",
    "ReminderFilter",
    "SortField",
    "EDITABLE_FIELDS",
]
