"""
Core business logic services.

Layer-pure services that depend only on:
- plotdesk/core/entities/*
- plotdesk/core/interfaces/*
- plotdesk/core/exceptions.py

NO infrastructure imports. All dependencies injected via constructor.
"""

from plotdesk.core.services.messages import (
    format_amount,
    format_reminder_message,
    format_test_message,
    group_indian,
)
from plotdesk.core.services.notification_dispatcher import NotificationDispatcher
from plotdesk.core.services.reminder_scheduler import (
    DEFAULT_SCAN_INTERVAL_SECONDS,
    DispatchOutcome,
    ReminderScheduler,
    ScanReport,
)

__all__ = [
    # Messages
    "format_amount",
    "format_reminder_message",
    "format_test_message",
    "group_indian",
    # Dispatcher
    "NotificationDispatcher",
    # Scheduler
    "DEFAULT_SCAN_INTERVAL_SECONDS",
    "DispatchOutcome",
    "ReminderScheduler",
    "ScanReport",
]
