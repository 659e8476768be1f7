"""Core domain entities."""

from plotdesk.core.entities.notification import (
    CHANNEL_ORDER,
    NotificationChannelName,
    NotificationResult,
    ensure_utc,
    parse_reminder_method,
    utc_now,
)
from plotdesk.core.entities.reminder import (
    CATEGORY_LABELS,
    OVERDUE_SOURCE_STATUSES,
    REMINDER_LEAD_DAYS,
    TERMINAL_STATUSES,
    Reminder,
    ReminderCategory,
    ReminderStatus,
    ReminderType,
    TransactionType,
    derive_reminder_date,
    generate_transaction_id,
)

__all__ = [
    # Notification
    "CHANNEL_ORDER",
    "NotificationChannelName",
    "NotificationResult",
    "parse_reminder_method",
    "ensure_utc",
    "utc_now",
    # Reminder
    "CATEGORY_LABELS",
    "OVERDUE_SOURCE_STATUSES",
    "REMINDER_LEAD_DAYS",
    "TERMINAL_STATUSES",
    "Reminder",
    "ReminderCategory",
    "ReminderStatus",
    "ReminderType",
    "TransactionType",
    "derive_reminder_date",
    "generate_transaction_id",
]
