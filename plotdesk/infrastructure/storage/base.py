"""
Validation helpers shared by every reminder store backend.

Both backends must apply identical create/update rules so that switching
STORAGE_BACKEND never changes reminder semantics.
"""

from datetime import datetime
from typing import Any

import pydantic

from plotdesk.core.entities.notification import ensure_utc, utc_now
from plotdesk.core.entities.reminder import Reminder
from plotdesk.core.exceptions import ValidationError
from plotdesk.core.interfaces.storage import EDITABLE_FIELDS

REQUIRED_TEXT_FIELDS = ("title", "customer_name", "customer_phone")


def to_db_datetime(value: datetime | None) -> str | None:
    """Fixed-width UTC ISO string; text order equals time order."""
    if value is None:
        return None
    return ensure_utc(value).isoformat(timespec="microseconds")


def build_reminder(data: dict[str, Any]) -> Reminder:
    """Construct a Reminder, converting pydantic errors to ValidationError."""
    try:
        return Reminder.model_validate(data)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "reminder"
        raise ValidationError(field, first["msg"], first.get("input")) from e


def validate_new_reminder(reminder: Reminder) -> Reminder:
    """
    Check required fields before a reminder is persisted.

    Returns a copy with fresh audit timestamps, a transaction id and a
    reminder date, so records created via model_construct are covered too.
    """
    for field in REQUIRED_TEXT_FIELDS:
        value = getattr(reminder, field, None)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(field, "is required", value)
    if getattr(reminder, "due_date", None) is None:
        raise ValidationError("due_date", "is required")
    if reminder.amount < 0:
        raise ValidationError("amount", "must not be negative", reminder.amount)

    data = reminder.model_dump()
    now = utc_now()
    data.update(id=None, created_at=now, updated_at=now)
    return build_reminder(data)


def apply_changes(reminder: Reminder, changes: dict[str, Any]) -> Reminder:
    """
    Return a new Reminder with editable fields changed.

    Moving the due date re-derives the reminder date under auto-reminder,
    unless the caller sets reminder_date explicitly in the same update.
    """
    unknown = sorted(set(changes) - EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(unknown[0], "field cannot be updated")

    data = reminder.model_dump()
    data.update(changes)
    data["updated_at"] = utc_now()

    if "due_date" in changes and "reminder_date" not in changes:
        previous = reminder.reminder_date
        data["reminder_date"] = None
        updated = build_reminder(data)
        if not updated.auto_reminder and previous is not None and previous <= updated.due_date:
            updated.reminder_date = previous
        return updated

    return build_reminder(data)
