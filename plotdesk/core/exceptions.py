"""
Domain exceptions for Plot Desk.

Delivery failures are never raised: channels report them as
NotificationResult values. Everything here is a caller-facing error.
"""

from typing import Any


class PlotDeskError(Exception):
    """Base exception for all Plot Desk errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Storage Exceptions
class StorageError(PlotDeskError):
    """Base exception for storage operations."""

    pass


class ReminderNotFoundError(StorageError):
    """Reminder not found in storage."""

    def __init__(self, reminder_id: int | str):
        super().__init__(
            f"Reminder not found: {reminder_id}",
            code="REMINDER_NOT_FOUND",
            details={"reminder_id": reminder_id},
        )


class DuplicateReminderError(StorageError):
    """Reminder with the same transaction id already exists."""

    def __init__(self, transaction_id: str):
        super().__init__(
            f"Reminder already exists for transaction: {transaction_id}",
            code="DUPLICATE_REMINDER",
            details={"transaction_id": transaction_id},
        )


class StorageUnavailableError(StorageError):
    """Persistence layer cannot be reached."""

    def __init__(self, backend: str, reason: str | None = None):
        super().__init__(
            f"Storage unavailable: {backend}" + (f" - {reason}" if reason else ""),
            code="STORAGE_UNAVAILABLE",
            details={"backend": backend, "reason": reason},
        )


class DatabaseError(StorageError):
    """Database operation failed."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            f"Database error during {operation}: {error}",
            code="DATABASE_ERROR",
            details={"operation": operation, "error": error},
        )


# Scheduler Exceptions
class SchedulerError(PlotDeskError):
    """Base exception for reminder dispatch and scheduling."""

    pass


class ReminderBusyError(SchedulerError):
    """Reminder is already being dispatched by another caller."""

    def __init__(self, reminder_id: int):
        super().__init__(
            f"Reminder {reminder_id} is already being dispatched",
            code="REMINDER_BUSY",
            details={"reminder_id": reminder_id},
        )


class ReminderClosedError(SchedulerError):
    """Reminder is completed or cancelled and cannot be sent."""

    def __init__(self, reminder_id: int, status: str):
        super().__init__(
            f"Reminder {reminder_id} is {status} and cannot be sent",
            code="REMINDER_CLOSED",
            details={"reminder_id": reminder_id, "status": status},
        )


# Validation Exceptions
class ValidationError(PlotDeskError):
    """Input validation failed."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for '{field}': {message}",
            code="VALIDATION_ERROR",
            details={
                "field": field,
                "message": message,
                "value": str(value)[:100] if value else None,
            },
        )


class ConfigurationError(PlotDeskError):
    """Configuration error."""

    pass
