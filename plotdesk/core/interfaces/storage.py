"""
Abstract interfaces for storage providers.

A single reminder store contract with persistent and in-memory
implementations chosen at startup.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from plotdesk.core.entities.notification import NotificationResult
from plotdesk.core.entities.reminder import (
    Reminder,
    ReminderCategory,
    ReminderStatus,
    ReminderType,
    TransactionType,
)

SortField = Literal["due_date", "reminder_date", "created_at", "sent_at"]

# Fields a caller may change through IReminderStore.update
EDITABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "customer_name",
        "customer_phone",
        "customer_email",
        "amount",
        "currency",
        "transaction_type",
        "category",
        "type",
        "transaction_date",
        "due_date",
        "reminder_date",
        "reminder_time",
        "auto_reminder",
        "reminder_method",
        "plot_id",
        "plot_number",
        "agent_id",
        "notes",
        "tags",
    }
)


@dataclass
class ReminderFilter:
    """Query filters for listing reminders."""

    status: ReminderStatus | None = None
    type: ReminderType | None = None
    transaction_type: TransactionType | None = None
    category: ReminderCategory | None = None
    customer_name: str | None = None
    due_from: datetime | None = None
    due_to: datetime | None = None
    include_inactive: bool = False


class IReminderStore(ABC):
    """
    Abstract interface for reminder storage.

    Every mutation is atomic per record: state transitions are conditional
    updates, never read-modify-write across awaits, so the scheduler and
    manual triggers can run against the same store concurrently.
    """

    backend_name: str = "unknown"

    @abstractmethod
    async def ping(self) -> bool:
        """Return True when the persistence layer is reachable."""
        pass

    @abstractmethod
    async def create(self, reminder: Reminder) -> Reminder:
        """Validate and persist a new reminder, returning it with its id."""
        pass

    @abstractmethod
    async def get(self, reminder_id: int) -> Reminder | None:
        """Get reminder by ID."""
        pass

    @abstractmethod
    async def get_by_transaction_id(self, transaction_id: str) -> Reminder | None:
        """Get reminder by transaction id."""
        pass

    @abstractmethod
    async def update(self, reminder_id: int, changes: dict[str, Any]) -> Reminder:
        """Apply a partial update of editable fields."""
        pass

    @abstractmethod
    async def delete(self, reminder_id: int) -> bool:
        """Soft-delete a reminder (is_active=False)."""
        pass

    @abstractmethod
    async def list_reminders(
        self,
        filters: ReminderFilter | None = None,
        limit: int = 20,
        offset: int = 0,
        sort: SortField = "due_date",
        descending: bool = False,
    ) -> list[Reminder]:
        """List reminders with filters, pagination and sorting."""
        pass

    @abstractmethod
    async def count(self, filters: ReminderFilter | None = None) -> int:
        """Count reminders matching the filters."""
        pass

    @abstractmethod
    async def find_due(self, now: datetime) -> list[Reminder]:
        """Reminders eligible for automatic sending at `now`."""
        pass

    @abstractmethod
    async def find_overdue(self, now: datetime) -> list[Reminder]:
        """Open (Pending/Reminded) reminders whose due date has passed."""
        pass

    @abstractmethod
    async def mark_sent(
        self,
        reminder_id: int,
        results: list[NotificationResult] | None = None,
        only_if_pending: bool = False,
    ) -> bool:
        """
        Append results and transition to Reminded.

        Returns False when the transition did not apply (already sent,
        closed, or no longer pending when only_if_pending is set).
        """
        pass

    @abstractmethod
    async def mark_failed(
        self,
        reminder_id: int,
        results: list[NotificationResult],
    ) -> bool:
        """Append results and transition to Failed unless already sent."""
        pass

    @abstractmethod
    async def mark_overdue(self, reminder_id: int) -> bool:
        """Transition Pending/Reminded to Overdue; no-op otherwise."""
        pass

    @abstractmethod
    async def mark_completed(self, reminder_id: int) -> bool:
        """Close the reminder as Completed."""
        pass

    @abstractmethod
    async def cancel(self, reminder_id: int) -> bool:
        """Close the reminder as Cancelled."""
        pass

    @abstractmethod
    async def list_notification_history(self, limit: int = 10) -> list[Reminder]:
        """Reminders with delivery attempts, most recently sent first."""
        pass
