"""
In-memory reminder storage.

Dict-backed store with the same semantics as the SQLite backend. Every
mutation runs without an await between its check and its write, so it is
atomic with respect to other coroutines on the same event loop.
"""

from datetime import datetime
from typing import Any

from plotdesk.config import get_logger
from plotdesk.core.entities.notification import NotificationResult, utc_now
from plotdesk.core.entities.reminder import (
    OVERDUE_SOURCE_STATUSES,
    Reminder,
    ReminderStatus,
)
from plotdesk.core.exceptions import DuplicateReminderError, ReminderNotFoundError
from plotdesk.core.interfaces.storage import IReminderStore, ReminderFilter, SortField
from plotdesk.infrastructure.storage.base import apply_changes, validate_new_reminder

logger = get_logger(__name__)


class InMemoryReminderStore(IReminderStore):
    """Reminder store kept in process memory."""

    backend_name = "memory"

    def __init__(self) -> None:
        self._reminders: dict[int, Reminder] = {}
        self._by_transaction: dict[str, int] = {}
        self._next_id = 1

    def _require(self, reminder_id: int) -> Reminder:
        reminder = self._reminders.get(reminder_id)
        if reminder is None:
            raise ReminderNotFoundError(reminder_id)
        return reminder

    @staticmethod
    def _copy(reminder: Reminder) -> Reminder:
        # Callers never hold references into the store
        return reminder.model_copy(deep=True)

    async def ping(self) -> bool:
        return True

    async def create(self, reminder: Reminder) -> Reminder:
        reminder = validate_new_reminder(reminder)
        if reminder.transaction_id in self._by_transaction:
            raise DuplicateReminderError(reminder.transaction_id or "")

        reminder.id = self._next_id
        self._next_id += 1
        self._reminders[reminder.id] = reminder
        self._by_transaction[reminder.transaction_id or ""] = reminder.id

        logger.info(
            "reminder_created",
            reminder_id=reminder.id,
            transaction_id=reminder.transaction_id,
            backend=self.backend_name,
        )
        return self._copy(reminder)

    async def get(self, reminder_id: int) -> Reminder | None:
        reminder = self._reminders.get(reminder_id)
        return self._copy(reminder) if reminder else None

    async def get_by_transaction_id(self, transaction_id: str) -> Reminder | None:
        reminder_id = self._by_transaction.get(transaction_id)
        return await self.get(reminder_id) if reminder_id is not None else None

    async def update(self, reminder_id: int, changes: dict[str, Any]) -> Reminder:
        existing = self._require(reminder_id)
        updated = apply_changes(existing, changes)
        self._reminders[reminder_id] = updated
        logger.info("reminder_updated", reminder_id=reminder_id, fields=sorted(changes))
        return self._copy(updated)

    async def delete(self, reminder_id: int) -> bool:
        reminder = self._reminders.get(reminder_id)
        if reminder is None:
            return False
        reminder.is_active = False
        reminder.updated_at = utc_now()
        logger.info("reminder_deactivated", reminder_id=reminder_id)
        return True

    @staticmethod
    def _matches(reminder: Reminder, filters: ReminderFilter) -> bool:
        if not filters.include_inactive and not reminder.is_active:
            return False
        if filters.status is not None and reminder.status != filters.status:
            return False
        if filters.type is not None and reminder.type != filters.type:
            return False
        if (
            filters.transaction_type is not None
            and reminder.transaction_type != filters.transaction_type
        ):
            return False
        if filters.category is not None and reminder.category != filters.category:
            return False
        if (
            filters.customer_name
            and filters.customer_name.lower() not in reminder.customer_name.lower()
        ):
            return False
        if filters.due_from is not None and reminder.due_date < filters.due_from:
            return False
        if filters.due_to is not None and reminder.due_date > filters.due_to:
            return False
        return True

    def _filtered(self, filters: ReminderFilter | None) -> list[Reminder]:
        filters = filters or ReminderFilter()
        return [r for r in self._reminders.values() if self._matches(r, filters)]

    async def list_reminders(
        self,
        filters: ReminderFilter | None = None,
        limit: int = 20,
        offset: int = 0,
        sort: SortField = "due_date",
        descending: bool = False,
    ) -> list[Reminder]:
        items = self._filtered(filters)
        # Stable tie-break first, then the requested key; NULLs sort first ascending
        items.sort(key=lambda r: (r.reminder_date or r.due_date, r.id or 0))
        items.sort(
            key=lambda r: (getattr(r, sort) is not None, getattr(r, sort) or r.created_at),
            reverse=descending,
        )
        return [self._copy(r) for r in items[offset : offset + limit]]

    async def count(self, filters: ReminderFilter | None = None) -> int:
        return len(self._filtered(filters))

    async def find_due(self, now: datetime) -> list[Reminder]:
        due = [r for r in self._reminders.values() if r.is_due(now)]
        due.sort(key=lambda r: (r.reminder_date, r.id))
        return [self._copy(r) for r in due]

    async def find_overdue(self, now: datetime) -> list[Reminder]:
        overdue = [r for r in self._reminders.values() if r.is_overdue(now)]
        overdue.sort(key=lambda r: (r.due_date, r.id))
        return [self._copy(r) for r in overdue]

    async def mark_sent(
        self,
        reminder_id: int,
        results: list[NotificationResult] | None = None,
        only_if_pending: bool = False,
    ) -> bool:
        reminder = self._require(reminder_id)
        now = utc_now()

        applied = not reminder.is_terminal
        if only_if_pending:
            applied = (
                applied and reminder.status == ReminderStatus.PENDING and not reminder.reminder_sent
            )
        if applied:
            reminder.status = ReminderStatus.REMINDED
            reminder.reminder_sent = True
            reminder.reminder_sent_date = now
            reminder.sent_at = now
        if results:
            reminder.notification_results.extend(r.model_copy() for r in results)
        if applied or results:
            reminder.updated_at = now

        logger.info("reminder_marked_sent", reminder_id=reminder_id, applied=applied)
        return applied

    async def mark_failed(
        self,
        reminder_id: int,
        results: list[NotificationResult],
    ) -> bool:
        reminder = self._require(reminder_id)
        now = utc_now()

        applied = not reminder.reminder_sent and not reminder.is_terminal
        if applied:
            reminder.status = ReminderStatus.FAILED
            reminder.sent_at = now
        reminder.notification_results.extend(r.model_copy() for r in results)
        reminder.updated_at = now

        logger.info("reminder_marked_failed", reminder_id=reminder_id, applied=applied)
        return applied

    async def mark_overdue(self, reminder_id: int) -> bool:
        reminder = self._require(reminder_id)
        if reminder.status not in OVERDUE_SOURCE_STATUSES:
            return False
        reminder.status = ReminderStatus.OVERDUE
        reminder.updated_at = utc_now()
        logger.info("reminder_marked_overdue", reminder_id=reminder_id)
        return True

    async def mark_completed(self, reminder_id: int) -> bool:
        reminder = self._require(reminder_id)
        if reminder.is_terminal:
            return False
        now = utc_now()
        reminder.status = ReminderStatus.COMPLETED
        reminder.completed_at = now
        reminder.updated_at = now
        return True

    async def cancel(self, reminder_id: int) -> bool:
        reminder = self._require(reminder_id)
        if reminder.is_terminal:
            return False
        reminder.status = ReminderStatus.CANCELLED
        reminder.updated_at = utc_now()
        return True

    async def list_notification_history(self, limit: int = 10) -> list[Reminder]:
        history = [r for r in self._reminders.values() if r.notification_results]
        history.sort(
            key=lambda r: (r.sent_at is not None, r.sent_at or r.created_at, r.id or 0),
            reverse=True,
        )
        return [self._copy(r) for r in history[:limit]]
