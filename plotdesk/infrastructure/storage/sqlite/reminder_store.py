"""
SQLite implementation of reminder storage.

State transitions are single conditional UPDATE statements, and delivery
results are appended with json_insert, so concurrent dispatches on the
same reminder cannot interleave a read-modify-write.
"""

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

import aiosqlite

from plotdesk.config import get_logger
from plotdesk.core.entities.notification import NotificationResult, utc_now
from plotdesk.core.entities.reminder import (
    OVERDUE_SOURCE_STATUSES,
    TERMINAL_STATUSES,
    Reminder,
    ReminderStatus,
)
from plotdesk.core.exceptions import (
    DatabaseError,
    DuplicateReminderError,
    ReminderNotFoundError,
    StorageUnavailableError,
)
from plotdesk.core.interfaces.storage import IReminderStore, ReminderFilter, SortField
from plotdesk.infrastructure.storage.base import (
    apply_changes,
    build_reminder,
    to_db_datetime,
    validate_new_reminder,
)
from plotdesk.infrastructure.storage.sqlite.connection import ConnectionPool, get_pool

logger = get_logger(__name__)

_COLUMNS = (
    "transaction_id",
    "transaction_type",
    "category",
    "type",
    "title",
    "description",
    "customer_name",
    "customer_phone",
    "customer_email",
    "amount",
    "currency",
    "transaction_date",
    "due_date",
    "reminder_date",
    "reminder_time",
    "status",
    "auto_reminder",
    "reminder_sent",
    "reminder_sent_date",
    "sent_at",
    "completed_at",
    "reminder_method",
    "notification_results",
    "plot_id",
    "plot_number",
    "agent_id",
    "payment_id",
    "notes",
    "tags",
    "is_active",
    "created_at",
    "updated_at",
)

# Columns rewritten by update(); status and delivery fields are excluded
_EDIT_COLUMNS = (
    "transaction_type",
    "category",
    "type",
    "title",
    "description",
    "customer_name",
    "customer_phone",
    "customer_email",
    "amount",
    "currency",
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
    "updated_at",
)

_DATETIME_COLUMNS = frozenset(
    {
        "transaction_date",
        "due_date",
        "reminder_date",
        "reminder_sent_date",
        "sent_at",
        "completed_at",
        "created_at",
        "updated_at",
    }
)

_SORT_COLUMNS: dict[str, str] = {
    "due_date": "due_date",
    "reminder_date": "reminder_date",
    "created_at": "created_at",
    "sent_at": "sent_at",
}

_TERMINAL = tuple(s.value for s in TERMINAL_STATUSES)
_OVERDUE_SOURCES = tuple(s.value for s in OVERDUE_SOURCE_STATUSES)


def _placeholders(values: tuple[Any, ...]) -> str:
    return ", ".join("?" for _ in values)


class SQLiteReminderStore(IReminderStore):
    """SQLite implementation of reminder storage."""

    backend_name = "sqlite"

    def __init__(self, pool: ConnectionPool | None = None):
        self._pool = pool

    async def _get_pool(self) -> ConnectionPool:
        if self._pool is None:
            self._pool = await get_pool()
        return self._pool

    @asynccontextmanager
    async def _connection(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                yield conn
        except aiosqlite.IntegrityError:
            raise
        except aiosqlite.Error as e:
            raise DatabaseError(operation, str(e)) from e

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        pool = await self._get_pool()
        try:
            async with pool.transaction() as conn:
                yield conn
        except aiosqlite.IntegrityError:
            raise
        except aiosqlite.Error as e:
            raise DatabaseError(operation, str(e)) from e

    async def ping(self) -> bool:
        """Check database reachability."""
        try:
            pool = await self._get_pool()
        except StorageUnavailableError as e:
            logger.warning("reminder_store_unreachable", error=str(e))
            return False
        return await pool.ping()

    async def create(self, reminder: Reminder) -> Reminder:
        """Create a new reminder."""
        reminder = validate_new_reminder(reminder)
        row = self._entity_to_row(reminder)
        try:
            async with self._transaction("create_reminder") as conn:
                cursor = await conn.execute(
                    f"INSERT INTO reminders ({', '.join(_COLUMNS)}) "
                    f"VALUES ({_placeholders(_COLUMNS)})",
                    tuple(row[col] for col in _COLUMNS),
                )
                reminder.id = cursor.lastrowid
        except aiosqlite.IntegrityError as e:
            raise DuplicateReminderError(reminder.transaction_id or "") from e

        logger.info(
            "reminder_created",
            reminder_id=reminder.id,
            transaction_id=reminder.transaction_id,
            due_date=row["due_date"],
            reminder_date=row["reminder_date"],
        )
        return reminder

    async def get(self, reminder_id: int) -> Reminder | None:
        """Get reminder by ID."""
        async with self._connection("get_reminder") as conn:
            cursor = await conn.execute("SELECT * FROM reminders WHERE id = ?", (reminder_id,))
            row = await cursor.fetchone()
            return self._row_to_entity(row) if row else None

    async def get_by_transaction_id(self, transaction_id: str) -> Reminder | None:
        """Get reminder by transaction id."""
        async with self._connection("get_reminder_by_transaction") as conn:
            cursor = await conn.execute(
                "SELECT * FROM reminders WHERE transaction_id = ?", (transaction_id,)
            )
            row = await cursor.fetchone()
            return self._row_to_entity(row) if row else None

    async def update(self, reminder_id: int, changes: dict[str, Any]) -> Reminder:
        """Apply a partial update of editable fields."""
        existing = await self.get(reminder_id)
        if existing is None:
            raise ReminderNotFoundError(reminder_id)

        updated = apply_changes(existing, changes)
        row = self._entity_to_row(updated)
        assignments = ", ".join(f"{col} = ?" for col in _EDIT_COLUMNS)

        async with self._transaction("update_reminder") as conn:
            cursor = await conn.execute(
                f"UPDATE reminders SET {assignments} WHERE id = ?",
                (*(row[col] for col in _EDIT_COLUMNS), reminder_id),
            )
            if cursor.rowcount == 0:
                raise ReminderNotFoundError(reminder_id)

        logger.info("reminder_updated", reminder_id=reminder_id, fields=sorted(changes))
        return await self.get(reminder_id) or updated

    async def delete(self, reminder_id: int) -> bool:
        """Soft-delete a reminder."""
        async with self._transaction("delete_reminder") as conn:
            cursor = await conn.execute(
                "UPDATE reminders SET is_active = 0, updated_at = ? WHERE id = ?",
                (to_db_datetime(utc_now()), reminder_id),
            )
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("reminder_deactivated", reminder_id=reminder_id)
        return deleted

    @staticmethod
    def _filter_clause(filters: ReminderFilter | None) -> tuple[str, list[Any]]:
        filters = filters or ReminderFilter()
        clauses: list[str] = []
        params: list[Any] = []

        if not filters.include_inactive:
            clauses.append("is_active = 1")
        if filters.status is not None:
            clauses.append("status = ?")
            params.append(filters.status.value)
        if filters.type is not None:
            clauses.append("type = ?")
            params.append(filters.type.value)
        if filters.transaction_type is not None:
            clauses.append("transaction_type = ?")
            params.append(filters.transaction_type.value)
        if filters.category is not None:
            clauses.append("category = ?")
            params.append(filters.category.value)
        if filters.customer_name:
            clauses.append("LOWER(customer_name) LIKE ?")
            params.append(f"%{filters.customer_name.lower()}%")
        if filters.due_from is not None:
            clauses.append("due_date >= ?")
            params.append(to_db_datetime(filters.due_from))
        if filters.due_to is not None:
            clauses.append("due_date <= ?")
            params.append(to_db_datetime(filters.due_to))

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    async def list_reminders(
        self,
        filters: ReminderFilter | None = None,
        limit: int = 20,
        offset: int = 0,
        sort: SortField = "due_date",
        descending: bool = False,
    ) -> list[Reminder]:
        """List reminders with filters, pagination and sorting."""
        where, params = self._filter_clause(filters)
        column = _SORT_COLUMNS.get(sort, "due_date")
        direction = "DESC" if descending else "ASC"

        async with self._connection("list_reminders") as conn:
            cursor = await conn.execute(
                f"""
                SELECT * FROM reminders
                {where}
                ORDER BY {column} {direction}, reminder_date ASC, id ASC
                LIMIT ? OFFSET ?
                """,
                (*params, limit, offset),
            )
            rows = await cursor.fetchall()
            return [self._row_to_entity(row) for row in rows]

    async def count(self, filters: ReminderFilter | None = None) -> int:
        """Count reminders matching the filters."""
        where, params = self._filter_clause(filters)
        async with self._connection("count_reminders") as conn:
            cursor = await conn.execute(f"SELECT COUNT(*) FROM reminders {where}", params)
            row = await cursor.fetchone()
            return int(row[0]) if row else 0

    async def find_due(self, now: datetime) -> list[Reminder]:
        """Reminders eligible for automatic sending at `now`."""
        stamp = to_db_datetime(now)
        async with self._connection("find_due_reminders") as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM reminders
                WHERE status = ?
                  AND auto_reminder = 1
                  AND reminder_sent = 0
                  AND is_active = 1
                  AND reminder_date <= ?
                  AND due_date > ?
                ORDER BY reminder_date ASC, id ASC
                """,
                (ReminderStatus.PENDING.value, stamp, stamp),
            )
            rows = await cursor.fetchall()
            return [self._row_to_entity(row) for row in rows]

    async def find_overdue(self, now: datetime) -> list[Reminder]:
        """Open reminders whose due date has passed."""
        async with self._connection("find_overdue_reminders") as conn:
            cursor = await conn.execute(
                f"""
                SELECT * FROM reminders
                WHERE status IN ({_placeholders(_OVERDUE_SOURCES)})
                  AND is_active = 1
                  AND due_date <= ?
                ORDER BY due_date ASC, id ASC
                """,
                (*_OVERDUE_SOURCES, to_db_datetime(now)),
            )
            rows = await cursor.fetchall()
            return [self._row_to_entity(row) for row in rows]

    @staticmethod
    async def _append_results(
        conn: aiosqlite.Connection,
        reminder_id: int,
        results: list[NotificationResult],
        stamp: str | None,
    ) -> bool:
        """Append delivery results to the embedded JSON log; False if no row."""
        if not results:
            cursor = await conn.execute("SELECT 1 FROM reminders WHERE id = ?", (reminder_id,))
            return await cursor.fetchone() is not None

        appends = ", ".join("'$[#]', json(?)" for _ in results)
        cursor = await conn.execute(
            f"""
            UPDATE reminders
            SET notification_results = json_insert(notification_results, {appends}),
                updated_at = ?
            WHERE id = ?
            """,
            (
                *(result.model_dump_json() for result in results),
                stamp,
                reminder_id,
            ),
        )
        return cursor.rowcount > 0

    async def mark_sent(
        self,
        reminder_id: int,
        results: list[NotificationResult] | None = None,
        only_if_pending: bool = False,
    ) -> bool:
        """Append results and transition to Reminded."""
        stamp = to_db_datetime(utc_now())
        condition = f"status NOT IN ({_placeholders(_TERMINAL)})"
        params: list[Any] = list(_TERMINAL)
        if only_if_pending:
            condition += " AND status = ? AND reminder_sent = 0"
            params.append(ReminderStatus.PENDING.value)

        async with self._transaction("mark_reminder_sent") as conn:
            cursor = await conn.execute(
                f"""
                UPDATE reminders
                SET status = ?, reminder_sent = 1, reminder_sent_date = ?,
                    sent_at = ?, updated_at = ?
                WHERE id = ? AND {condition}
                """,
                (ReminderStatus.REMINDED.value, stamp, stamp, stamp, reminder_id, *params),
            )
            applied = cursor.rowcount > 0
            if not await self._append_results(conn, reminder_id, results or [], stamp):
                raise ReminderNotFoundError(reminder_id)

        logger.info("reminder_marked_sent", reminder_id=reminder_id, applied=applied)
        return applied

    async def mark_failed(
        self,
        reminder_id: int,
        results: list[NotificationResult],
    ) -> bool:
        """Append results and transition to Failed unless already sent."""
        stamp = to_db_datetime(utc_now())
        async with self._transaction("mark_reminder_failed") as conn:
            cursor = await conn.execute(
                f"""
                UPDATE reminders
                SET status = ?, sent_at = ?, updated_at = ?
                WHERE id = ? AND reminder_sent = 0
                  AND status NOT IN ({_placeholders(_TERMINAL)})
                """,
                (ReminderStatus.FAILED.value, stamp, stamp, reminder_id, *_TERMINAL),
            )
            applied = cursor.rowcount > 0
            if not await self._append_results(conn, reminder_id, results, stamp):
                raise ReminderNotFoundError(reminder_id)

        logger.info("reminder_marked_failed", reminder_id=reminder_id, applied=applied)
        return applied

    async def _transition(
        self,
        operation: str,
        reminder_id: int,
        assignments: str,
        params: tuple[Any, ...],
        condition: str,
        condition_params: tuple[Any, ...],
    ) -> bool:
        async with self._transaction(operation) as conn:
            cursor = await conn.execute(
                f"UPDATE reminders SET {assignments} WHERE id = ? AND {condition}",
                (*params, reminder_id, *condition_params),
            )
            if cursor.rowcount > 0:
                return True
            cursor = await conn.execute("SELECT 1 FROM reminders WHERE id = ?", (reminder_id,))
            if await cursor.fetchone() is None:
                raise ReminderNotFoundError(reminder_id)
            return False

    async def mark_overdue(self, reminder_id: int) -> bool:
        """Transition Pending/Reminded to Overdue; no-op otherwise."""
        changed = await self._transition(
            "mark_reminder_overdue",
            reminder_id,
            "status = ?, updated_at = ?",
            (ReminderStatus.OVERDUE.value, to_db_datetime(utc_now())),
            f"status IN ({_placeholders(_OVERDUE_SOURCES)})",
            _OVERDUE_SOURCES,
        )
        if changed:
            logger.info("reminder_marked_overdue", reminder_id=reminder_id)
        return changed

    async def mark_completed(self, reminder_id: int) -> bool:
        """Close the reminder as Completed."""
        stamp = to_db_datetime(utc_now())
        return await self._transition(
            "complete_reminder",
            reminder_id,
            "status = ?, completed_at = ?, updated_at = ?",
            (ReminderStatus.COMPLETED.value, stamp, stamp),
            f"status NOT IN ({_placeholders(_TERMINAL)})",
            _TERMINAL,
        )

    async def cancel(self, reminder_id: int) -> bool:
        """Close the reminder as Cancelled."""
        return await self._transition(
            "cancel_reminder",
            reminder_id,
            "status = ?, updated_at = ?",
            (ReminderStatus.CANCELLED.value, to_db_datetime(utc_now())),
            f"status NOT IN ({_placeholders(_TERMINAL)})",
            _TERMINAL,
        )

    async def list_notification_history(self, limit: int = 10) -> list[Reminder]:
        """Reminders with delivery attempts, most recently sent first."""
        async with self._connection("notification_history") as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM reminders
                WHERE json_array_length(notification_results) > 0
                ORDER BY sent_at DESC, id DESC
                LIMIT ?
                """,
                (limit,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_entity(row) for row in rows]

    @staticmethod
    def _entity_to_row(reminder: Reminder) -> dict[str, Any]:
        """Convert a Reminder to column values."""
        data = reminder.model_dump(mode="json")
        row: dict[str, Any] = {}
        for col in _COLUMNS:
            if col in _DATETIME_COLUMNS:
                row[col] = to_db_datetime(getattr(reminder, col))
            elif col in ("reminder_method", "notification_results", "tags"):
                row[col] = json.dumps(data[col], ensure_ascii=False)
            elif col in ("auto_reminder", "reminder_sent", "is_active"):
                row[col] = 1 if data[col] else 0
            else:
                row[col] = data[col]
        return row

    @staticmethod
    def _row_to_entity(row: aiosqlite.Row) -> Reminder:
        """Convert a database row to a Reminder entity."""
        data = {key: row[key] for key in row.keys()}
        for col in ("reminder_method", "notification_results", "tags"):
            data[col] = json.loads(data[col]) if data[col] else []
        for col in ("auto_reminder", "reminder_sent", "is_active"):
            data[col] = bool(data[col])
        return build_reminder(data)
