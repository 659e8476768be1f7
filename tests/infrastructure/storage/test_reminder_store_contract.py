"""
Behaviour shared by every reminder store backend.

Each test runs against the in-memory store and a migrated SQLite database.
"""

from datetime import timedelta

import pytest

from plotdesk.core.entities import (
    NotificationChannelName,
    NotificationResult,
    Reminder,
    ReminderCategory,
    ReminderStatus,
)
from plotdesk.core.exceptions import (
    DuplicateReminderError,
    ReminderNotFoundError,
    ValidationError,
)
from plotdesk.core.interfaces import ReminderFilter


def _ok(channel: str = "whatsapp") -> NotificationResult:
    return NotificationResult(channel=channel, success=True, message_id="m-1")


def _failed(channel: str = "sms") -> NotificationResult:
    return NotificationResult(channel=channel, success=False, error="gateway down")


class TestCreateAndGet:
    async def test_create_assigns_id(self, store, make_reminder):
        created = await store.create(make_reminder())
        assert created.id is not None

        fetched = await store.get(created.id)
        assert fetched is not None
        assert fetched.title == "Balance payment"
        assert fetched.due_date == created.due_date
        assert fetched.reminder_date == created.due_date - timedelta(days=2)
        assert fetched.status == ReminderStatus.PENDING
        assert fetched.reminder_method == [
            NotificationChannelName.WHATSAPP,
            NotificationChannelName.SMS,
        ]

    async def test_ids_are_distinct(self, store, make_reminder):
        first = await store.create(make_reminder())
        second = await store.create(make_reminder())
        assert first.id != second.id

    async def test_get_unknown_returns_none(self, store):
        assert await store.get(9999) is None

    async def test_get_by_transaction_id(self, store, make_reminder):
        created = await store.create(make_reminder(transaction_id="PAY-77"))
        fetched = await store.get_by_transaction_id("PAY-77")
        assert fetched is not None
        assert fetched.id == created.id
        assert await store.get_by_transaction_id("PAY-404") is None

    async def test_duplicate_transaction_id_rejected(self, store, make_reminder):
        await store.create(make_reminder(transaction_id="PAY-1"))
        with pytest.raises(DuplicateReminderError):
            await store.create(make_reminder(transaction_id="PAY-1"))

    async def test_unvalidated_reminder_rejected(self, store, now):
        reminder = Reminder.model_construct(
            title="", customer_name="Ravi", customer_phone="98", due_date=now
        )
        with pytest.raises(ValidationError) as exc_info:
            await store.create(reminder)
        assert exc_info.value.details["field"] == "title"

    async def test_datetimes_stay_utc(self, store, make_reminder):
        created = await store.create(make_reminder())
        fetched = await store.get(created.id)
        assert fetched.due_date.utcoffset() == timedelta(0)
        assert fetched.created_at.utcoffset() == timedelta(0)


class TestUpdate:
    async def test_partial_update(self, store, make_reminder):
        created = await store.create(make_reminder())
        updated = await store.update(created.id, {"title": "Final instalment", "amount": 2500.5})
        assert updated.title == "Final instalment"
        assert updated.amount == 2500.5
        assert updated.customer_name == "Ravi Patil"

    async def test_moving_due_date_rederives_reminder_date(self, store, make_reminder, now):
        created = await store.create(make_reminder())
        new_due = now + timedelta(days=20)
        updated = await store.update(created.id, {"due_date": new_due})
        assert updated.due_date == new_due
        assert updated.reminder_date == new_due - timedelta(days=2)

    async def test_explicit_reminder_date_wins(self, store, make_reminder, now):
        created = await store.create(make_reminder())
        new_due = now + timedelta(days=20)
        updated = await store.update(
            created.id, {"due_date": new_due, "reminder_date": now + timedelta(days=10)}
        )
        assert updated.reminder_date == now + timedelta(days=10)

    async def test_category_label_accepted(self, store, make_reminder):
        created = await store.create(make_reminder())
        updated = await store.update(created.id, {"category": "Plot Deal"})
        assert updated.category == ReminderCategory.PLOT_DEAL

    async def test_status_is_not_editable(self, store, make_reminder):
        created = await store.create(make_reminder())
        with pytest.raises(ValidationError) as exc_info:
            await store.update(created.id, {"status": "Completed"})
        assert exc_info.value.details["field"] == "status"

    async def test_invalid_value_rejected(self, store, make_reminder):
        created = await store.create(make_reminder())
        with pytest.raises(ValidationError):
            await store.update(created.id, {"customer_phone": "  "})

    async def test_update_unknown_raises(self, store):
        with pytest.raises(ReminderNotFoundError):
            await store.update(9999, {"title": "x"})


class TestDelete:
    async def test_soft_delete(self, store, make_reminder):
        created = await store.create(make_reminder())
        assert await store.delete(created.id) is True

        fetched = await store.get(created.id)
        assert fetched is not None
        assert fetched.is_active is False

        assert await store.list_reminders() == []
        assert len(await store.list_reminders(ReminderFilter(include_inactive=True))) == 1

    async def test_delete_unknown(self, store):
        assert await store.delete(9999) is False

    async def test_deleted_reminder_not_due(self, store, make_reminder, now):
        created = await store.create(make_reminder(due_date=now + timedelta(days=1)))
        await store.delete(created.id)
        assert await store.find_due(now) == []


class TestListing:
    async def test_default_sort_by_due_date(self, store, make_reminder, now):
        late = await store.create(make_reminder(due_date=now + timedelta(days=9)))
        early = await store.create(make_reminder(due_date=now + timedelta(days=3)))
        ids = [r.id for r in await store.list_reminders()]
        assert ids == [early.id, late.id]

    async def test_sort_descending(self, store, make_reminder, now):
        late = await store.create(make_reminder(due_date=now + timedelta(days=9)))
        early = await store.create(make_reminder(due_date=now + timedelta(days=3)))
        ids = [r.id for r in await store.list_reminders(descending=True)]
        assert ids == [late.id, early.id]

    async def test_pagination(self, store, make_reminder, now):
        created = [
            await store.create(make_reminder(due_date=now + timedelta(days=day)))
            for day in range(3, 8)
        ]
        page = await store.list_reminders(limit=2, offset=2)
        assert [r.id for r in page] == [created[2].id, created[3].id]
        assert await store.count() == 5

    async def test_filter_by_status(self, store, make_reminder):
        open_one = await store.create(make_reminder())
        closed = await store.create(make_reminder())
        await store.mark_completed(closed.id)

        pending = await store.list_reminders(ReminderFilter(status=ReminderStatus.PENDING))
        assert [r.id for r in pending] == [open_one.id]
        assert await store.count(ReminderFilter(status=ReminderStatus.COMPLETED)) == 1

    async def test_filter_by_category(self, store, make_reminder):
        await store.create(make_reminder(category="payment"))
        deal = await store.create(make_reminder(category="plot_deal"))
        found = await store.list_reminders(ReminderFilter(category=ReminderCategory.PLOT_DEAL))
        assert [r.id for r in found] == [deal.id]

    async def test_filter_by_customer_name_substring(self, store, make_reminder):
        match = await store.create(make_reminder(customer_name="Sunita Koli"))
        await store.create(make_reminder(customer_name="Ravi Patil"))
        found = await store.list_reminders(ReminderFilter(customer_name="koli"))
        assert [r.id for r in found] == [match.id]

    async def test_filter_by_due_range(self, store, make_reminder, now):
        await store.create(make_reminder(due_date=now + timedelta(days=2)))
        inside = await store.create(make_reminder(due_date=now + timedelta(days=5)))
        await store.create(make_reminder(due_date=now + timedelta(days=9)))
        found = await store.list_reminders(
            ReminderFilter(due_from=now + timedelta(days=4), due_to=now + timedelta(days=6))
        )
        assert [r.id for r in found] == [inside.id]


class TestFindDue:
    async def test_due_window(self, store, make_reminder, now):
        # reminder_date = due - 2 days
        due_now = await store.create(make_reminder(due_date=now + timedelta(days=1)))
        await store.create(make_reminder(due_date=now + timedelta(days=5)))
        await store.create(make_reminder(due_date=now - timedelta(hours=1)))

        due = await store.find_due(now)
        assert [r.id for r in due] == [due_now.id]

    async def test_reminder_date_boundary_inclusive(self, store, make_reminder, now):
        at_boundary = await store.create(make_reminder(due_date=now + timedelta(days=2)))
        assert [r.id for r in await store.find_due(now)] == [at_boundary.id]

    async def test_due_date_boundary_exclusive(self, store, make_reminder, now):
        await store.create(make_reminder(due_date=now, reminder_date=now - timedelta(days=1)))
        assert await store.find_due(now) == []

    async def test_ordered_by_reminder_date(self, store, make_reminder, now):
        later = await store.create(
            make_reminder(due_date=now + timedelta(days=1), reminder_date=now - timedelta(hours=1))
        )
        earlier = await store.create(
            make_reminder(due_date=now + timedelta(days=1), reminder_date=now - timedelta(days=1))
        )
        assert [r.id for r in await store.find_due(now)] == [earlier.id, later.id]

    async def test_excludes_manual_sent_and_failed(self, store, make_reminder, now):
        soon = now + timedelta(days=1)
        await store.create(make_reminder(due_date=soon, auto_reminder=False,
                                         reminder_date=now - timedelta(days=1)))
        sent = await store.create(make_reminder(due_date=soon))
        await store.mark_sent(sent.id, [_ok()])
        failed = await store.create(make_reminder(due_date=soon))
        await store.mark_failed(failed.id, [_failed()])
        eligible = await store.create(make_reminder(due_date=soon))

        assert [r.id for r in await store.find_due(now)] == [eligible.id]


class TestFindOverdue:
    async def test_overdue_boundary_inclusive(self, store, make_reminder, now):
        at_due = await store.create(make_reminder(due_date=now))
        await store.create(make_reminder(due_date=now + timedelta(seconds=1)))
        assert [r.id for r in await store.find_overdue(now)] == [at_due.id]

    async def test_includes_reminded_excludes_closed(self, store, make_reminder, now):
        past = now - timedelta(days=1)
        reminded = await store.create(make_reminder(due_date=past))
        await store.mark_sent(reminded.id, [_ok()])
        completed = await store.create(make_reminder(due_date=past))
        await store.mark_completed(completed.id)
        cancelled = await store.create(make_reminder(due_date=past))
        await store.cancel(cancelled.id)
        failed = await store.create(make_reminder(due_date=past))
        await store.mark_failed(failed.id, [_failed()])

        assert [r.id for r in await store.find_overdue(now)] == [reminded.id]


class TestMarkSent:
    async def test_transitions_to_reminded(self, store, make_reminder):
        created = await store.create(make_reminder())
        assert await store.mark_sent(created.id, [_ok(), _failed()]) is True

        fetched = await store.get(created.id)
        assert fetched.status == ReminderStatus.REMINDED
        assert fetched.reminder_sent is True
        assert fetched.reminder_sent_date is not None
        assert fetched.sent_at is not None
        assert [r.channel for r in fetched.notification_results] == [
            NotificationChannelName.WHATSAPP,
            NotificationChannelName.SMS,
        ]
        assert fetched.notification_results[1].error == "gateway down"

    async def test_without_results(self, store, make_reminder):
        created = await store.create(make_reminder())
        assert await store.mark_sent(created.id) is True
        fetched = await store.get(created.id)
        assert fetched.status == ReminderStatus.REMINDED
        assert fetched.notification_results == []

    async def test_only_if_pending_guard(self, store, make_reminder):
        created = await store.create(make_reminder())
        assert await store.mark_sent(created.id, [_ok()], only_if_pending=True) is True
        assert await store.mark_sent(created.id, [_ok()], only_if_pending=True) is False

        fetched = await store.get(created.id)
        # Results are audit data and are kept even when the transition is refused
        assert len(fetched.notification_results) == 2
        assert fetched.status == ReminderStatus.REMINDED

    async def test_closed_reminder_not_reopened(self, store, make_reminder):
        created = await store.create(make_reminder())
        await store.mark_completed(created.id)
        assert await store.mark_sent(created.id, [_ok()]) is False
        fetched = await store.get(created.id)
        assert fetched.status == ReminderStatus.COMPLETED
        assert fetched.reminder_sent is False

    async def test_failed_reminder_can_be_sent(self, store, make_reminder):
        created = await store.create(make_reminder())
        await store.mark_failed(created.id, [_failed()])
        assert await store.mark_sent(created.id, [_ok()]) is True
        fetched = await store.get(created.id)
        assert fetched.status == ReminderStatus.REMINDED
        assert len(fetched.notification_results) == 2

    async def test_unknown_raises(self, store):
        with pytest.raises(ReminderNotFoundError):
            await store.mark_sent(9999, [_ok()])


class TestMarkFailed:
    async def test_transitions_to_failed(self, store, make_reminder):
        created = await store.create(make_reminder())
        assert await store.mark_failed(created.id, [_failed("whatsapp"), _failed("sms")]) is True

        fetched = await store.get(created.id)
        assert fetched.status == ReminderStatus.FAILED
        assert fetched.reminder_sent is False
        assert fetched.sent_at is not None
        assert len(fetched.notification_results) == 2

    async def test_sent_reminder_stays_reminded(self, store, make_reminder):
        created = await store.create(make_reminder())
        await store.mark_sent(created.id, [_ok()])
        assert await store.mark_failed(created.id, [_failed()]) is False

        fetched = await store.get(created.id)
        assert fetched.status == ReminderStatus.REMINDED
        assert len(fetched.notification_results) == 2

    async def test_unknown_raises(self, store):
        with pytest.raises(ReminderNotFoundError):
            await store.mark_failed(9999, [_failed()])


class TestTransitions:
    async def test_mark_overdue(self, store, make_reminder):
        created = await store.create(make_reminder())
        assert await store.mark_overdue(created.id) is True
        assert (await store.get(created.id)).status == ReminderStatus.OVERDUE
        assert await store.mark_overdue(created.id) is False

    async def test_mark_overdue_ignores_closed(self, store, make_reminder):
        created = await store.create(make_reminder())
        await store.cancel(created.id)
        assert await store.mark_overdue(created.id) is False
        assert (await store.get(created.id)).status == ReminderStatus.CANCELLED

    async def test_mark_completed(self, store, make_reminder):
        created = await store.create(make_reminder())
        assert await store.mark_completed(created.id) is True
        fetched = await store.get(created.id)
        assert fetched.status == ReminderStatus.COMPLETED
        assert fetched.completed_at is not None
        assert await store.mark_completed(created.id) is False

    async def test_overdue_can_be_completed(self, store, make_reminder):
        created = await store.create(make_reminder())
        await store.mark_overdue(created.id)
        assert await store.mark_completed(created.id) is True

    async def test_cancel_completed_is_noop(self, store, make_reminder):
        created = await store.create(make_reminder())
        await store.mark_completed(created.id)
        assert await store.cancel(created.id) is False
        assert (await store.get(created.id)).status == ReminderStatus.COMPLETED

    @pytest.mark.parametrize("method", ["mark_overdue", "mark_completed", "cancel"])
    async def test_unknown_raises(self, store, method):
        with pytest.raises(ReminderNotFoundError):
            await getattr(store, method)(9999)


class TestNotificationHistory:
    async def test_only_attempted_reminders_newest_first(self, store, make_reminder):
        await store.create(make_reminder())
        first = await store.create(make_reminder())
        second = await store.create(make_reminder())
        await store.mark_sent(first.id, [_ok()])
        await store.mark_failed(second.id, [_failed()])

        history = await store.list_notification_history(limit=10)
        assert [r.id for r in history] == [second.id, first.id]

    async def test_limit(self, store, make_reminder):
        for _ in range(3):
            created = await store.create(make_reminder())
            await store.mark_sent(created.id, [_ok()])
        assert len(await store.list_notification_history(limit=2)) == 2


async def test_ping(store):
    assert await store.ping() is True
