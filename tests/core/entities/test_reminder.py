"""Tests for Reminder entity."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from plotdesk.core.entities.notification import NotificationChannelName
from plotdesk.core.entities.reminder import (
    CATEGORY_LABELS,
    Reminder,
    ReminderCategory,
    ReminderStatus,
    ReminderType,
    TransactionType,
    derive_reminder_date,
    generate_transaction_id,
)

DUE = datetime(2026, 3, 15, 9, 0, tzinfo=UTC)


def _reminder(**overrides) -> Reminder:
    data = {
        "title": "Balance payment",
        "customer_name": "Ravi Patil",
        "customer_phone": "9876543210",
        "due_date": DUE,
    }
    data.update(overrides)
    return Reminder(**data)


class TestReminderDefaults:
    """Defaults applied when a reminder is built."""

    def test_create_minimal(self):
        reminder = _reminder()
        assert reminder.id is None
        assert reminder.status == ReminderStatus.PENDING
        assert reminder.auto_reminder is True
        assert reminder.reminder_sent is False
        assert reminder.is_active is True
        assert reminder.currency == "INR"
        assert reminder.amount == 0.0
        assert reminder.notification_results == []
        assert reminder.reminder_method == [
            NotificationChannelName.WHATSAPP,
            NotificationChannelName.SMS,
        ]

    def test_reminder_date_derived_two_days_before_due(self):
        reminder = _reminder()
        assert reminder.reminder_date == DUE - timedelta(days=2)

    def test_reminder_date_equals_due_without_auto_reminder(self):
        reminder = _reminder(auto_reminder=False)
        assert reminder.reminder_date == DUE

    def test_explicit_reminder_date_is_kept(self):
        explicit = DUE - timedelta(days=7)
        reminder = _reminder(reminder_date=explicit)
        assert reminder.reminder_date == explicit

    def test_reminder_date_after_due_rejected(self):
        with pytest.raises(ValidationError, match="reminder_date"):
            _reminder(reminder_date=DUE + timedelta(hours=1))

    def test_transaction_id_generated(self):
        reminder = _reminder()
        assert reminder.transaction_id is not None
        assert reminder.transaction_id.startswith("TXN")

    def test_naive_datetimes_are_utc(self):
        reminder = _reminder(due_date=datetime(2026, 3, 15, 9, 0))
        assert reminder.due_date.tzinfo is not None
        assert reminder.due_date == DUE

    def test_aware_datetimes_converted_to_utc(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        reminder = _reminder(due_date=datetime(2026, 3, 15, 14, 30, tzinfo=ist))
        assert reminder.due_date == DUE
        assert reminder.due_date.utcoffset() == timedelta(0)


class TestReminderValidation:
    """Required fields and tag parsing."""

    @pytest.mark.parametrize("field", ["title", "customer_name", "customer_phone"])
    def test_blank_required_text_rejected(self, field):
        with pytest.raises(ValidationError):
            _reminder(**{field: "   "})

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError):
            _reminder(amount=-1)

    def test_missing_due_date_rejected(self):
        with pytest.raises(ValidationError):
            Reminder(title="x", customer_name="y", customer_phone="1")

    def test_status_parsed_case_insensitively(self):
        assert _reminder(status="reminded").status == ReminderStatus.REMINDED

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            _reminder(status="Sleeping")

    def test_transaction_type_tag_normalized(self):
        reminder = _reminder(transaction_type="Advance In", type="follow-up")
        assert reminder.transaction_type == TransactionType.ADVANCE_IN
        assert reminder.type == ReminderType.FOLLOW_UP

    def test_legacy_reminder_method_string(self):
        reminder = _reminder(reminder_method="SMS,WhatsApp")
        assert reminder.reminder_method == [
            NotificationChannelName.WHATSAPP,
            NotificationChannelName.SMS,
        ]

    def test_reminder_method_all(self):
        reminder = _reminder(reminder_method="All")
        assert reminder.reminder_method == list(NotificationChannelName)

    def test_unknown_channel_rejected(self):
        with pytest.raises(ValidationError):
            _reminder(reminder_method=["pigeon"])


class TestReminderCategory:
    """Category tags and localized labels."""

    def test_parse_tag(self):
        assert ReminderCategory.parse("advance_received") == ReminderCategory.ADVANCE_RECEIVED

    def test_parse_english_label(self):
        assert ReminderCategory.parse("Plot Deal") == ReminderCategory.PLOT_DEAL

    def test_parse_localized_label(self):
        assert ReminderCategory.parse("इसारत घेतलेले") == ReminderCategory.ADVANCE_RECEIVED

    def test_unknown_category_rejected(self):
        with pytest.raises(ValueError, match="Unknown reminder category"):
            ReminderCategory.parse("lottery")

    def test_label_falls_back_to_english(self):
        assert ReminderCategory.PLOT_DEAL.label("mr") == "Plot Deal"
        assert ReminderCategory.ADVANCE_GIVEN.label("mr") == "इसारत दिलेले"

    def test_every_category_has_english_label(self):
        assert set(CATEGORY_LABELS["en"]) == set(ReminderCategory)

    def test_entity_accepts_label(self):
        assert _reminder(category="Commission").category == ReminderCategory.COMMISSION


class TestReminderPredicates:
    """is_due and is_overdue windows."""

    def test_not_due_before_reminder_date(self):
        reminder = _reminder()
        assert reminder.is_due(DUE - timedelta(days=3)) is False

    def test_due_at_reminder_date(self):
        reminder = _reminder()
        assert reminder.is_due(DUE - timedelta(days=2)) is True

    def test_not_due_once_due_date_reached(self):
        reminder = _reminder()
        assert reminder.is_due(DUE) is False

    def test_not_due_when_sent(self):
        reminder = _reminder(reminder_sent=True)
        assert reminder.is_due(DUE - timedelta(days=1)) is False

    def test_not_due_without_auto_reminder(self):
        reminder = _reminder(auto_reminder=False, reminder_date=DUE - timedelta(days=2))
        assert reminder.is_due(DUE - timedelta(days=1)) is False

    def test_not_due_when_inactive(self):
        reminder = _reminder(is_active=False)
        assert reminder.is_due(DUE - timedelta(days=1)) is False

    def test_overdue_at_due_date(self):
        assert _reminder().is_overdue(DUE) is True

    def test_not_overdue_before_due_date(self):
        assert _reminder().is_overdue(DUE - timedelta(seconds=1)) is False

    def test_reminded_can_become_overdue(self):
        assert _reminder(status=ReminderStatus.REMINDED).is_overdue(DUE) is True

    @pytest.mark.parametrize(
        "status",
        [ReminderStatus.COMPLETED, ReminderStatus.CANCELLED, ReminderStatus.FAILED],
    )
    def test_closed_or_failed_never_overdue(self, status):
        assert _reminder(status=status).is_overdue(DUE + timedelta(days=1)) is False

    def test_is_terminal(self):
        assert _reminder(status=ReminderStatus.COMPLETED).is_terminal is True
        assert _reminder(status=ReminderStatus.CANCELLED).is_terminal is True
        assert _reminder(status=ReminderStatus.FAILED).is_terminal is False


class TestReminderReschedule:
    """Moving the due date."""

    def test_reschedule_rederives_reminder_date(self):
        reminder = _reminder()
        new_due = DUE + timedelta(days=10)
        reminder.reschedule(new_due)
        assert reminder.due_date == new_due
        assert reminder.reminder_date == new_due - timedelta(days=2)

    def test_reschedule_manual_keeps_earlier_reminder_date(self):
        explicit = DUE - timedelta(days=5)
        reminder = _reminder(auto_reminder=False, reminder_date=explicit)
        reminder.reschedule(DUE + timedelta(days=10))
        assert reminder.reminder_date == explicit

    def test_reschedule_manual_clamps_to_new_due(self):
        reminder = _reminder(auto_reminder=False)
        new_due = DUE - timedelta(days=1)
        reminder.reschedule(new_due)
        assert reminder.reminder_date == new_due


class TestHelpers:
    """Module-level helpers."""

    def test_derive_reminder_date(self):
        assert derive_reminder_date(DUE) == datetime(2026, 3, 13, 9, 0, tzinfo=UTC)

    def test_generate_transaction_id_unique(self):
        ids = {generate_transaction_id(DUE) for _ in range(3)}
        assert len(ids) == 3
        assert all(tid.startswith("TXN") for tid in ids)

    def test_destination_for(self):
        reminder = _reminder(customer_email="ravi@example.com")
        assert reminder.destination_for(NotificationChannelName.EMAIL) == "ravi@example.com"
        assert reminder.destination_for(NotificationChannelName.SMS) == "9876543210"
