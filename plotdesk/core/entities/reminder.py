"""
Reminder entity: a customer obligation with a scheduled notification.

The due date anchors scheduling. The reminder date is when delivery first
becomes eligible and, under auto-reminder, is derived from the due date.
"""

import secrets
import time
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from plotdesk.core.entities.notification import (
    NotificationChannelName,
    NotificationResult,
    ensure_utc,
    parse_reminder_method,
    utc_now,
)

REMINDER_LEAD_DAYS = 2
DEFAULT_CURRENCY = "INR"

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _normalize_tag(value: Any) -> Any:
    if isinstance(value, Enum) or not isinstance(value, str):
        return value
    return value.strip().lower().replace(" ", "_").replace("-", "_")


class TransactionType(str, Enum):
    """Business event behind a reminder."""

    ADVANCE_IN = "advance_in"
    ADVANCE_OUT = "advance_out"
    PLOT_SALE = "plot_sale"
    AGENT_COMMISSION = "agent_commission"
    PAYMENT_DUE = "payment_due"
    DOCUMENT_COLLECTION = "document_collection"
    FOLLOW_UP = "follow_up"


class ReminderType(str, Enum):
    """What the customer is being reminded about."""

    PAYMENT = "payment"
    DOCUMENT = "document"
    VISIT = "visit"
    FOLLOW_UP = "follow_up"
    ADVANCE_IN = "advance_in"
    ADVANCE_OUT = "advance_out"


class ReminderStatus(str, Enum):
    """Lifecycle status of a reminder."""

    PENDING = "Pending"
    REMINDED = "Reminded"
    COMPLETED = "Completed"
    OVERDUE = "Overdue"
    CANCELLED = "Cancelled"
    FAILED = "Failed"

    @classmethod
    def parse(cls, value: Any) -> "ReminderStatus":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for status in cls:
            if status.value.lower() == text:
                return status
        raise ValueError(f"Unknown reminder status: {value!r}")


TERMINAL_STATUSES = frozenset({ReminderStatus.COMPLETED, ReminderStatus.CANCELLED})
OVERDUE_SOURCE_STATUSES = frozenset({ReminderStatus.PENDING, ReminderStatus.REMINDED})


class ReminderCategory(str, Enum):
    """
    Domain tag used for search filters.

    Tags are stable machine identifiers; display text comes from
    CATEGORY_LABELS so localized labels never leak into stored data.
    """

    ADVANCE_RECEIVED = "advance_received"
    ADVANCE_GIVEN = "advance_given"
    PLOT_DEAL = "plot_deal"
    COMMISSION = "commission"
    PAYMENT = "payment"
    DOCUMENT = "document"
    FOLLOW_UP = "follow_up"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "ReminderCategory":
        """Parse a category from its tag or any known localized label."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        try:
            return cls(_normalize_tag(text))
        except ValueError:
            pass
        for labels in CATEGORY_LABELS.values():
            for tag, label in labels.items():
                if label.lower() == text.lower():
                    return tag
        raise ValueError(f"Unknown reminder category: {value!r}")

    def label(self, lang: str = "en") -> str:
        """Display label, falling back to English."""
        return CATEGORY_LABELS.get(lang, {}).get(self) or CATEGORY_LABELS["en"][self]


CATEGORY_LABELS: dict[str, dict[ReminderCategory, str]] = {
    "en": {
        ReminderCategory.ADVANCE_RECEIVED: "Advance Received",
        ReminderCategory.ADVANCE_GIVEN: "Advance Given",
        ReminderCategory.PLOT_DEAL: "Plot Deal",
        ReminderCategory.COMMISSION: "Commission",
        ReminderCategory.PAYMENT: "Payment",
        ReminderCategory.DOCUMENT: "Document",
        ReminderCategory.FOLLOW_UP: "Follow Up",
        ReminderCategory.OTHER: "Other",
    },
    "mr": {
        ReminderCategory.ADVANCE_RECEIVED: "इसारत घेतलेले",
        ReminderCategory.ADVANCE_GIVEN: "इसारत दिलेले",
    },
}


def generate_transaction_id(now: datetime | None = None) -> str:
    """Build a transaction id: TXN + base36 millisecond clock + random suffix."""
    millis = int((now.timestamp() if now else time.time()) * 1000)
    digits = ""
    while millis:
        millis, rem = divmod(millis, 36)
        digits = _BASE36[rem] + digits
    return f"TXN{digits or '0'}{secrets.token_hex(2).upper()}"


def derive_reminder_date(due_date: datetime) -> datetime:
    """Default reminder date: the lead period before the due date."""
    return due_date - timedelta(days=REMINDER_LEAD_DAYS)


class Reminder(BaseModel):
    """
    Reminder for a customer obligation (payment, document, visit).

    Links to plots, agents and payments are weak references by id.
    notification_results is the append-only delivery audit trail.
    """

    id: int | None = None
    transaction_id: str | None = None
    transaction_type: TransactionType = TransactionType.FOLLOW_UP
    category: ReminderCategory = ReminderCategory.OTHER
    type: ReminderType = ReminderType.FOLLOW_UP

    title: str = Field(..., min_length=1)
    description: str = ""

    customer_name: str = Field(..., min_length=1)
    customer_phone: str = Field(..., min_length=1)
    customer_email: str | None = None

    amount: float = Field(default=0.0, ge=0)
    currency: str = DEFAULT_CURRENCY

    transaction_date: datetime = Field(default_factory=utc_now)
    due_date: datetime
    reminder_date: datetime | None = None
    reminder_time: str = "10:00"

    status: ReminderStatus = ReminderStatus.PENDING
    auto_reminder: bool = True
    reminder_sent: bool = False
    reminder_sent_date: datetime | None = None
    sent_at: datetime | None = None
    completed_at: datetime | None = None

    reminder_method: list[NotificationChannelName] = Field(
        default_factory=lambda: [NotificationChannelName.WHATSAPP, NotificationChannelName.SMS]
    )
    notification_results: list[NotificationResult] = Field(default_factory=list)

    plot_id: str | None = None
    plot_number: str | None = None
    agent_id: str | None = None
    payment_id: str | None = None

    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("title", "customer_name", "customer_phone", mode="before")
    @classmethod
    def _strip_required(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("transaction_type", "type", mode="before")
    @classmethod
    def _normalize_enum_tag(cls, v: Any) -> Any:
        return _normalize_tag(v)

    @field_validator("category", mode="before")
    @classmethod
    def _parse_category(cls, v: Any) -> ReminderCategory:
        return ReminderCategory.parse(v)

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, v: Any) -> ReminderStatus:
        return ReminderStatus.parse(v)

    @field_validator("reminder_method", mode="before")
    @classmethod
    def _parse_method(cls, v: Any) -> list[NotificationChannelName]:
        return parse_reminder_method(v)

    @field_validator(
        "transaction_date",
        "due_date",
        "reminder_date",
        "reminder_sent_date",
        "sent_at",
        "completed_at",
        "created_at",
        "updated_at",
    )
    @classmethod
    def _to_utc(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v) if v is not None else None

    @model_validator(mode="after")
    def _derive_defaults(self) -> "Reminder":
        if self.transaction_id is None:
            self.transaction_id = generate_transaction_id()
        if self.reminder_date is None:
            self.reminder_date = (
                derive_reminder_date(self.due_date) if self.auto_reminder else self.due_date
            )
        elif self.reminder_date > self.due_date:
            raise ValueError("reminder_date must not be later than due_date")
        return self

    @property
    def is_terminal(self) -> bool:
        """Completed and cancelled reminders are closed."""
        return self.status in TERMINAL_STATUSES

    def is_due(self, now: datetime | None = None) -> bool:
        """Check whether the reminder is eligible for automatic sending."""
        now = ensure_utc(now) if now else utc_now()
        return (
            self.auto_reminder
            and not self.reminder_sent
            and self.status == ReminderStatus.PENDING
            and self.is_active
            and self.reminder_date is not None
            and self.reminder_date <= now < self.due_date
        )

    def is_overdue(self, now: datetime | None = None) -> bool:
        """Check whether the reminder is past due and still open."""
        now = ensure_utc(now) if now else utc_now()
        return (
            self.status in OVERDUE_SOURCE_STATUSES
            and self.is_active
            and self.due_date <= now
        )

    def reschedule(self, due_date: datetime) -> None:
        """Move the due date, re-deriving the reminder date when automatic."""
        self.due_date = ensure_utc(due_date)
        if self.auto_reminder:
            self.reminder_date = derive_reminder_date(self.due_date)
        elif self.reminder_date is None or self.reminder_date > self.due_date:
            self.reminder_date = self.due_date

    def destination_for(self, channel: NotificationChannelName) -> str | None:
        """Address used by a channel: email for Email, phone otherwise."""
        if channel == NotificationChannelName.EMAIL:
            return self.customer_email
        return self.customer_phone
