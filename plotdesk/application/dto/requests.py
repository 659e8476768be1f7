"""Request DTOs for API endpoints.

Pydantic v2 models for API request validation.
These are the ONLY contracts between API and use cases.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from plotdesk.core.entities.reminder import (
    ReminderCategory,
    ReminderType,
    TransactionType,
)

# --- Reminders ---


class CreateReminderRequest(BaseModel):
    """Request to create a reminder."""

    title: str = Field(..., min_length=1, description="Reminder title")
    description: str = Field(default="", description="Free-text details shown in the message")
    customer_name: str = Field(..., min_length=1, description="Customer name")
    customer_phone: str = Field(..., min_length=1, description="Customer phone number")
    customer_email: str | None = Field(default=None, description="Customer email address")
    amount: float = Field(default=0.0, ge=0, description="Amount due")
    currency: str | None = Field(default=None, description="Currency code (default INR)")
    transaction_id: str | None = Field(
        default=None, description="Business transaction id (generated when absent)"
    )
    transaction_type: TransactionType | str = Field(
        default=TransactionType.FOLLOW_UP, description="Business event behind the reminder"
    )
    category: ReminderCategory | str = Field(
        default=ReminderCategory.OTHER, description="Category tag or label"
    )
    type: ReminderType | str = Field(default=ReminderType.FOLLOW_UP, description="Reminder type")
    transaction_date: datetime | None = Field(default=None, description="When the event happened")
    due_date: datetime = Field(..., description="When the obligation is due (ISO 8601)")
    reminder_date: datetime | None = Field(
        default=None, description="First send date (default: due date minus 2 days)"
    )
    reminder_time: str = Field(default="10:00", description="Informational time-of-day hint")
    auto_reminder: bool = Field(default=True, description="Include in automatic scans")
    reminder_method: list[str] | str | None = Field(
        default=None,
        description='Channels, e.g. ["whatsapp", "sms"] or "WhatsApp,SMS" or "All"',
    )
    plot_id: str | None = Field(default=None, description="Linked plot id")
    plot_number: str | None = Field(default=None, description="Linked plot number")
    agent_id: str | None = Field(default=None, description="Linked agent id")
    payment_id: str | None = Field(default=None, description="Payment that spawned the reminder")
    notes: str | None = Field(default=None, description="Internal notes")
    tags: list[str] = Field(default_factory=list, description="Free-form tags")

    def to_entity_data(self, default_currency: str) -> dict[str, Any]:
        """Entity field values, leaving unset optional fields to entity defaults."""
        data = self.model_dump(exclude_none=True)
        data.setdefault("currency", default_currency)
        return data


class UpdateReminderRequest(BaseModel):
    """Request to update a reminder. Only provided fields change."""

    title: str | None = Field(default=None, min_length=1, description="Reminder title")
    description: str | None = Field(default=None, description="Free-text details")
    customer_name: str | None = Field(default=None, min_length=1, description="Customer name")
    customer_phone: str | None = Field(default=None, min_length=1, description="Customer phone")
    customer_email: str | None = Field(default=None, description="Customer email")
    amount: float | None = Field(default=None, ge=0, description="Amount due")
    currency: str | None = Field(default=None, description="Currency code")
    transaction_type: TransactionType | str | None = Field(default=None)
    category: ReminderCategory | str | None = Field(default=None)
    type: ReminderType | str | None = Field(default=None)
    transaction_date: datetime | None = Field(default=None)
    due_date: datetime | None = Field(default=None, description="New due date")
    reminder_date: datetime | None = Field(default=None, description="Explicit first send date")
    reminder_time: str | None = Field(default=None)
    auto_reminder: bool | None = Field(default=None)
    reminder_method: list[str] | str | None = Field(default=None)
    plot_id: str | None = Field(default=None)
    plot_number: str | None = Field(default=None)
    agent_id: str | None = Field(default=None)
    notes: str | None = Field(default=None)
    tags: list[str] | None = Field(default=None)

    def to_changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude_none=True)


# --- Notifications ---


class NotificationTestRequest(BaseModel):
    """Request to send a test message over the configured channels."""

    phone_number: str = Field(..., min_length=1, description="Destination phone number")
    customer_name: str = Field(default="Test Customer", description="Name used in the greeting")
    email: str | None = Field(default=None, description="Also test email with this address")


# --- Payments ---


class PaymentRecordedRequest(BaseModel):
    """Payment saved by the payment module."""

    payment_id: str = Field(..., min_length=1, description="Payment id")
    payment_type: str = Field(..., description="Payment type, e.g. 'Advance In'")
    amount: float = Field(..., ge=0, description="Payment amount")
    status: str = Field(default="Pending", description="Payment status")
    customer_name: str = Field(..., min_length=1, description="Customer name")
    customer_phone: str | None = Field(default=None, description="Customer phone")
    plot_id: str | None = Field(default=None, description="Plot id")
    plot_number: str | None = Field(default=None, description="Plot number")
    due_date: datetime | None = Field(default=None, description="Balance due date")
    description: str | None = Field(default=None, description="Payment notes")
