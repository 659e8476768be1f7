"""Response DTOs for API endpoints.

Pydantic v2 models for API response serialization.
These are the ONLY contracts between use cases and API layer.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from plotdesk.core.entities.reminder import Reminder


class NotificationResultResponse(BaseModel):
    """One delivery attempt over one channel."""

    channel: str
    success: bool
    message_id: str | None = None
    error: str | None = None
    sent_at: datetime
    simulated: bool = False


class ReminderResponse(BaseModel):
    """Reminder response DTO."""

    id: int
    transaction_id: str
    transaction_type: str
    category: str
    category_label: str
    type: str
    title: str
    description: str = ""
    customer_name: str
    customer_phone: str
    customer_email: str | None = None
    amount: float
    currency: str
    transaction_date: datetime
    due_date: datetime
    reminder_date: datetime
    reminder_time: str
    status: str
    auto_reminder: bool
    reminder_sent: bool
    reminder_sent_date: datetime | None = None
    sent_at: datetime | None = None
    completed_at: datetime | None = None
    reminder_method: list[str]
    notification_results: list[NotificationResultResponse] = Field(default_factory=list)
    plot_id: str | None = None
    plot_number: str | None = None
    agent_id: str | None = None
    payment_id: str | None = None
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    is_active: bool = True
    is_overdue: bool = False
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, reminder: Reminder, lang: str = "en") -> "ReminderResponse":
        data = reminder.model_dump(mode="json")
        data["category_label"] = reminder.category.label(lang)
        data["is_overdue"] = reminder.is_overdue()
        return cls.model_validate(data)


class ReminderListResponse(BaseModel):
    """Paginated list of reminders."""

    reminders: list[ReminderResponse]
    total: int
    page: int
    limit: int
    pages: int


class DispatchResponse(BaseModel):
    """Outcome of sending one reminder."""

    reminder_id: int
    success: bool = Field(..., description="True when at least one channel succeeded")
    status: str | None = Field(default=None, description="New status when it changed")
    applied: bool = Field(..., description="Whether the reminder state changed")
    results: list[NotificationResultResponse] = Field(default_factory=list)


class ScanReportResponse(BaseModel):
    """Summary of one due/overdue sweep."""

    started_at: datetime
    finished_at: datetime | None = None
    due_found: int = 0
    sent: int = 0
    failed: int = 0
    errors: int = 0
    overdue_marked: int = 0
    skipped: bool = False
    reason: str | None = None
    outcomes: list[DispatchResponse] = Field(default_factory=list)


class SchedulerStatusResponse(BaseModel):
    """Reminder scheduler status."""

    running: bool
    scanning: bool = False
    interval_seconds: float
    next_scan_at: datetime | None = None
    in_flight: list[int] = Field(default_factory=list)
    last_scan: ScanReportResponse | None = None


class ChannelConfigResponse(BaseModel):
    """Notification channel configuration, never including credentials."""

    channels: dict[str, dict[str, Any]]
    service: SchedulerStatusResponse


class NotificationTestResponse(BaseModel):
    """Result of a test send."""

    success: bool
    results: list[NotificationResultResponse]


class NotificationHistoryEntry(BaseModel):
    """Delivery history of one reminder."""

    reminder_id: int
    title: str
    customer_name: str
    status: str
    sent_at: datetime | None = None
    notification_results: list[NotificationResultResponse]


class PaymentEventResponse(BaseModel):
    """Result of publishing a payment event."""

    reminder_created: bool
    reminder_id: int | None = None
    transaction_id: str | None = None
    skipped_reason: str | None = None


class ComponentHealthResponse(BaseModel):
    """Health of one component."""

    available: bool
    backend: str | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str = "1.0.0"
    uptime_seconds: float
    database: ComponentHealthResponse | None = None
    scheduler: SchedulerStatusResponse | None = None


class ErrorResponse(BaseModel):
    """Standardized error response DTO.

    Every error response includes:
    - error_code: machine-readable code (e.g. REMINDER_NOT_FOUND)
    - message: human-readable description
    - hint: suggested recovery action
    - path: request path that triggered the error
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error description")
    hint: str | None = Field(default=None, description="Suggested recovery action")
    detail: str | None = Field(default=None, description="Additional details")
    path: str | None = Field(default=None, description="Request path")
    timestamp: datetime = Field(default_factory=datetime.now)
