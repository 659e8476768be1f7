"""Data Transfer Objects for API contracts."""

from plotdesk.application.dto.requests import (
    CreateReminderRequest,
    NotificationTestRequest,
    PaymentRecordedRequest,
    UpdateReminderRequest,
)
from plotdesk.application.dto.responses import (
    ChannelConfigResponse,
    ComponentHealthResponse,
    DispatchResponse,
    ErrorResponse,
    HealthResponse,
    NotificationHistoryEntry,
    NotificationResultResponse,
    NotificationTestResponse,
    PaymentEventResponse,
    ReminderListResponse,
    ReminderResponse,
    ScanReportResponse,
    SchedulerStatusResponse,
)

__all__ = [
    # Requests
    "CreateReminderRequest",
    "UpdateReminderRequest",
    "NotificationTestRequest",
    "PaymentRecordedRequest",
    # Responses
    "ReminderResponse",
    "ReminderListResponse",
    "NotificationResultResponse",
    "DispatchResponse",
    "ScanReportResponse",
    "SchedulerStatusResponse",
    "ChannelConfigResponse",
    "NotificationTestResponse",
    "NotificationHistoryEntry",
    "PaymentEventResponse",
    "ComponentHealthResponse",
    "HealthResponse",
    "ErrorResponse",
]
