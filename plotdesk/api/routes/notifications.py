"""
Notification service endpoints.

Manual scan and send triggers, channel configuration and delivery history.
"""

from fastapi import APIRouter, Depends, Query

from plotdesk.api.dependencies import get_dispatcher, get_rem_store, get_scheduler
from plotdesk.application.dto.requests import NotificationTestRequest
from plotdesk.application.dto.responses import (
    ChannelConfigResponse,
    DispatchResponse,
    ErrorResponse,
    NotificationHistoryEntry,
    NotificationTestResponse,
    ScanReportResponse,
    SchedulerStatusResponse,
)
from plotdesk.core.interfaces import IReminderStore
from plotdesk.core.services import NotificationDispatcher, ReminderScheduler

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.post("/check-due", response_model=ScanReportResponse)
async def check_due_reminders(
    scheduler: ReminderScheduler = Depends(get_scheduler),
) -> ScanReportResponse:
    """
    Run a due/overdue scan now.

    Returns skipped=true when a scan is already running or the database
    is unreachable.
    """
    report = await scheduler.scan()
    return ScanReportResponse.model_validate(report.to_dict())


@router.post(
    "/send-reminder/{reminder_id}",
    response_model=DispatchResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def send_reminder_now(
    reminder_id: int,
    scheduler: ReminderScheduler = Depends(get_scheduler),
) -> DispatchResponse:
    """Send one reminder now, bypassing its reminder date."""
    outcome = await scheduler.send_now(reminder_id)
    return DispatchResponse.model_validate(outcome.to_dict())


@router.post("/test", response_model=NotificationTestResponse)
async def test_notification(
    request: NotificationTestRequest,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> NotificationTestResponse:
    """Send a test message over every configured channel."""
    results = await dispatcher.send_test(
        request.phone_number,
        customer_name=request.customer_name,
        email=request.email,
    )
    return NotificationTestResponse.model_validate(
        {
            "success": any(r.success for r in results),
            "results": [r.model_dump(mode="json") for r in results],
        }
    )


@router.get("/config", response_model=ChannelConfigResponse)
async def channel_config(
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    scheduler: ReminderScheduler = Depends(get_scheduler),
) -> ChannelConfigResponse:
    """Channel enabled/configured flags and scheduler status. Credentials are never returned."""
    return ChannelConfigResponse.model_validate(
        {"channels": dispatcher.channel_config(), "service": scheduler.status()}
    )


@router.get("/status", response_model=SchedulerStatusResponse)
async def scheduler_status(
    scheduler: ReminderScheduler = Depends(get_scheduler),
) -> SchedulerStatusResponse:
    """Whether the scheduler is running and when the next scan is due."""
    return SchedulerStatusResponse.model_validate(scheduler.status())


@router.get("/history", response_model=list[NotificationHistoryEntry])
async def notification_history(
    limit: int = Query(default=10, ge=1, le=100),
    store: IReminderStore = Depends(get_rem_store),
) -> list[NotificationHistoryEntry]:
    """Recently sent reminders with their delivery results."""
    reminders = await store.list_notification_history(limit=limit)
    return [
        NotificationHistoryEntry.model_validate(
            {
                "reminder_id": r.id,
                "title": r.title,
                "customer_name": r.customer_name,
                "status": r.status.value,
                "sent_at": r.sent_at,
                "notification_results": [n.model_dump(mode="json") for n in r.notification_results],
            }
        )
        for r in reminders
    ]
