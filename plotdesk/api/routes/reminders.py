"""
Reminder management endpoints.
"""

import math
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query, status

from plotdesk.api.dependencies import get_app_settings, get_rem_store, get_scheduler
from plotdesk.application.dto.requests import CreateReminderRequest, UpdateReminderRequest
from plotdesk.application.dto.responses import (
    DispatchResponse,
    ErrorResponse,
    ReminderListResponse,
    ReminderResponse,
)
from plotdesk.config import Settings
from plotdesk.core.entities.notification import utc_now
from plotdesk.core.entities.reminder import (
    Reminder,
    ReminderCategory,
    ReminderStatus,
    ReminderType,
    TransactionType,
)
from plotdesk.core.exceptions import ReminderNotFoundError, ValidationError
from plotdesk.core.interfaces import IReminderStore, ReminderFilter, SortField
from plotdesk.core.services import ReminderScheduler
from plotdesk.infrastructure.storage.base import build_reminder

router = APIRouter(prefix="/api/reminders", tags=["reminders"])


def _parse_filter(value: str | None, parser, field: str):
    if value is None or value == "":
        return None
    try:
        return parser(value)
    except ValueError as e:
        raise ValidationError(field, str(e), value) from e


def _list_response(
    reminders: list[Reminder], total: int, page: int, limit: int, lang: str = "en"
) -> ReminderListResponse:
    return ReminderListResponse(
        reminders=[ReminderResponse.from_entity(r, lang) for r in reminders],
        total=total,
        page=page,
        limit=limit,
        pages=math.ceil(total / limit) if limit else 0,
    )


@router.post(
    "",
    response_model=ReminderResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_reminder(
    request: CreateReminderRequest,
    store: IReminderStore = Depends(get_rem_store),
    settings: Settings = Depends(get_app_settings),
) -> ReminderResponse:
    """Create a new reminder. The reminder date defaults to two days before the due date."""
    reminder = build_reminder(request.to_entity_data(settings.reminder.default_currency))
    created = await store.create(reminder)
    return ReminderResponse.from_entity(created)


@router.get("", response_model=ReminderListResponse)
async def list_reminders(
    status_filter: str | None = Query(default=None, alias="status"),
    type: str | None = None,
    transaction_type: str | None = None,
    category: str | None = None,
    customer_name: str | None = None,
    due_from: datetime | None = None,
    due_to: datetime | None = None,
    include_inactive: bool = False,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=200),
    sort: SortField = "due_date",
    order: Literal["asc", "desc"] = "asc",
    lang: str = "en",
    store: IReminderStore = Depends(get_rem_store),
) -> ReminderListResponse:
    """List reminders with filters, pagination and sorting."""
    filters = ReminderFilter(
        status=_parse_filter(status_filter, ReminderStatus.parse, "status"),
        type=_parse_filter(type, ReminderType, "type"),
        transaction_type=_parse_filter(transaction_type, TransactionType, "transaction_type"),
        category=_parse_filter(category, ReminderCategory.parse, "category"),
        customer_name=customer_name,
        due_from=due_from,
        due_to=due_to,
        include_inactive=include_inactive,
    )
    reminders = await store.list_reminders(
        filters,
        limit=limit,
        offset=(page - 1) * limit,
        sort=sort,
        descending=order == "desc",
    )
    total = await store.count(filters)
    return _list_response(reminders, total, page, limit, lang)


@router.get("/due", response_model=ReminderListResponse)
async def list_due_reminders(
    store: IReminderStore = Depends(get_rem_store),
) -> ReminderListResponse:
    """Reminders eligible for automatic sending right now."""
    reminders = await store.find_due(utc_now())
    return _list_response(reminders, len(reminders), 1, max(len(reminders), 1))


@router.get("/overdue", response_model=ReminderListResponse)
async def list_overdue_reminders(
    store: IReminderStore = Depends(get_rem_store),
) -> ReminderListResponse:
    """Open reminders whose due date has passed."""
    reminders = await store.find_overdue(utc_now())
    return _list_response(reminders, len(reminders), 1, max(len(reminders), 1))


@router.get(
    "/{reminder_id}",
    response_model=ReminderResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_reminder(
    reminder_id: int,
    lang: str = "en",
    store: IReminderStore = Depends(get_rem_store),
) -> ReminderResponse:
    """Get a reminder by ID."""
    reminder = await store.get(reminder_id)
    if reminder is None:
        raise ReminderNotFoundError(reminder_id)
    return ReminderResponse.from_entity(reminder, lang)


@router.put(
    "/{reminder_id}",
    response_model=ReminderResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_reminder(
    reminder_id: int,
    request: UpdateReminderRequest,
    store: IReminderStore = Depends(get_rem_store),
) -> ReminderResponse:
    """Update editable fields. Moving the due date re-derives the reminder date."""
    updated = await store.update(reminder_id, request.to_changes())
    return ReminderResponse.from_entity(updated)


async def _reminder_or_404(store: IReminderStore, reminder_id: int) -> ReminderResponse:
    reminder = await store.get(reminder_id)
    if reminder is None:
        raise ReminderNotFoundError(reminder_id)
    return ReminderResponse.from_entity(reminder)


@router.put(
    "/{reminder_id}/complete",
    response_model=ReminderResponse,
    responses={404: {"model": ErrorResponse}},
)
async def complete_reminder(
    reminder_id: int,
    store: IReminderStore = Depends(get_rem_store),
) -> ReminderResponse:
    """Close a reminder as Completed."""
    await store.mark_completed(reminder_id)
    return await _reminder_or_404(store, reminder_id)


@router.put(
    "/{reminder_id}/cancel",
    response_model=ReminderResponse,
    responses={404: {"model": ErrorResponse}},
)
async def cancel_reminder(
    reminder_id: int,
    store: IReminderStore = Depends(get_rem_store),
) -> ReminderResponse:
    """Close a reminder as Cancelled."""
    await store.cancel(reminder_id)
    return await _reminder_or_404(store, reminder_id)


@router.post(
    "/{reminder_id}/mark-sent",
    response_model=ReminderResponse,
    responses={404: {"model": ErrorResponse}},
)
async def mark_reminder_sent(
    reminder_id: int,
    store: IReminderStore = Depends(get_rem_store),
) -> ReminderResponse:
    """Record that the customer was reminded outside the system."""
    await store.mark_sent(reminder_id)
    return await _reminder_or_404(store, reminder_id)


@router.post(
    "/{reminder_id}/send",
    response_model=DispatchResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def send_reminder(
    reminder_id: int,
    scheduler: ReminderScheduler = Depends(get_scheduler),
) -> DispatchResponse:
    """Send a reminder now, regardless of its reminder date."""
    outcome = await scheduler.send_now(reminder_id)
    return DispatchResponse.model_validate(outcome.to_dict())


@router.delete(
    "/{reminder_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_reminder(
    reminder_id: int,
    store: IReminderStore = Depends(get_rem_store),
) -> None:
    """Deactivate a reminder. History is kept."""
    deleted = await store.delete(reminder_id)
    if not deleted:
        raise ReminderNotFoundError(reminder_id)
