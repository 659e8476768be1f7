"""
Service factory functions for dependency injection.

This module provides factory functions that wire infrastructure
implementations to core services. API handlers and the CLI import from here.

Clean Architecture: Application layer orchestrates DI, not core layer.
"""

from typing import TYPE_CHECKING

from plotdesk.config import get_settings
from plotdesk.core.events import EventBus
from plotdesk.core.services import NotificationDispatcher, ReminderScheduler

if TYPE_CHECKING:
    from plotdesk.core.interfaces import IReminderStore


# Singleton service instances
_reminder_store: "IReminderStore | None" = None
_dispatcher: NotificationDispatcher | None = None
_scheduler: ReminderScheduler | None = None
_event_bus: EventBus | None = None


async def get_reminder_store() -> "IReminderStore":
    """
    Get or create the reminder store for the configured backend.

    Returns:
        IReminderStore selected by STORAGE_BACKEND
    """
    global _reminder_store

    if _reminder_store is None:
        # Lazy import infrastructure to avoid circular imports
        from plotdesk.infrastructure.storage import create_reminder_store

        _reminder_store = create_reminder_store()

    return _reminder_store


def get_notification_dispatcher() -> NotificationDispatcher:
    """
    Get or create the NotificationDispatcher over all configured channels.

    Channels without credentials run in simulated mode.
    """
    global _dispatcher

    if _dispatcher is None:
        from plotdesk.infrastructure.notifications import build_channels

        settings = get_settings()
        _dispatcher = NotificationDispatcher(
            channels=build_channels(),
            company_name=settings.reminder.company_name,
            channel_timeout=settings.notify.send_budget,
            timezone=settings.reminder.tzinfo,
        )

    return _dispatcher


async def get_reminder_scheduler(
    store: "IReminderStore | None" = None,
    dispatcher: NotificationDispatcher | None = None,
) -> ReminderScheduler:
    """
    Get or create the ReminderScheduler.

    Args:
        store: Optional reminder store override
        dispatcher: Optional dispatcher override

    Returns:
        Configured ReminderScheduler (not started)
    """
    global _scheduler

    if _scheduler is not None and store is None and dispatcher is None:
        return _scheduler

    scheduler = ReminderScheduler(
        store=store or await get_reminder_store(),
        dispatcher=dispatcher or get_notification_dispatcher(),
        interval_seconds=get_settings().reminder.scan_interval_seconds,
    )

    if store is None and dispatcher is None:
        _scheduler = scheduler

    return scheduler


async def get_event_bus() -> EventBus:
    """Get or create the event bus with the reminder factory subscribed."""
    global _event_bus

    if _event_bus is None:
        from plotdesk.application.use_cases import CreatePaymentReminderUseCase

        bus = EventBus()
        CreatePaymentReminderUseCase(await get_reminder_store()).register(bus)
        _event_bus = bus

    return _event_bus


def reset_services() -> None:
    """Reset all service singletons (for testing)."""
    global _reminder_store, _dispatcher, _scheduler, _event_bus
    _reminder_store = None
    _dispatcher = None
    _scheduler = None
    _event_bus = None
