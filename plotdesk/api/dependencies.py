"""
Dependency injection container for FastAPI.

Provides service instances to route handlers. Tests override these
with app.dependency_overrides.
"""

from plotdesk.application.services import (
    get_event_bus,
    get_notification_dispatcher,
    get_reminder_scheduler,
    get_reminder_store,
)
from plotdesk.config import Settings, get_settings
from plotdesk.core.events import EventBus
from plotdesk.core.interfaces import IReminderStore
from plotdesk.core.services import NotificationDispatcher, ReminderScheduler


def get_app_settings() -> Settings:
    """Get application settings."""
    return get_settings()


async def get_rem_store() -> IReminderStore:
    """Get reminder store for the configured backend."""
    return await get_reminder_store()


def get_dispatcher() -> NotificationDispatcher:
    """Get notification dispatcher."""
    return get_notification_dispatcher()


async def get_scheduler() -> ReminderScheduler:
    """Get reminder scheduler."""
    return await get_reminder_scheduler()


async def get_bus() -> EventBus:
    """Get domain event bus."""
    return await get_event_bus()
