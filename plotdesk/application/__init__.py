"""
Application layer - Use cases, DTOs, and service factories.

This layer orchestrates business logic by:
1. Defining request/response DTOs for API contracts
2. Implementing use cases that coordinate core services
3. Providing factory functions for dependency injection
"""

from plotdesk.application.services import (
    get_event_bus,
    get_notification_dispatcher,
    get_reminder_scheduler,
    get_reminder_store,
    reset_services,
)

__all__ = [
    "get_event_bus",
    "get_notification_dispatcher",
    "get_reminder_scheduler",
    "get_reminder_store",
    "reset_services",
]
