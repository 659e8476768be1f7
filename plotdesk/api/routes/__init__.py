"""API route modules."""

from plotdesk.api.routes.health import router as health_router
from plotdesk.api.routes.notifications import router as notifications_router
from plotdesk.api.routes.payments import router as payments_router
from plotdesk.api.routes.reminders import router as reminders_router

__all__ = [
    "health_router",
    "reminders_router",
    "notifications_router",
    "payments_router",
]
