"""
Health check endpoints.
"""

import time

from fastapi import APIRouter, Depends

from plotdesk import __version__
from plotdesk.api.dependencies import get_rem_store, get_scheduler
from plotdesk.application.dto.responses import (
    ComponentHealthResponse,
    HealthResponse,
    SchedulerStatusResponse,
)
from plotdesk.core.interfaces import IReminderStore
from plotdesk.core.services import ReminderScheduler

router = APIRouter(prefix="/api/health", tags=["health"])

# Track startup time
_start_time = time.time()


@router.get("", response_model=HealthResponse)
async def health_check(
    scheduler: ReminderScheduler = Depends(get_scheduler),
) -> HealthResponse:
    """Service status, uptime and scheduler state."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        uptime_seconds=time.time() - _start_time,
        scheduler=SchedulerStatusResponse.model_validate(scheduler.status()),
    )


@router.get("/db", response_model=HealthResponse)
async def db_health(
    store: IReminderStore = Depends(get_rem_store),
) -> HealthResponse:
    """Reminder store reachability."""
    try:
        available = await store.ping()
        db_status = ComponentHealthResponse(available=available, backend=store.backend_name)
    except Exception as e:
        db_status = ComponentHealthResponse(
            available=False, backend=store.backend_name, error=str(e)
        )

    return HealthResponse(
        status="healthy" if db_status.available else "unhealthy",
        version=__version__,
        uptime_seconds=time.time() - _start_time,
        database=db_status,
    )
