"""
FastAPI application factory.

Creates and configures the main application instance. The lifespan
prepares storage, wires the payment reminder factory and starts the
reminder scheduler.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from plotdesk import __version__
from plotdesk.api.middleware import (
    ErrorHandlerMiddleware,
    LoggingMiddleware,
    setup_exception_handlers,
)
from plotdesk.api.routes import (
    health_router,
    notifications_router,
    payments_router,
    reminders_router,
)
from plotdesk.application.services import (
    get_event_bus,
    get_reminder_scheduler,
    reset_services,
)
from plotdesk.config import configure_logging, get_logger, get_settings

logger = get_logger(__name__)


async def _open_sqlite() -> None:
    """Bring the schema up to date, then open the shared pool."""
    from plotdesk.infrastructure.storage.sqlite import get_pool
    from plotdesk.infrastructure.storage.sqlite.migrations import run_migrations

    results = await run_migrations()
    failed = [r for r in results if not r.success]
    if failed:
        logger.error("database_migration_failed", version=failed[0].version, error=failed[0].error)
        raise RuntimeError(f"migration v{failed[0].version} failed: {failed[0].error}")

    pool = await get_pool()
    logger.info("database_ready", db_path=str(pool.db_path), migrations_applied=len(results))


async def _close_sqlite() -> None:
    from plotdesk.infrastructure.storage.sqlite import close_pool

    try:
        await close_pool()
    except Exception as e:
        logger.warning("connection_pool_close_failed", error=str(e))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Open storage, subscribe the payment reminder factory and start the
    scan loop. On shutdown the loop is stopped and any scan or manual
    send still running is awaited before storage closes.
    """
    settings = get_settings()
    sqlite = settings.storage.backend == "sqlite"

    logger.info(
        "application_starting",
        host=settings.api.host,
        port=settings.api.port,
        storage_backend=settings.storage.backend,
        scan_interval_seconds=settings.reminder.scan_interval_seconds,
    )
    if sqlite:
        await _open_sqlite()

    await get_event_bus()
    scheduler = await get_reminder_scheduler()
    if settings.reminder.autostart:
        scheduler.start()

    logger.info("application_started", scheduler_running=scheduler.running)
    yield

    logger.info("application_stopping")
    await scheduler.stop()
    await scheduler.wait_idle()
    if sqlite:
        await _close_sqlite()
    reset_services()
    logger.info("application_stopped")


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()
    configure_logging()

    app = FastAPI(
        title=f"{settings.app_name} API",
        description="Payment reminders and customer notifications for a property brokerage",
        version=__version__,
        docs_url="/docs" if settings.api.debug else None,
        redoc_url="/redoc" if settings.api.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(LoggingMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)

    # CORS
    if settings.api.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.api.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    setup_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(reminders_router)
    app.include_router(notifications_router)
    app.include_router(payments_router)

    return app

app = create_app()


# Liveness probe for process supervisors
@app.get("/health")
async def root_health() -> dict[str, str]:
    """Simple health check at root level."""
    return {
        "status": "healthy",
        "version": __version__,
    }
