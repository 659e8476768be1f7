"""
Reminder scheduler.

Long-lived asyncio task that scans the reminder store on a fixed interval,
dispatches due reminders and marks overdue ones. The same per-reminder
procedure backs the administrative "send now" trigger.

Retry policy: one automatic attempt per reminder. When every channel fails
the reminder becomes Failed, drops out of find_due, and waits for an
administrative send_now (which may be repeated).
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from plotdesk.config import get_logger
from plotdesk.core.entities.notification import NotificationResult, utc_now
from plotdesk.core.entities.reminder import Reminder, ReminderStatus
from plotdesk.core.exceptions import (
    ReminderBusyError,
    ReminderClosedError,
    ReminderNotFoundError,
    StorageError,
)
from plotdesk.core.interfaces.storage import IReminderStore
from plotdesk.core.services.notification_dispatcher import NotificationDispatcher

logger = get_logger(__name__)

DEFAULT_SCAN_INTERVAL_SECONDS = 24 * 60 * 60


@dataclass
class DispatchOutcome:
    """Result of running the dispatch procedure for one reminder."""

    reminder_id: int
    success: bool
    results: list[NotificationResult] = field(default_factory=list)
    status: ReminderStatus | None = None
    applied: bool = False
    manual: bool = False
    skipped: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "reminder_id": self.reminder_id,
            "success": self.success,
            "status": self.status.value if self.status else None,
            "applied": self.applied,
            "manual": self.manual,
            "skipped": self.skipped,
            "error": self.error,
            "results": [r.model_dump(mode="json") for r in self.results],
        }


@dataclass
class ScanReport:
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
    outcomes: list[DispatchOutcome] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "due_found": self.due_found,
            "sent": self.sent,
            "failed": self.failed,
            "errors": self.errors,
            "overdue_marked": self.overdue_marked,
            "skipped": self.skipped,
            "reason": self.reason,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


class ReminderScheduler:
    """
    Periodic due/overdue reminder sweep.

    Holds no lock across awaits. Concurrent dispatches of the same reminder
    within this process are prevented by an in-flight id set, and across
    processes by the store's conditional updates.
    """

    def __init__(
        self,
        store: IReminderStore,
        dispatcher: NotificationDispatcher,
        interval_seconds: float = DEFAULT_SCAN_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self.interval_seconds = interval_seconds
        self._clock = clock

        self._timer: asyncio.Task[None] | None = None
        self._scan_task: asyncio.Task[ScanReport] | None = None
        self._scanning = False
        self._in_flight: set[int] = set()
        self._no_sends = asyncio.Event()  # set while _in_flight is empty
        self._no_sends.set()
        self._next_scan_at: datetime | None = None
        self._last_scan: ScanReport | None = None

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def scanning(self) -> bool:
        return self._scanning

    @property
    def last_scan(self) -> ScanReport | None:
        return self._last_scan

    # Lifecycle

    def start(self) -> bool:
        """
        Start the periodic scan on the running event loop.

        Performs one scan immediately, then one per interval.

        Returns:
            False if the scheduler was already running
        """
        if self.running:
            logger.debug("scheduler_already_running")
            return False

        loop = asyncio.get_running_loop()
        self._timer = loop.create_task(self._run(), name="reminder-scheduler")
        logger.info("scheduler_started", interval_seconds=self.interval_seconds)
        return True

    async def stop(self) -> bool:
        """
        Cancel the timer. A scan already in progress runs to completion.

        Returns:
            False if the scheduler was not running
        """
        timer, self._timer = self._timer, None
        self._next_scan_at = None
        if timer is None or timer.done():
            return False

        timer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await timer
        logger.info("scheduler_stopped", scan_in_progress=self._scanning)
        return True

    async def wait_idle(self) -> None:
        """Wait for a running timer scan and every manual send to finish."""
        task = self._scan_task
        if task is not None and not task.done():
            await asyncio.wait({task})
        await self._no_sends.wait()

    async def _run(self) -> None:
        while True:
            self._next_scan_at = None
            self._scan_task = asyncio.get_running_loop().create_task(
                self._scan_safely(), name="reminder-scan"
            )
            # Cancelling the timer must not cancel the scan itself
            await asyncio.shield(self._scan_task)

            self._next_scan_at = self._clock() + timedelta(seconds=self.interval_seconds)
            logger.debug("scheduler_sleeping", next_scan_at=self._next_scan_at.isoformat())
            await asyncio.sleep(self.interval_seconds)

    async def _scan_safely(self) -> ScanReport:
        try:
            return await self.scan()
        except Exception as e:
            logger.error("scan_crashed", error=str(e), error_type=type(e).__name__, exc_info=True)
            return ScanReport(started_at=self._clock(), finished_at=self._clock(), reason="error")

    # Scan

    async def scan(self, now: datetime | None = None) -> ScanReport:
        """
        Run one due/overdue sweep.

        A sweep requested while another is running is skipped, as is a
        sweep while the store is unreachable. Neither raises.
        """
        now = now or self._clock()
        if self._scanning:
            logger.info("scan_skipped_in_progress")
            return ScanReport(
                started_at=now, finished_at=now, skipped=True, reason="scan_in_progress"
            )

        self._scanning = True
        try:
            report = await self._scan(now)
        finally:
            self._scanning = False

        report.finished_at = self._clock()
        self._last_scan = report
        logger.info(
            "scan_completed",
            due_found=report.due_found,
            sent=report.sent,
            failed=report.failed,
            errors=report.errors,
            overdue_marked=report.overdue_marked,
            skipped=report.skipped,
            reason=report.reason,
        )
        return report

    async def _store_reachable(self) -> bool:
        try:
            return await self._store.ping()
        except Exception as e:
            logger.warning("scan_store_ping_failed", error=str(e))
            return False

    async def _scan(self, now: datetime) -> ScanReport:
        report = ScanReport(started_at=now)

        if not await self._store_reachable():
            logger.warning("scan_aborted_storage_unavailable", backend=self._store.backend_name)
            report.skipped = True
            report.reason = "storage_unavailable"
            return report

        await self._dispatch_due(now, report)
        await self._mark_overdue(now, report)
        return report

    async def _dispatch_due(self, now: datetime, report: ScanReport) -> None:
        try:
            due = await self._store.find_due(now)
        except StorageError as e:
            logger.warning("scan_find_due_failed", error=str(e))
            report.errors += 1
            report.reason = "storage_error"
            return

        report.due_found = len(due)
        for reminder in due:
            try:
                outcome = await self.dispatch_reminder(reminder)
            except Exception as e:
                logger.error(
                    "scan_dispatch_failed",
                    reminder_id=reminder.id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                report.errors += 1
                outcome = DispatchOutcome(
                    reminder_id=reminder.id or 0, success=False, error=str(e)
                )
            report.outcomes.append(outcome)
            if outcome.skipped or outcome.error:
                continue
            if outcome.success:
                report.sent += 1
            else:
                report.failed += 1

    async def _mark_overdue(self, now: datetime, report: ScanReport) -> None:
        try:
            overdue = await self._store.find_overdue(now)
        except StorageError as e:
            logger.warning("scan_find_overdue_failed", error=str(e))
            report.errors += 1
            report.reason = report.reason or "storage_error"
            return

        for reminder in overdue:
            if reminder.id is None:
                continue
            try:
                if await self._store.mark_overdue(reminder.id):
                    report.overdue_marked += 1
            except Exception as e:
                logger.error("scan_mark_overdue_failed", reminder_id=reminder.id, error=str(e))
                report.errors += 1

    # Dispatch

    async def dispatch_reminder(
        self,
        reminder: Reminder,
        manual: bool = False,
    ) -> DispatchOutcome:
        """
        Send one reminder and record the outcome.

        Any success marks it sent; otherwise it is marked failed. Timer
        dispatches re-read the reminder after claiming it and only send and
        transition reminders still Pending. Manual dispatches skip gating.

        Raises:
            ReminderBusyError: manual dispatch of a reminder already in flight
        """
        if reminder.id is None:
            raise ReminderNotFoundError("unsaved")
        reminder_id = reminder.id

        if reminder_id in self._in_flight:
            if manual:
                raise ReminderBusyError(reminder_id)
            logger.info("dispatch_skipped_in_flight", reminder_id=reminder_id)
            return DispatchOutcome(reminder_id=reminder_id, success=False, skipped=True)

        self._in_flight.add(reminder_id)
        self._no_sends.clear()
        try:
            if not manual:
                current = await self._store.get(reminder_id)
                if (
                    current is None
                    or current.status != ReminderStatus.PENDING
                    or current.reminder_sent
                    or not current.is_active
                ):
                    logger.info("dispatch_skipped_no_longer_pending", reminder_id=reminder_id)
                    return DispatchOutcome(reminder_id=reminder_id, success=False, skipped=True)
                reminder = current

            results = await self._dispatcher.dispatch(reminder)
            success = any(r.success for r in results)

            if success:
                applied = await self._store.mark_sent(
                    reminder_id, results, only_if_pending=not manual
                )
                status = ReminderStatus.REMINDED if applied else None
            else:
                applied = await self._store.mark_failed(reminder_id, results)
                status = ReminderStatus.FAILED if applied else None
        finally:
            self._in_flight.discard(reminder_id)
            if not self._in_flight:
                self._no_sends.set()

        logger.info(
            "reminder_dispatch_recorded",
            reminder_id=reminder_id,
            success=success,
            applied=applied,
            manual=manual,
            channels=len(results),
        )
        return DispatchOutcome(
            reminder_id=reminder_id,
            success=success,
            results=results,
            status=status,
            applied=applied,
            manual=manual,
        )

    async def send_now(self, reminder_id: int) -> DispatchOutcome:
        """
        Administrative send, bypassing the reminder date and status gating.

        Raises:
            ReminderNotFoundError: unknown id
            ReminderClosedError: reminder is completed or cancelled
            ReminderBusyError: reminder is being dispatched already
        """
        reminder = await self._store.get(reminder_id)
        if reminder is None:
            raise ReminderNotFoundError(reminder_id)
        if reminder.is_terminal:
            raise ReminderClosedError(reminder_id, reminder.status.value)

        logger.info("manual_send_requested", reminder_id=reminder_id)
        return await self.dispatch_reminder(reminder, manual=True)

    def status(self) -> dict[str, Any]:
        """Service status for administrative callers."""
        return {
            "running": self.running,
            "scanning": self._scanning,
            "interval_seconds": self.interval_seconds,
            "next_scan_at": self._next_scan_at.isoformat() if self._next_scan_at else None,
            "in_flight": sorted(self._in_flight),
            "last_scan": self._last_scan.to_dict() if self._last_scan else None,
        }
