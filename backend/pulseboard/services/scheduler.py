"""Scheduler service - runs check cycles and history cleanup periodically.

Each job runs with max_instances=1, so a slow check cycle delays the next
one instead of overlapping it. Job errors are logged; the scheduler keeps
running.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..errors import PulseboardError
from .monitor_service import MonitorService
from .sync import CrossViewSync

logger = logging.getLogger(__name__)


class SchedulerService:
    """Service for scheduling periodic check cycles and retention cleanup."""

    def __init__(
        self,
        monitor_service: MonitorService,
        check_interval_seconds: int,
        cleanup_interval_minutes: int,
        sync: Optional[CrossViewSync] = None,
    ):
        self.monitor_service = monitor_service
        self.check_interval_seconds = check_interval_seconds
        self.cleanup_interval_minutes = cleanup_interval_minutes
        self.sync = sync
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        """Start the scheduler."""
        if self._running:
            return

        self.scheduler = AsyncIOScheduler()

        self.scheduler.add_job(
            self._run_checks,
            trigger=IntervalTrigger(seconds=self.check_interval_seconds),
            id="run_checks",
            replace_existing=True,
            max_instances=1,
            misfire_grace_time=self.check_interval_seconds,
        )

        if self.monitor_service.catalog.history.auto_cleanup:
            self.scheduler.add_job(
                self._cleanup_old_records,
                trigger=IntervalTrigger(minutes=self.cleanup_interval_minutes),
                id="cleanup_old_records",
                replace_existing=True,
                max_instances=1,
                # First cleanup runs at startup, then every interval
                next_run_time=datetime.now(timezone.utc),
            )

        self.scheduler.start()
        self._running = True
        logger.info(
            f"Scheduler started (checks every {self.check_interval_seconds}s, "
            f"cleanup every {self.cleanup_interval_minutes}min)"
        )

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler and self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    async def _run_checks(self):
        """Run one check cycle and push the result to connected views."""
        try:
            await self.monitor_service.check_all_monitors()
            if self.sync is not None:
                await self.sync.refetch_and_broadcast(self.monitor_service.get_dashboard)
        except PulseboardError as e:
            logger.error(f"Error running checks: {e}")

    async def _cleanup_old_records(self):
        """Delete history records older than the retention window."""
        try:
            await self.monitor_service.run_cleanup()
        except PulseboardError as e:
            logger.error(f"Error cleaning up records: {e}")
