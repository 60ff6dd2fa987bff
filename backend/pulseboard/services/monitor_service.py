"""Monitor service - runs check cycles and serves snapshots and history.

One instance is built at startup with its cache and history backends and
handed to the scheduler and the API routers.
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from ..errors import MonitorNotFoundError, StoreError
from ..schemas.history import CleanupStatus, DashboardSnapshot, HistoryResponse, HistoryStats, TrackBucket
from ..schemas.monitor import MonitorCatalog, MonitorConfig
from ..schemas.status import StatusResponse
from ..utils.time_utils import utcnow
from .aggregator import aggregate, default_status_response
from .cache import SnapshotCache
from .checker import CheckerService
from .downsampler import DEFAULT_STRATEGY, AggregationStrategy, downsample, to_track_data
from .history import HistoryStore, calculate_history_stats

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100

# Upper bound on records read to build a chart track
TRACK_RECORDS_LIMIT = 10_000


class MonitorService:
    """Check cycle orchestration plus read access for the API."""

    def __init__(
        self,
        catalog: MonitorCatalog,
        checker: CheckerService,
        cache: SnapshotCache,
        history: HistoryStore,
        timeout_ms: int = 10_000,
        status_ttl: timedelta = timedelta(minutes=5),
        retention_days: int = 7,
        clock=utcnow,
    ):
        self.catalog = catalog
        self.checker = checker
        self.cache = cache
        self.history = history
        self.timeout_ms = timeout_ms
        self.status_ttl = status_ttl
        self.retention_days = catalog.history.retention_days or retention_days
        self._clock = clock
        self.last_cleanup_at: Optional[datetime] = None

    def _get_monitor(self, monitor_id: str) -> MonitorConfig:
        monitor = self.catalog.find(monitor_id)
        if monitor is None:
            raise MonitorNotFoundError(monitor_id)
        return monitor

    async def check_all_monitors(self) -> StatusResponse:
        """Probe every monitor, cache the snapshot and append each outcome to history."""
        outcomes = await self.checker.probe_all(list(self.catalog.items), self.timeout_ms)

        snapshot = aggregate(self.catalog, outcomes, self.status_ttl, now=self._clock())
        snapshot = await self.cache.set(snapshot)

        # One monitor's failed write must not stop the others
        failed = []
        for outcome in outcomes:
            try:
                await self.history.save_record(outcome.monitor_id, outcome)
            except StoreError as e:
                logger.error(f"Error saving history for {outcome.monitor_id}: {e}")
                failed.append(outcome.monitor_id)

        logger.info(f"Checked {len(outcomes)} monitors, overall status: {snapshot.overall_status}")

        if failed:
            raise StoreError(f"Failed to record history for: {', '.join(failed)}")
        return snapshot

    async def get_status(self) -> StatusResponse:
        """Cached snapshot, or a fresh check cycle when there is none."""
        cached = await self.cache.get()
        if cached is not None:
            return cached
        return await self.check_all_monitors()

    async def clear_cache(self):
        await self.cache.delete()

    async def get_monitor_detail(self, monitor_id: str):
        """Latest MonitorStatus for one monitor."""
        self._get_monitor(monitor_id)
        status = await self.get_status()
        for monitor in status.monitors:
            if monitor.id == monitor_id:
                return monitor
        raise MonitorNotFoundError(monitor_id)

    async def get_monitor_history(
        self,
        monitor_id: str,
        limit: int = DEFAULT_HISTORY_LIMIT,
        offset: int = 0,
    ) -> HistoryResponse:
        """One page of history, oldest first, with stats over the page."""
        monitor = self._get_monitor(monitor_id)

        # Fetch one extra record to learn whether an older page exists
        records = await self.history.get_records(monitor_id, limit + 1, offset)
        has_more = len(records) > limit
        if has_more:
            records = records[1:]

        return HistoryResponse(
            monitor_id=monitor_id,
            label=monitor.label,
            records=records,
            total_records=len(records),
            oldest_record=records[0].recorded_at if records else None,
            newest_record=records[-1].recorded_at if records else None,
            has_more=has_more,
            stats=calculate_history_stats(monitor_id, records),
        )

    async def get_all_histories(
        self,
        limit: int = DEFAULT_HISTORY_LIMIT,
        offset: int = 0,
    ) -> List[HistoryResponse]:
        return list(await asyncio.gather(*[
            self.get_monitor_history(item.id, limit, offset) for item in self.catalog.items
        ]))

    async def get_monitor_stats(self, monitor_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> HistoryStats:
        self._get_monitor(monitor_id)
        records = await self.history.get_records(monitor_id, limit)
        return calculate_history_stats(monitor_id, records)

    async def clear_history(self, monitor_id: str):
        self._get_monitor(monitor_id)
        await self.history.delete_records(monitor_id)
        logger.info(f"Cleared history for monitor {monitor_id}")

    async def get_track(
        self,
        monitor_id: str,
        bucket_count: int,
        strategy: AggregationStrategy = DEFAULT_STRATEGY,
        limit: int = TRACK_RECORDS_LIMIT,
    ) -> List[TrackBucket]:
        """Downsampled chart track built from the newest `limit` records."""
        self._get_monitor(monitor_id)
        records = await self.history.get_records(monitor_id, limit)
        buckets = downsample(
            records,
            bucket_count,
            strategy,
            now=self._clock(),
            retention_days=self.retention_days,
        )
        return to_track_data(buckets)

    async def get_dashboard(self, limit: int = DEFAULT_HISTORY_LIMIT) -> DashboardSnapshot:
        """Status plus histories; falls back to an unknown snapshot if the stores fail."""
        try:
            status = await self.get_status()
            histories = await self.get_all_histories(limit)
        except StoreError as e:
            logger.error(f"Error building dashboard, serving default snapshot: {e}")
            return DashboardSnapshot(
                status=default_status_response(self.status_ttl, now=self._clock()),
                histories=[],
            )
        return DashboardSnapshot(status=status, histories=histories)

    async def run_cleanup(self) -> int:
        """Trim history older than the retention window."""
        logger.info(f"Starting history cleanup (retention: {self.retention_days} days)")
        removed = await self.history.cleanup(self.retention_days)
        self.last_cleanup_at = self._clock()
        logger.info(f"History cleanup removed {removed} records")
        return removed

    def cleanup_status(self, interval_minutes: int) -> CleanupStatus:
        return CleanupStatus(
            enabled=self.catalog.history.auto_cleanup,
            last_cleanup_at=self.last_cleanup_at,
            interval_minutes=interval_minutes,
            retention_days=self.retention_days,
        )
