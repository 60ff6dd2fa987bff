"""History store - append-only per-monitor log of check outcomes.

Records are kept in ascending `recorded_at` order, ties in insertion
order. Saving is not deduplicated: a retried check cycle appends a second
record for the same outcome.

Every record also carries a hard expiry (30 days) that applies no matter
what retention the cleanup job is configured with: expired records are
never returned and are purged by the next cleanup.
"""
import logging
import math
import uuid
from abc import ABC, abstractmethod
from bisect import bisect_left, insort_right
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..errors import ConfigurationError, StoreError
from ..models import HistoryRecordRow
from ..schemas.history import HistoryRecord, HistoryStats
from ..schemas.status import CheckOutcome
from ..utils.db_utils import retry_on_lock
from ..utils.time_utils import as_utc, floor_to_interval, to_naive_utc, utcnow

logger = logging.getLogger(__name__)

HARD_EXPIRY = timedelta(days=30)
DEFAULT_BUCKET_INTERVAL = timedelta(minutes=5)

Clock = Callable[[], datetime]


def history_key(monitor_id: str) -> str:
    """Storage key for one monitor's history."""
    return f"history:{monitor_id}"


def _recorded_at(record: HistoryRecord) -> datetime:
    return as_utc(record.recorded_at)


class HistoryStore(ABC):
    """Interface shared by the in-memory and database history stores."""

    def __init__(
        self,
        clock: Clock = utcnow,
        bucket_interval: timedelta = DEFAULT_BUCKET_INTERVAL,
        hard_expiry: timedelta = HARD_EXPIRY,
    ):
        self._clock = clock
        self._bucket_interval_ms = int(bucket_interval.total_seconds() * 1000)
        self.hard_expiry = hard_expiry

    def _new_record(self, monitor_id: str, outcome: CheckOutcome) -> HistoryRecord:
        recorded_at = as_utc(outcome.checked_at)
        return HistoryRecord(
            id=str(uuid.uuid4()),
            monitor_id=monitor_id,
            status=outcome.status,
            status_code=outcome.status_code,
            response_time_ms=outcome.response_time_ms,
            error_message=outcome.error_message,
            recorded_at=recorded_at,
            bucketed_at=floor_to_interval(recorded_at, self._bucket_interval_ms),
        )

    def _expiry_cutoff(self, now: datetime) -> datetime:
        return now - self.hard_expiry

    def _cleanup_cutoff(self, retention_days: int, now: datetime) -> datetime:
        """Records strictly older than this are removed."""
        if retention_days < 0:
            raise ValueError("retention_days must not be negative")
        return max(now - timedelta(days=retention_days), self._expiry_cutoff(now))

    @abstractmethod
    async def save_record(self, monitor_id: str, outcome: CheckOutcome) -> HistoryRecord:
        """Append an outcome; recorded_at is the outcome's checked_at."""

    @abstractmethod
    async def get_records(self, monitor_id: str, limit: int = 100, offset: int = 0) -> List[HistoryRecord]:
        """The newest `limit` records after skipping `offset` newest, oldest first."""

    @abstractmethod
    async def get_total_count(self, monitor_id: str) -> int:
        """Number of unexpired records for a monitor."""

    @abstractmethod
    async def delete_records(self, monitor_id: str) -> None:
        """Remove every record for a monitor."""

    @abstractmethod
    async def cleanup(self, retention_days: int) -> int:
        """Remove records older than the retention window. Returns the number removed."""


class InMemoryHistoryStore(HistoryStore):
    """Process-local history, one sorted list per `history:<monitor_id>` key."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._histories: Dict[str, List[HistoryRecord]] = {}

    def _visible(self, monitor_id: str) -> List[HistoryRecord]:
        records = self._histories.get(history_key(monitor_id))
        if not records:
            return []
        cutoff = self._expiry_cutoff(self._clock())
        start = bisect_left(records, cutoff, key=_recorded_at)
        return records[start:]

    async def save_record(self, monitor_id: str, outcome: CheckOutcome) -> HistoryRecord:
        record = self._new_record(monitor_id, outcome)
        records = self._histories.setdefault(history_key(monitor_id), [])
        # insort_right keeps insertion order among equal timestamps
        insort_right(records, record, key=_recorded_at)
        return record

    async def get_records(self, monitor_id: str, limit: int = 100, offset: int = 0) -> List[HistoryRecord]:
        records = self._visible(monitor_id)
        total = len(records)
        end = max(0, total - max(0, offset))
        start = max(0, end - max(0, limit))
        return records[start:end]

    async def get_total_count(self, monitor_id: str) -> int:
        return len(self._visible(monitor_id))

    async def delete_records(self, monitor_id: str) -> None:
        self._histories.pop(history_key(monitor_id), None)

    async def cleanup(self, retention_days: int) -> int:
        cutoff = self._cleanup_cutoff(retention_days, self._clock())
        removed = 0
        for key in list(self._histories):
            records = self._histories.get(key)
            if records is None:
                continue
            start = bisect_left(records, cutoff, key=_recorded_at)
            removed += start
            if start == len(records):
                del self._histories[key]
            elif start:
                self._histories[key] = records[start:]
        return removed


class DatabaseHistoryStore(HistoryStore):
    """History persisted in the `history_records` table."""

    def __init__(self, session_factory: Optional[async_sessionmaker], *args, **kwargs):
        if session_factory is None:
            raise ConfigurationError("Database history store requires a database session factory")
        super().__init__(*args, **kwargs)
        self._session_factory = session_factory

    @staticmethod
    def _to_record(row: HistoryRecordRow) -> HistoryRecord:
        return HistoryRecord(
            id=row.id,
            monitor_id=row.monitor_id,
            status=row.status,
            status_code=row.status_code,
            response_time_ms=row.response_time_ms,
            error_message=row.error_message,
            recorded_at=as_utc(row.recorded_at),
            bucketed_at=as_utc(row.bucketed_at),
        )

    async def save_record(self, monitor_id: str, outcome: CheckOutcome) -> HistoryRecord:
        record = self._new_record(monitor_id, outcome)
        try:
            async with self._session_factory() as session:
                session.add(HistoryRecordRow(
                    id=record.id,
                    monitor_id=monitor_id,
                    status=record.status,
                    status_code=record.status_code,
                    response_time_ms=record.response_time_ms,
                    error_message=record.error_message,
                    recorded_at=to_naive_utc(record.recorded_at),
                    bucketed_at=to_naive_utc(record.bucketed_at),
                ))
                await retry_on_lock(session.commit)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to save history record for {monitor_id}: {e}") from e
        return record

    async def get_records(self, monitor_id: str, limit: int = 100, offset: int = 0) -> List[HistoryRecord]:
        if limit <= 0:
            return []
        cutoff = to_naive_utc(self._expiry_cutoff(self._clock()))
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(HistoryRecordRow)
                    .where(
                        HistoryRecordRow.monitor_id == monitor_id,
                        HistoryRecordRow.recorded_at >= cutoff,
                    )
                    .order_by(HistoryRecordRow.recorded_at.desc(), HistoryRecordRow.seq.desc())
                    .offset(max(0, offset))
                    .limit(limit)
                )
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to fetch history for {monitor_id}: {e}") from e

        # Newest-first from the database, oldest-first for display
        return [self._to_record(row) for row in reversed(rows)]

    async def get_total_count(self, monitor_id: str) -> int:
        cutoff = to_naive_utc(self._expiry_cutoff(self._clock()))
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(func.count(HistoryRecordRow.seq)).where(
                        HistoryRecordRow.monitor_id == monitor_id,
                        HistoryRecordRow.recorded_at >= cutoff,
                    )
                )
                return int(result.scalar_one())
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to count history for {monitor_id}: {e}") from e

    async def delete_records(self, monitor_id: str) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(delete(HistoryRecordRow).where(HistoryRecordRow.monitor_id == monitor_id))
                await retry_on_lock(session.commit)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to delete history for {monitor_id}: {e}") from e

    async def cleanup(self, retention_days: int) -> int:
        cutoff = to_naive_utc(self._cleanup_cutoff(retention_days, self._clock()))
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(HistoryRecordRow).where(HistoryRecordRow.recorded_at < cutoff)
                )
                await retry_on_lock(session.commit)
        except SQLAlchemyError as e:
            raise StoreError(f"History cleanup failed: {e}") from e
        return result.rowcount or 0


def calculate_history_stats(monitor_id: str, records: List[HistoryRecord]) -> HistoryStats:
    """Uptime and latency rollup over a window of records."""
    total = len(records)
    up_count = sum(1 for r in records if r.status == "up")
    response_times = [r.response_time_ms for r in records]

    return HistoryStats(
        monitor_id=monitor_id,
        up_count=up_count,
        degraded_count=sum(1 for r in records if r.status == "degraded"),
        down_count=sum(1 for r in records if r.status == "down"),
        unknown_count=sum(1 for r in records if r.status == "unknown"),
        total_records=total,
        uptime=(up_count / total) * 100 if total else 0,
        # Round half up
        avg_response_time=math.floor(sum(response_times) / total + 0.5) if total else 0,
        min_response_time=min(response_times) if response_times else None,
        max_response_time=max(response_times) if response_times else None,
    )
