"""History schemas - persisted records, rollup stats and chart buckets."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from .status import StatusLevel, StatusResponse


class HistoryRecord(BaseModel):
    """Persisted form of a CheckOutcome."""
    id: str
    monitor_id: str
    status: StatusLevel
    status_code: Optional[int] = None
    response_time_ms: int = 0
    error_message: Optional[str] = None
    recorded_at: datetime
    bucketed_at: datetime

    model_config = {"frozen": True}


class HistoryStats(BaseModel):
    """Rollup statistics over a window of records."""
    monitor_id: str
    up_count: int
    degraded_count: int
    down_count: int
    unknown_count: int
    total_records: int
    uptime: float  # Percentage of up outcomes
    avg_response_time: int
    min_response_time: Optional[int] = None
    max_response_time: Optional[int] = None


class HistoryResponse(BaseModel):
    """History page for one monitor."""
    monitor_id: str
    label: str
    records: List[HistoryRecord]
    total_records: int
    oldest_record: Optional[datetime] = None
    newest_record: Optional[datetime] = None
    has_more: bool
    stats: HistoryStats


class TrackBucket(BaseModel):
    """One chart slot produced by the downsampler."""
    date: str
    tooltip: str  # Operational, Maintenance, Downtime, Not measured
    color: str
    is_future: bool = False


class CleanupStatus(BaseModel):
    """State of the periodic retention cleanup."""
    enabled: bool
    last_cleanup_at: Optional[datetime] = None
    interval_minutes: int
    retention_days: int


class DashboardSnapshot(BaseModel):
    """Everything a dashboard view renders: current status plus per-monitor history."""
    status: StatusResponse
    histories: List[HistoryResponse]
