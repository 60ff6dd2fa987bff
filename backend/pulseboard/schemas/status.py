"""Status schemas - probe outcomes and aggregated snapshots."""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

StatusLevel = Literal["up", "degraded", "down", "unknown"]

STATUS_LEVELS = ("up", "degraded", "down", "unknown")


class CheckOutcome(BaseModel):
    """Result of probing one monitor once."""
    monitor_id: str
    status: StatusLevel
    status_code: Optional[int] = None  # None on network failure or timeout
    response_time_ms: int = Field(0, ge=0)
    error_message: Optional[str] = None
    checked_at: datetime

    model_config = {"frozen": True}


class MonitorStatus(BaseModel):
    """Current view of one monitor: config plus latest outcome."""
    id: str
    label: str
    category: str
    url: str
    status: StatusLevel
    status_code: Optional[int] = None
    response_time_ms: int = 0
    error_message: Optional[str] = None
    last_checked_at: Optional[datetime] = None  # None until the monitor has been checked


class CategoryStatus(BaseModel):
    """Rollup of the monitors in one category."""
    id: str
    label: str
    status: StatusLevel
    item_count: int
    up_count: int
    degraded_count: int
    down_count: int


class StatusResponse(BaseModel):
    """Full snapshot stored in the cache and returned to clients."""
    overall_status: StatusLevel
    categories: List[CategoryStatus]
    monitors: List[MonitorStatus]
    timestamp: datetime
    expires_at: datetime
