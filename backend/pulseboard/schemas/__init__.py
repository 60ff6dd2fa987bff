"""Pydantic schemas for configuration, snapshots and history."""
from .monitor import (
    CategoryConfig,
    CheckSpec,
    HistoryConfig,
    LengthExpectation,
    MonitorCatalog,
    MonitorConfig,
    load_catalog,
)
from .status import (
    STATUS_LEVELS,
    CategoryStatus,
    CheckOutcome,
    MonitorStatus,
    StatusLevel,
    StatusResponse,
)
from .history import (
    CleanupStatus,
    DashboardSnapshot,
    HistoryRecord,
    HistoryResponse,
    HistoryStats,
    TrackBucket,
)

__all__ = [
    "CategoryConfig",
    "CheckSpec",
    "HistoryConfig",
    "LengthExpectation",
    "MonitorCatalog",
    "MonitorConfig",
    "load_catalog",
    "STATUS_LEVELS",
    "CategoryStatus",
    "CheckOutcome",
    "MonitorStatus",
    "StatusLevel",
    "StatusResponse",
    "CleanupStatus",
    "DashboardSnapshot",
    "HistoryRecord",
    "HistoryResponse",
    "HistoryStats",
    "TrackBucket",
]
