"""Services for probing, caching, history and scheduling."""
from .cache import DatabaseSnapshotCache, InMemorySnapshotCache, SnapshotCache
from .checker import CheckerService
from .history import DatabaseHistoryStore, HistoryStore, InMemoryHistoryStore, calculate_history_stats
from .monitor_service import MonitorService
from .scheduler import SchedulerService
from .sync import CrossViewSync
from .websocket_manager import ConnectionManager

__all__ = [
    "SnapshotCache",
    "InMemorySnapshotCache",
    "DatabaseSnapshotCache",
    "CheckerService",
    "HistoryStore",
    "InMemoryHistoryStore",
    "DatabaseHistoryStore",
    "calculate_history_stats",
    "MonitorService",
    "SchedulerService",
    "CrossViewSync",
    "ConnectionManager",
]
