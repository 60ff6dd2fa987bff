"""Database models."""
from .cache_entry import CacheEntry
from .history_record import HistoryRecordRow

__all__ = ["CacheEntry", "HistoryRecordRow"]
