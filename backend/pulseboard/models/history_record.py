"""HistoryRecord model - append-only log of check outcomes per monitor."""
from sqlalchemy import Column, Integer, String, DateTime, Index

from ..database import Base


class HistoryRecordRow(Base):
    """One persisted probe outcome.

    `seq` preserves insertion order for records sharing a `recorded_at`.
    Timestamps are stored as naive UTC.
    """

    __tablename__ = "history_records"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), nullable=False, unique=True)  # uuid4
    monitor_id = Column(String, nullable=False)
    status = Column(String, nullable=False)  # up, down, degraded, unknown
    status_code = Column(Integer, nullable=True)  # NULL on network failure
    response_time_ms = Column(Integer, nullable=False, default=0)
    error_message = Column(String, nullable=True)
    recorded_at = Column(DateTime, nullable=False)
    bucketed_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_history_records_monitor_recorded", "monitor_id", "recorded_at"),
    )
