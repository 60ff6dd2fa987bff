"""CacheEntry model - key/value rows with an expiry, used for the status snapshot."""
from sqlalchemy import Column, String, Text, DateTime

from ..database import Base


class CacheEntry(Base):
    """Serialized cache value stored under a fixed key."""

    __tablename__ = "cache_entries"

    key = Column(String, primary_key=True)
    payload = Column(Text, nullable=False)  # JSON
    expires_at = Column(DateTime, nullable=False)  # naive UTC
