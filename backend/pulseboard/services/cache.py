"""Snapshot cache - holds the latest StatusResponse until it expires.

Two backends share one interface; the composition root picks one at
startup. The in-memory variant loses its entry on restart, in which case
callers simply run a fresh check cycle.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..errors import ConfigurationError, StoreError
from ..models import CacheEntry
from ..schemas.status import StatusResponse
from ..utils.db_utils import retry_on_lock
from ..utils.time_utils import as_utc, to_naive_utc, utcnow

logger = logging.getLogger(__name__)

CACHE_KEY = "monitor:status:latest"
DEFAULT_CACHE_TTL = timedelta(minutes=5)

# How long the database variant trusts its in-process copy
DEFAULT_SHADOW_TTL = timedelta(seconds=30)

Clock = Callable[[], datetime]


def serialize_snapshot(snapshot: StatusResponse) -> str:
    """JSON text for the persisted backend; timestamps keep microseconds and offset."""
    return snapshot.model_dump_json()


def deserialize_snapshot(payload: str) -> StatusResponse:
    return StatusResponse.model_validate_json(payload)


class SnapshotCache(ABC):
    """Latest-snapshot cache with a fixed TTL."""

    def __init__(self, ttl: timedelta = DEFAULT_CACHE_TTL, clock: Clock = utcnow):
        if ttl <= timedelta(0):
            raise ConfigurationError("Cache TTL must be positive")
        self.ttl = ttl
        self._clock = clock

    def _stamp(self, snapshot: StatusResponse) -> StatusResponse:
        """Copy of the snapshot with expires_at = now + ttl (never before its timestamp)."""
        now = self._clock()
        base = max(now, as_utc(snapshot.timestamp))
        return snapshot.model_copy(update={"expires_at": base + self.ttl})

    @abstractmethod
    async def get(self) -> Optional[StatusResponse]:
        """Cached snapshot, or None if absent or expired. Expired entries are evicted."""

    @abstractmethod
    async def set(self, snapshot: StatusResponse) -> StatusResponse:
        """Store the snapshot and return it with its computed expires_at."""

    @abstractmethod
    async def delete(self) -> None:
        """Remove the cached snapshot. Removing a missing entry is a no-op."""


class InMemorySnapshotCache(SnapshotCache):
    """Process-local cache."""

    def __init__(self, ttl: timedelta = DEFAULT_CACHE_TTL, clock: Clock = utcnow):
        super().__init__(ttl, clock)
        self._entries: Dict[str, StatusResponse] = {}

    async def get(self) -> Optional[StatusResponse]:
        entry = self._entries.get(CACHE_KEY)
        if entry is None:
            return None

        if self._clock() > as_utc(entry.expires_at):
            self._entries.pop(CACHE_KEY, None)
            return None

        return entry

    async def set(self, snapshot: StatusResponse) -> StatusResponse:
        stored = self._stamp(snapshot)
        self._entries[CACHE_KEY] = stored
        return stored

    async def delete(self) -> None:
        self._entries.pop(CACHE_KEY, None)


class DatabaseSnapshotCache(SnapshotCache):
    """Cache persisted in the `cache_entries` table.

    Keeps a short-lived in-process shadow copy so repeated reads of a
    still-valid entry do not hit the database.
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker],
        ttl: timedelta = DEFAULT_CACHE_TTL,
        clock: Clock = utcnow,
        shadow_ttl: timedelta = DEFAULT_SHADOW_TTL,
    ):
        if session_factory is None:
            raise ConfigurationError("Database snapshot cache requires a database session factory")
        super().__init__(ttl, clock)
        self._session_factory = session_factory
        self._shadow_ttl = shadow_ttl
        self._shadow: Optional[Tuple[StatusResponse, datetime]] = None

    def _shadow_hit(self, now: datetime) -> Optional[StatusResponse]:
        if self._shadow is None:
            return None
        snapshot, trusted_until = self._shadow
        if now > trusted_until or now > as_utc(snapshot.expires_at):
            self._shadow = None
            return None
        return snapshot

    def _remember(self, snapshot: StatusResponse, now: datetime):
        self._shadow = (snapshot, now + self._shadow_ttl)

    async def get(self) -> Optional[StatusResponse]:
        now = self._clock()
        cached = self._shadow_hit(now)
        if cached is not None:
            return cached

        try:
            async with self._session_factory() as session:
                result = await session.execute(select(CacheEntry).where(CacheEntry.key == CACHE_KEY))
                entry = result.scalar_one_or_none()
                if entry is None:
                    return None

                if now > as_utc(entry.expires_at):
                    # Only evict what is still expired; a concurrent refresh wins
                    await session.execute(
                        delete(CacheEntry).where(
                            CacheEntry.key == CACHE_KEY,
                            CacheEntry.expires_at < to_naive_utc(now),
                        )
                    )
                    await retry_on_lock(session.commit)
                    return None

                snapshot = deserialize_snapshot(entry.payload)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read cached status: {e}") from e

        self._remember(snapshot, now)
        return snapshot

    async def set(self, snapshot: StatusResponse) -> StatusResponse:
        stored = self._stamp(snapshot)
        try:
            async with self._session_factory() as session:
                await session.merge(CacheEntry(
                    key=CACHE_KEY,
                    payload=serialize_snapshot(stored),
                    expires_at=to_naive_utc(stored.expires_at),
                ))
                await retry_on_lock(session.commit)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to write cached status: {e}") from e

        self._remember(stored, self._clock())
        return stored

    async def delete(self) -> None:
        self._shadow = None
        try:
            async with self._session_factory() as session:
                await session.execute(delete(CacheEntry).where(CacheEntry.key == CACHE_KEY))
                await retry_on_lock(session.commit)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to delete cached status: {e}") from e
