"""Cross-view sync - share one freshly fetched dashboard snapshot between views.

Best effort only: a view that misses a broadcast refetches on its own
schedule.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence

from fastapi import WebSocket
from pydantic import ValidationError

from ..schemas.history import DashboardSnapshot, HistoryResponse
from .websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)

CACHE_UPDATED = "cache-updated"


def history_signature(histories: Sequence[HistoryResponse]) -> str:
    """Cheap change detector: newest/oldest record time and record count per monitor."""
    parts = []
    for history in histories:
        newest = history.newest_record.isoformat() if history.newest_record else ""
        oldest = history.oldest_record.isoformat() if history.oldest_record else ""
        parts.append(f"{history.monitor_id}:{newest}:{oldest}:{history.total_records}")
    return "|".join(parts)


class CrossViewSync:
    """Holds the latest fetched snapshot and broadcasts it when it changes."""

    def __init__(self, channel: ConnectionManager):
        self.channel = channel
        self.latest: Optional[Dict[str, Any]] = None
        self._last_signature: Optional[str] = None

    async def publish(self, snapshot: DashboardSnapshot, exclude: Optional[WebSocket] = None) -> bool:
        """Update the local copy and broadcast if the history changed.

        Returns True when a broadcast was sent.
        """
        payload = snapshot.model_dump(mode="json")
        self.latest = payload

        signature = history_signature(snapshot.histories)
        if signature == self._last_signature:
            return False

        await self.channel.broadcast({"type": CACHE_UPDATED, "payload": payload}, exclude=exclude)
        self._last_signature = signature
        return True

    async def refetch_and_broadcast(
        self,
        fetch: Callable[[], Awaitable[DashboardSnapshot]],
        exclude: Optional[WebSocket] = None,
    ) -> DashboardSnapshot:
        snapshot = await fetch()
        await self.publish(snapshot, exclude=exclude)
        return snapshot

    def handle_message(self, message: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Adopt a snapshot broadcast by another view.

        Returns the validated payload, or None when the message is not a
        well-formed `cache-updated` snapshot (the local copy is left as is).
        """
        if message.get("type") != CACHE_UPDATED or "payload" not in message:
            return None
        try:
            snapshot = DashboardSnapshot.model_validate(message["payload"])
        except ValidationError as e:
            logger.debug(f"Rejecting malformed {CACHE_UPDATED} payload: {e.error_count()} errors")
            return None
        self.latest = snapshot.model_dump(mode="json")
        return self.latest
