"""WebSocket connection manager - the channel shared by open dashboard views."""
import asyncio
import json
import logging
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks connected dashboard views and broadcasts messages to them."""

    def __init__(self):
        self.active_connections: Set[WebSocket] = set()
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket):
        """Accept a new WebSocket connection."""
        await websocket.accept()
        async with self._lock:
            self.active_connections.add(websocket)
        logger.info(f"View connected. Total views: {len(self.active_connections)}")

    async def disconnect(self, websocket: WebSocket):
        """Remove a disconnected WebSocket."""
        async with self._lock:
            self.active_connections.discard(websocket)
        logger.info(f"View disconnected. Total views: {len(self.active_connections)}")

    async def broadcast(self, message: Dict[str, Any], exclude: Optional[WebSocket] = None) -> int:
        """Send a message to every view except `exclude`. Returns how many received it."""
        message_json = json.dumps(message, default=str)

        # Copy the set to avoid modification during iteration
        async with self._lock:
            connections = [ws for ws in self.active_connections if ws is not exclude]

        if not connections:
            return 0

        # Send to all connections, removing any that fail
        delivered = 0
        disconnected = []
        for websocket in connections:
            try:
                await websocket.send_text(message_json)
                delivered += 1
            except Exception as e:
                logger.debug(f"Failed to send to view: {e}")
                disconnected.append(websocket)

        if disconnected:
            async with self._lock:
                for ws in disconnected:
                    self.active_connections.discard(ws)

        return delivered

    @property
    def connection_count(self) -> int:
        """Return the number of active connections."""
        return len(self.active_connections)
