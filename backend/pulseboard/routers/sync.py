"""Sync channel - WebSocket endpoint shared by open dashboard views."""
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..services.sync import CACHE_UPDATED

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["sync"])


@router.websocket("/sync")
async def sync_channel(websocket: WebSocket):
    """Views receive `cache-updated` messages here.

    A view may send `{"type": "refresh"}` to fetch a new snapshot (which
    is also broadcast to the other views when it changed), or relay a
    `cache-updated` payload it fetched itself. Relayed payloads must parse
    as a dashboard snapshot; anything else is dropped.
    """
    services = websocket.app.state.services
    sync = services.sync
    channel = services.channel

    await channel.connect(websocket)
    try:
        if sync.latest is not None:
            await websocket.send_json({"type": CACHE_UPDATED, "payload": sync.latest})

        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                logger.debug("Ignoring sync frame that is not JSON")
                continue
            kind = message.get("type") if isinstance(message, dict) else None

            if kind == "refresh":
                snapshot = await sync.refetch_and_broadcast(
                    services.monitor_service.get_dashboard,
                    exclude=websocket,
                )
                await websocket.send_json({"type": CACHE_UPDATED, "payload": snapshot.model_dump(mode="json")})
            elif kind == CACHE_UPDATED:
                payload = sync.handle_message(message)
                if payload is not None:
                    await channel.broadcast({"type": CACHE_UPDATED, "payload": payload}, exclude=websocket)
            else:
                logger.debug(f"Ignoring sync message of type {kind!r}")
    except WebSocketDisconnect:
        pass
    finally:
        await channel.disconnect(websocket)
