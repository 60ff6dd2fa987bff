"""Status API - current snapshot and forced refresh."""
from fastapi import APIRouter, Depends, Path

from ..dependencies import apply_cache_headers, get_monitor_service
from ..schemas.monitor import MONITOR_ID_PATTERN
from ..services.monitor_service import MonitorService

router = APIRouter(prefix="/api/status", tags=["status"])


@router.get("", dependencies=[Depends(apply_cache_headers)])
async def get_status(service: MonitorService = Depends(get_monitor_service)):
    """Get the current status (cached, or a fresh check cycle)."""
    status = await service.get_status()
    return {"success": True, "data": status}


@router.post("/refresh")
async def refresh_status(service: MonitorService = Depends(get_monitor_service)):
    """Re-check every monitor now."""
    status = await service.check_all_monitors()
    return {"success": True, "data": status, "message": "Status refreshed successfully"}


@router.get("/monitors/{monitor_id}", dependencies=[Depends(apply_cache_headers)])
async def get_monitor_detail(
    monitor_id: str = Path(..., pattern=MONITOR_ID_PATTERN),
    service: MonitorService = Depends(get_monitor_service),
):
    """Latest status of one monitor."""
    monitor = await service.get_monitor_detail(monitor_id)
    return {"success": True, "data": monitor}
