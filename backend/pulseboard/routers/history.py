"""History API - paginated records, stats, chart tracks and cleanup."""
from fastapi import APIRouter, Depends, Path, Query, Request

from ..dependencies import apply_cache_headers, get_monitor_service, get_services
from ..schemas.monitor import MONITOR_ID_PATTERN
from ..services.downsampler import DEFAULT_STRATEGY, AggregationStrategy
from ..services.monitor_service import DEFAULT_HISTORY_LIMIT, MonitorService

router = APIRouter(prefix="/api", tags=["history"])

MAX_LIMIT = 1000
MAX_BUCKETS = 365
DEFAULT_BUCKETS = 90


@router.get("/history", dependencies=[Depends(apply_cache_headers)])
async def get_all_history(
    limit: int = Query(DEFAULT_HISTORY_LIMIT, ge=1, le=MAX_LIMIT),
    offset: int = Query(0, ge=0),
    service: MonitorService = Depends(get_monitor_service),
):
    """History for every monitor."""
    histories = await service.get_all_histories(limit, offset)
    return {"success": True, "data": histories}


@router.get("/history/{monitor_id}", dependencies=[Depends(apply_cache_headers)])
async def get_monitor_history(
    monitor_id: str = Path(..., pattern=MONITOR_ID_PATTERN),
    limit: int = Query(DEFAULT_HISTORY_LIMIT, ge=1, le=MAX_LIMIT),
    offset: int = Query(0, ge=0),
    service: MonitorService = Depends(get_monitor_service),
):
    """History page for one monitor."""
    history = await service.get_monitor_history(monitor_id, limit, offset)
    return {"success": True, "data": history}


@router.get("/history/{monitor_id}/stats")
async def get_monitor_stats(
    monitor_id: str = Path(..., pattern=MONITOR_ID_PATTERN),
    limit: int = Query(DEFAULT_HISTORY_LIMIT, ge=1, le=MAX_LIMIT),
    service: MonitorService = Depends(get_monitor_service),
):
    """Uptime and latency stats over the most recent records."""
    stats = await service.get_monitor_stats(monitor_id, limit)
    return {"success": True, "data": stats}


@router.get("/history/{monitor_id}/track", dependencies=[Depends(apply_cache_headers)])
async def get_monitor_track(
    monitor_id: str = Path(..., pattern=MONITOR_ID_PATTERN),
    buckets: int = Query(DEFAULT_BUCKETS, ge=1, le=MAX_BUCKETS),
    strategy: AggregationStrategy = Query(DEFAULT_STRATEGY),
    service: MonitorService = Depends(get_monitor_service),
):
    """Downsampled chart buckets, exactly `buckets` long."""
    track = await service.get_track(monitor_id, buckets, strategy)
    return {"success": True, "data": track}


@router.delete("/history/{monitor_id}")
async def clear_monitor_history(
    monitor_id: str = Path(..., pattern=MONITOR_ID_PATTERN),
    service: MonitorService = Depends(get_monitor_service),
):
    """Delete all history for one monitor."""
    await service.clear_history(monitor_id)
    return {"success": True, "message": f"History for monitor {monitor_id} has been cleared"}


@router.get("/cleanup/status")
async def get_cleanup_status(request: Request):
    """State of the periodic retention cleanup."""
    services = get_services(request)
    status = services.monitor_service.cleanup_status(services.config.cleanup_interval_minutes)
    return {"success": True, "data": status}


@router.post("/cleanup")
async def run_cleanup(service: MonitorService = Depends(get_monitor_service)):
    """Trim history older than the retention window now."""
    removed = await service.run_cleanup()
    return {"success": True, "data": {"removed": removed}}
