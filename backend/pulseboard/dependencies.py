"""FastAPI dependencies resolving the services built at startup."""
from fastapi import Request, Response

from .container import Services
from .services.edge_cache import aligned_cache_control
from .services.monitor_service import MonitorService


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_monitor_service(request: Request) -> MonitorService:
    return get_services(request).monitor_service


def apply_cache_headers(request: Request, response: Response):
    """Cache-Control aligned to the next scheduled check cycle."""
    config = get_services(request).config
    response.headers["Cache-Control"] = aligned_cache_control(
        refresh_interval_ms=config.check_interval_seconds * 1000,
        grace_ms=config.edge_cache_grace_ms,
    )
