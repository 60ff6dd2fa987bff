"""API routers."""
from .history import router as history_router
from .status import router as status_router
from .sync import router as sync_router

__all__ = ["history_router", "status_router", "sync_router"]
