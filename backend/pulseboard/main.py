"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, settings
from .container import Services, build_services
from .database import close_db, init_db
from .errors import MonitorNotFoundError, PulseboardError
from .routers import history_router, status_router, sync_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _error_body(code: str, message: str, **extra) -> dict:
    return {"success": False, "error": {"code": code, "message": message, **extra}}


def register_exception_handlers(app: FastAPI):
    """Map application errors to the JSON envelope."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        issues = [
            {
                "path": ".".join(str(part) for part in error["loc"]),
                "message": error["msg"],
                "code": error["type"],
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content=_error_body("VALIDATION_ERROR", "Invalid input", issues=issues),
        )

    @app.exception_handler(MonitorNotFoundError)
    async def not_found_handler(request: Request, exc: MonitorNotFoundError):
        return JSONResponse(status_code=404, content=_error_body(exc.code, str(exc)))

    @app.exception_handler(PulseboardError)
    async def application_error_handler(request: Request, exc: PulseboardError):
        logger.error(f"{exc.code} on {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content=_error_body(exc.code, str(exc)))


def create_app(config: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Services are built in the lifespan unless passed in, so a bad catalog
    or backend binding stops startup.
    """
    config = config or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan - startup and shutdown."""
        app.state.services = services or build_services(config)
        active = app.state.services
        logger.info(f"Starting Pulseboard ({active.config.storage_backend} storage)")

        if active.engine is not None:
            await init_db(active.engine)
            logger.info("Database initialized")

        if active.config.scheduler_enabled:
            active.scheduler.start()

        yield

        # Shutdown
        active.scheduler.stop()
        if active.engine is not None:
            await close_db(active.engine)
        logger.info("Shutdown complete")

    app = FastAPI(
        title="Pulseboard",
        description="Uptime status and history for a fixed set of HTTP endpoints",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS middleware for dashboard frontends
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(status_router)
    app.include_router(history_router)
    app.include_router(sync_router)

    # Health check endpoint
    @app.get("/health")
    async def health_check(request: Request):
        active = request.app.state.services
        return {
            "status": "healthy",
            "storage": active.config.storage_backend,
            "scheduler": active.scheduler.running,
            "views": active.channel.connection_count,
        }

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.web_port)
