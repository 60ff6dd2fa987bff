"""Composition root - builds the service graph once at startup.

The storage backend is chosen here and nowhere else; everything below
receives its cache and history store by constructor.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine

from .config import Settings, get_database_url
from .database import create_engine_for_url, create_session_factory
from .errors import ConfigurationError
from .schemas.monitor import load_catalog
from .services.cache import DatabaseSnapshotCache, InMemorySnapshotCache
from .services.checker import CheckerService
from .services.history import DatabaseHistoryStore, InMemoryHistoryStore
from .services.monitor_service import MonitorService
from .services.scheduler import SchedulerService
from .services.sync import CrossViewSync
from .services.websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ("memory", "database")


@dataclass
class Services:
    """Everything the app needs, built once per process."""
    config: Settings
    monitor_service: MonitorService
    channel: ConnectionManager
    sync: CrossViewSync
    scheduler: SchedulerService
    engine: Optional[AsyncEngine] = None


def build_services(config: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> Services:
    """Build the service graph for the configured backend.

    Raises ConfigurationError when the catalog or the backend binding is
    missing; production never falls back to in-memory storage.
    """
    if config.storage_backend not in STORAGE_BACKENDS:
        raise ConfigurationError(
            f"Unknown storage backend {config.storage_backend!r} (expected one of {', '.join(STORAGE_BACKENDS)})"
        )

    catalog = load_catalog(config.monitors_file)
    status_ttl = timedelta(seconds=config.status_ttl_seconds)
    bucket_interval = timedelta(minutes=config.bucket_interval_minutes)

    engine = None
    if config.storage_backend == "database":
        if config.environment == "production" and not config.database_url:
            raise ConfigurationError("DATABASE_URL is required for the database backend in production")
        engine = create_engine_for_url(get_database_url(config))
        session_factory = create_session_factory(engine)
        cache = DatabaseSnapshotCache(session_factory, ttl=status_ttl)
        history = DatabaseHistoryStore(session_factory, bucket_interval=bucket_interval)
    else:
        if config.environment == "production":
            logger.warning("Using in-memory storage in production; history is lost on restart")
        cache = InMemorySnapshotCache(ttl=status_ttl)
        history = InMemoryHistoryStore(bucket_interval=bucket_interval)

    monitor_service = MonitorService(
        catalog,
        CheckerService(timeout_ms=config.check_timeout_ms, transport=transport),
        cache,
        history,
        timeout_ms=config.check_timeout_ms,
        status_ttl=status_ttl,
        retention_days=config.retention_days,
    )

    channel = ConnectionManager()
    sync = CrossViewSync(channel)
    scheduler = SchedulerService(
        monitor_service,
        check_interval_seconds=config.check_interval_seconds,
        cleanup_interval_minutes=config.cleanup_interval_minutes,
        sync=sync,
    )

    logger.info(
        f"Loaded {len(catalog.items)} monitors in {len(catalog.categories)} categories "
        f"({config.storage_backend} storage)"
    )
    return Services(
        config=config,
        monitor_service=monitor_service,
        channel=channel,
        sync=sync,
        scheduler=scheduler,
        engine=engine,
    )
