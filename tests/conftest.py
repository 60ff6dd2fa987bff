# tests/conftest.py
import json
from datetime import datetime, timedelta, timezone

import pytest

from pulseboard.database import close_db, create_engine_for_url, create_session_factory, init_db
from pulseboard.schemas.monitor import MonitorCatalog
from pulseboard.schemas.status import CheckOutcome

NOW = datetime(2026, 10, 19, 12, 0, 0, 123456, tzinfo=timezone.utc)

CATALOG_DATA = {
    "categories": [
        {"id": "web", "label": "Websites"},
        {"id": "api", "label": "APIs"},
    ],
    "items": [
        {"id": "homepage", "label": "Homepage", "category": "web", "url": "https://home.test/"},
        {"id": "blog", "label": "Blog", "category": "web", "url": "https://blog.test/"},
        {"id": "public-api", "label": "Public API", "category": "api", "url": "https://api.test/health"},
    ],
}


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


def make_outcome(monitor_id: str, status: str = "up", checked_at: datetime = NOW, **kwargs) -> CheckOutcome:
    """CheckOutcome with sensible defaults for tests."""
    defaults = {
        "status_code": 200 if status == "up" else None,
        "response_time_ms": 100,
    }
    defaults.update(kwargs)
    return CheckOutcome(monitor_id=monitor_id, status=status, checked_at=checked_at, **defaults)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalog():
    return MonitorCatalog.model_validate(CATALOG_DATA)


@pytest.fixture
def monitors_file(tmp_path):
    """Catalog written to disk, as the app loads it."""
    path = tmp_path / "monitors.json"
    path.write_text(json.dumps(CATALOG_DATA), encoding="utf-8")
    return str(path)


@pytest.fixture
async def session_factory(tmp_path):
    """Session factory over a fresh SQLite file."""
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'pulseboard.db'}")
    await init_db(engine)
    try:
        yield create_session_factory(engine)
    finally:
        await close_db(engine)
