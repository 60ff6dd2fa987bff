"""
Tests for the history stores.

Both backends run through the same behavioural checks via the
`store` fixture; backend-specific details are tested separately.
"""
from datetime import timedelta

import pytest

from pulseboard.errors import ConfigurationError
from pulseboard.services.history import (
    DatabaseHistoryStore,
    InMemoryHistoryStore,
    calculate_history_stats,
    history_key,
)

from conftest import make_outcome

pytestmark = pytest.mark.anyio


@pytest.fixture(params=["memory", "database"])
def store(request, clock, session_factory):
    if request.param == "memory":
        return InMemoryHistoryStore(clock)
    return DatabaseHistoryStore(session_factory, clock)


async def save_series(store, clock, statuses, monitor_id="homepage", step=timedelta(minutes=5)):
    """Save one record per status, `step` apart, ending at clock()."""
    start = clock() - step * (len(statuses) - 1)
    saved = []
    for i, status in enumerate(statuses):
        outcome = make_outcome(monitor_id, status, checked_at=start + step * i, response_time_ms=100 + i)
        saved.append(await store.save_record(monitor_id, outcome))
    return saved


class TestSaveAndRead:

    async def test_records_come_back_oldest_first(self, store, clock):
        saved = await save_series(store, clock, ["up", "down", "up"])

        records = await store.get_records("homepage")

        assert [r.id for r in records] == [r.id for r in saved]
        assert await store.get_total_count("homepage") == 3

    async def test_out_of_order_saves_are_sorted(self, store, clock):
        late = await store.save_record("homepage", make_outcome("homepage", checked_at=clock()))
        early = await store.save_record(
            "homepage", make_outcome("homepage", checked_at=clock() - timedelta(hours=1))
        )

        records = await store.get_records("homepage")

        assert [r.id for r in records] == [early.id, late.id]

    async def test_equal_timestamps_keep_insertion_order(self, store, clock):
        first = await store.save_record("homepage", make_outcome("homepage", "up"))
        second = await store.save_record("homepage", make_outcome("homepage", "down"))

        records = await store.get_records("homepage")

        assert [r.id for r in records] == [first.id, second.id]

    async def test_saving_is_not_deduplicated(self, store):
        outcome = make_outcome("homepage")
        await store.save_record("homepage", outcome)
        await store.save_record("homepage", outcome)

        assert await store.get_total_count("homepage") == 2

    async def test_record_fields(self, store, clock):
        outcome = make_outcome("homepage", "degraded", status_code=404, error_message="HTTP 404")

        record = await store.save_record("homepage", outcome)
        [loaded] = await store.get_records("homepage")

        assert loaded == record
        assert loaded.recorded_at == clock()
        assert loaded.bucketed_at == clock().replace(minute=0, second=0, microsecond=0)
        assert loaded.status_code == 404
        assert loaded.error_message == "HTTP 404"

    async def test_monitors_are_isolated(self, store):
        await store.save_record("homepage", make_outcome("homepage"))

        assert await store.get_records("blog") == []
        assert await store.get_total_count("blog") == 0


class TestPagination:

    async def test_limit_returns_newest(self, store, clock):
        saved = await save_series(store, clock, ["up"] * 10)

        records = await store.get_records("homepage", limit=3)

        assert [r.id for r in records] == [r.id for r in saved[-3:]]

    async def test_offset_skips_newest(self, store, clock):
        saved = await save_series(store, clock, ["up"] * 10)

        records = await store.get_records("homepage", limit=3, offset=2)

        assert [r.id for r in records] == [r.id for r in saved[5:8]]

    async def test_offset_past_end(self, store, clock):
        await save_series(store, clock, ["up"] * 3)

        assert await store.get_records("homepage", limit=5, offset=10) == []

    async def test_zero_limit(self, store, clock):
        await save_series(store, clock, ["up"] * 3)

        assert await store.get_records("homepage", limit=0) == []


class TestDelete:

    async def test_delete_records(self, store):
        await store.save_record("homepage", make_outcome("homepage"))
        await store.save_record("blog", make_outcome("blog"))

        await store.delete_records("homepage")
        await store.delete_records("never-saved")

        assert await store.get_total_count("homepage") == 0
        assert await store.get_total_count("blog") == 1


class TestCleanup:

    async def test_removes_only_records_older_than_retention(self, store, clock):
        await store.save_record("homepage", make_outcome("homepage", checked_at=clock() - timedelta(days=8)))
        await store.save_record("homepage", make_outcome("homepage", checked_at=clock() - timedelta(days=7)))
        kept = await store.save_record("homepage", make_outcome("homepage", checked_at=clock() - timedelta(days=1)))

        removed = await store.cleanup(7)

        assert removed == 1
        records = await store.get_records("homepage")
        assert len(records) == 2
        assert records[-1].id == kept.id
        assert all(r.recorded_at >= clock() - timedelta(days=7) for r in records)

    async def test_cleanup_is_idempotent(self, store, clock):
        await store.save_record("homepage", make_outcome("homepage", checked_at=clock() - timedelta(days=10)))

        assert await store.cleanup(7) == 1
        assert await store.cleanup(7) == 0

    async def test_hard_expiry_caps_long_retention(self, store, clock):
        await store.save_record("homepage", make_outcome("homepage", checked_at=clock() - timedelta(days=31)))
        await store.save_record("homepage", make_outcome("homepage", checked_at=clock() - timedelta(days=20)))

        removed = await store.cleanup(90)

        assert removed == 1
        assert await store.get_total_count("homepage") == 1

    async def test_negative_retention_rejected(self, store):
        with pytest.raises(ValueError):
            await store.cleanup(-1)


class TestHardExpiry:

    async def test_expired_records_are_hidden_before_cleanup(self, store, clock):
        await store.save_record("homepage", make_outcome("homepage", checked_at=clock() - timedelta(days=29)))
        await store.save_record("homepage", make_outcome("homepage", checked_at=clock()))

        clock.advance(days=2)

        assert await store.get_total_count("homepage") == 1
        assert len(await store.get_records("homepage")) == 1


class TestInMemoryStore:

    async def test_cleanup_drops_empty_keys(self, clock):
        store = InMemoryHistoryStore(clock)
        await store.save_record("homepage", make_outcome("homepage", checked_at=clock() - timedelta(days=10)))

        await store.cleanup(7)

        assert history_key("homepage") not in store._histories

    def test_history_key(self):
        assert history_key("public-api") == "history:public-api"


def test_database_store_requires_session_factory(clock):
    with pytest.raises(ConfigurationError):
        DatabaseHistoryStore(None, clock)


class TestHistoryStats:

    def _records(self, statuses, times):
        return [
            make_outcome("homepage", status, response_time_ms=t)
            for status, t in zip(statuses, times)
        ]

    async def test_half_up(self, clock):
        store = InMemoryHistoryStore(clock)
        for outcome in self._records(["up", "up", "down", "down"], [100, 200, 300, 401]):
            await store.save_record("homepage", outcome)

        stats = calculate_history_stats("homepage", await store.get_records("homepage"))

        assert stats.uptime == 50
        assert (stats.up_count, stats.down_count, stats.degraded_count) == (2, 2, 0)
        assert stats.total_records == 4
        assert stats.avg_response_time == 250  # 250.25 rounds down
        assert (stats.min_response_time, stats.max_response_time) == (100, 401)

    def test_empty(self):
        stats = calculate_history_stats("homepage", [])

        assert stats.total_records == 0
        assert stats.uptime == 0
        assert stats.avg_response_time == 0
        assert stats.min_response_time is None
