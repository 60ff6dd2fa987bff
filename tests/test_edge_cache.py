"""Tests for aligned Cache-Control lifetimes."""
import pytest

from pulseboard.services.edge_cache import (
    aligned_cache_control,
    aligned_ttl_seconds,
    cache_control_header,
    next_refresh_boundary,
)

FIVE_MINUTES_MS = 5 * 60 * 1000


class TestNextRefreshBoundary:

    @pytest.mark.parametrize("now_ms", [0, 1, 299_999, 300_000, 300_001, 1_760_875_200_123])
    def test_strictly_after_now(self, now_ms):
        boundary = next_refresh_boundary(now_ms, FIVE_MINUTES_MS)

        assert boundary > now_ms
        assert boundary % FIVE_MINUTES_MS == 0
        assert boundary - now_ms <= FIVE_MINUTES_MS

    def test_on_boundary_moves_to_next(self):
        assert next_refresh_boundary(600_000, FIVE_MINUTES_MS) == 900_000

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            next_refresh_boundary(1000, 0)


class TestAlignedTtl:

    def test_counts_to_boundary_plus_grace(self):
        # 60s into a 5 minute window, 30s grace
        assert aligned_ttl_seconds(60_000, FIVE_MINUTES_MS, 30_000) == 270

    @pytest.mark.parametrize("now_ms", [299_001, 299_999, 599_500])
    def test_never_below_one_second(self, now_ms):
        assert aligned_ttl_seconds(now_ms, FIVE_MINUTES_MS, 0) >= 1

    def test_tiny_interval(self):
        assert aligned_ttl_seconds(10_500, 1000, 0) == 1


def test_cache_control_header():
    assert cache_control_header(42) == (
        "public, max-age=42, s-maxage=42, stale-while-revalidate=42"
    )


def test_aligned_cache_control_at_fixed_time():
    assert aligned_cache_control(FIVE_MINUTES_MS, 0, now_ms=0) == cache_control_header(300)
