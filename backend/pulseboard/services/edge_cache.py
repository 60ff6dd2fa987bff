"""Edge cache alignment - Cache-Control lifetimes that end at the next refresh.

Intermediary caches expire at the next multiple of the refresh interval
(plus a grace period for the refresh itself), not on a sliding window.
"""
import time
from typing import Optional


def next_refresh_boundary(now_ms: int, refresh_interval_ms: int) -> int:
    """The first multiple of refresh_interval_ms strictly after now_ms."""
    if refresh_interval_ms <= 0:
        raise ValueError("refresh_interval_ms must be positive")
    return (now_ms // refresh_interval_ms + 1) * refresh_interval_ms


def aligned_ttl_seconds(now_ms: int, refresh_interval_ms: int, grace_ms: int = 0) -> int:
    """Seconds until the next refresh boundary plus grace, never less than 1."""
    boundary = next_refresh_boundary(now_ms, refresh_interval_ms)
    return max(1, (boundary + max(0, grace_ms) - now_ms) // 1000)


def cache_control_header(ttl_seconds: int) -> str:
    return (
        f"public, max-age={ttl_seconds}, s-maxage={ttl_seconds}, "
        f"stale-while-revalidate={ttl_seconds}"
    )


def aligned_cache_control(refresh_interval_ms: int, grace_ms: int, now_ms: Optional[int] = None) -> str:
    """Cache-Control value for a response produced now."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return cache_control_header(aligned_ttl_seconds(now_ms, refresh_interval_ms, grace_ms))
