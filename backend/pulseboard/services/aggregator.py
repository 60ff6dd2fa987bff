"""Aggregator - folds probe outcomes into monitor, category and overall status.

Worst case wins at every level so the dashboard never under-reports an
outage. Everything here is pure: no I/O, no clock reads except where a
`now` argument is omitted.
"""
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from ..schemas.monitor import CategoryConfig, MonitorCatalog, MonitorConfig
from ..schemas.status import CategoryStatus, CheckOutcome, MonitorStatus, StatusLevel, StatusResponse
from ..utils.time_utils import utcnow


def aggregate_status(statuses: Iterable[StatusLevel]) -> StatusLevel:
    """Combine statuses with down > degraded > up precedence.

    - any down -> down
    - else any degraded -> degraded
    - else all up -> up
    - otherwise (empty, or up mixed with unknown) -> unknown
    """
    statuses = list(statuses)
    if not statuses:
        return "unknown"
    if "down" in statuses:
        return "down"
    if "degraded" in statuses:
        return "degraded"
    if all(s == "up" for s in statuses):
        return "up"
    return "unknown"


def build_monitor_status(config: MonitorConfig, outcome: CheckOutcome) -> MonitorStatus:
    """Merge a monitor's static config with its latest outcome."""
    return MonitorStatus(
        id=config.id,
        label=config.label,
        category=config.category,
        url=config.url,
        status=outcome.status,
        status_code=outcome.status_code,
        response_time_ms=outcome.response_time_ms,
        error_message=outcome.error_message,
        last_checked_at=outcome.checked_at,
    )


def unchecked_monitor_status(config: MonitorConfig) -> MonitorStatus:
    """Placeholder for a monitor with no outcome in this cycle."""
    return MonitorStatus(
        id=config.id,
        label=config.label,
        category=config.category,
        url=config.url,
        status="unknown",
    )


def calculate_category_status(category: CategoryConfig, monitors: List[MonitorStatus]) -> CategoryStatus:
    """Rollup for the monitors belonging to one category."""
    members = [m for m in monitors if m.category == category.id]
    return CategoryStatus(
        id=category.id,
        label=category.label,
        status=aggregate_status(m.status for m in members),
        item_count=len(members),
        up_count=sum(1 for m in members if m.status == "up"),
        degraded_count=sum(1 for m in members if m.status == "degraded"),
        down_count=sum(1 for m in members if m.status == "down"),
    )


def build_status_response(
    catalog: MonitorCatalog,
    monitors: List[MonitorStatus],
    ttl: timedelta,
    now: Optional[datetime] = None,
) -> StatusResponse:
    """Assemble the full snapshot; categories keep catalog order."""
    timestamp = now or utcnow()
    categories = [calculate_category_status(category, monitors) for category in catalog.categories]
    return StatusResponse(
        overall_status=aggregate_status(c.status for c in categories),
        categories=categories,
        monitors=monitors,
        timestamp=timestamp,
        expires_at=timestamp + ttl,
    )


def aggregate(
    catalog: MonitorCatalog,
    outcomes: List[CheckOutcome],
    ttl: timedelta,
    now: Optional[datetime] = None,
) -> StatusResponse:
    """Build a snapshot from one check cycle's outcomes.

    Every catalog monitor appears, in catalog order; one without an outcome
    is reported as unknown. Outcomes for monitors not in the catalog are
    ignored.
    """
    by_id: Dict[str, CheckOutcome] = {o.monitor_id: o for o in outcomes}
    monitors = [
        build_monitor_status(item, by_id[item.id]) if item.id in by_id else unchecked_monitor_status(item)
        for item in catalog.items
    ]
    return build_status_response(catalog, monitors, ttl, now)


def default_status_response(ttl: timedelta, now: Optional[datetime] = None) -> StatusResponse:
    """Snapshot returned when nothing could be obtained: unknown, no monitors."""
    timestamp = now or utcnow()
    return StatusResponse(
        overall_status="unknown",
        categories=[],
        monitors=[],
        timestamp=timestamp,
        expires_at=timestamp + ttl,
    )
