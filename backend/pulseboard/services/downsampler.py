"""Downsampler - compresses a monitor's history into a fixed number of chart buckets.

The display range runs from the oldest record (or the start of the
retention window, whichever is later) to now (or the newest record, if it
is later). The range is cut into equal slots; each slot's records are
folded into one status using the chosen strategy. Empty slots are
placeholders, flagged `is_future` when their midpoint has not happened yet.

Output depends only on the arguments: `now` is read once, before the loop.
"""
import math
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Literal, Optional, Sequence

from ..schemas.history import HistoryRecord, TrackBucket
from ..schemas.status import StatusLevel
from ..utils.time_utils import as_utc, from_epoch_ms, to_epoch_ms, utcnow
from .aggregator import aggregate_status

AggregationStrategy = Literal["worst", "latest", "majority"]

STRATEGIES = ("worst", "latest", "majority")

# A single bad check colours the whole bucket
DEFAULT_STRATEGY: AggregationStrategy = "worst"

NOT_MEASURED = "Not measured"

STATUS_TOOLTIPS = {
    "up": "Operational",
    "degraded": "Maintenance",
    "down": "Downtime",
    "unknown": NOT_MEASURED,
}

TOOLTIP_COLORS = {
    "Operational": "#10b981",
    "Maintenance": "#f59e0b",
    "Downtime": "#ef4444",
    NOT_MEASURED: "#9ca3af",
}


@dataclass(frozen=True)
class Bucket:
    """One fixed-width time slot."""
    label: str
    status: StatusLevel
    is_placeholder: bool
    is_future: bool = False


def format_date_short(value: datetime) -> str:
    return as_utc(value).strftime("%Y-%m-%d")


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def aggregate_bucket(statuses: Sequence[StatusLevel], strategy: AggregationStrategy = DEFAULT_STRATEGY) -> StatusLevel:
    """Fold the statuses of one slot (in chronological order) into one."""
    if not statuses:
        return "unknown"

    if strategy == "worst":
        return aggregate_status(statuses)
    if strategy == "latest":
        return statuses[-1]
    if strategy == "majority":
        # most_common keeps first-encountered order among equal counts
        return Counter(statuses).most_common(1)[0][0]

    raise ValueError(f"Unknown aggregation strategy: {strategy}")


def placeholder_buckets(count: int, now: datetime, retention_days: int) -> List[Bucket]:
    """Evenly spaced 'not measured' buckets across the retention window, oldest first."""
    days_per_bucket = retention_days / count
    buckets = []
    for i in range(count):
        days_ago = _round_half_up(retention_days - (i + 1) * days_per_bucket)
        buckets.append(Bucket(
            label=format_date_short(now - timedelta(days=days_ago)),
            status="unknown",
            is_placeholder=True,
        ))
    return buckets


def downsample(
    records: Sequence[HistoryRecord],
    bucket_count: int,
    strategy: AggregationStrategy = DEFAULT_STRATEGY,
    *,
    now: Optional[datetime] = None,
    retention_days: int = 7,
) -> List[Bucket]:
    """Compress records into exactly `bucket_count` buckets.

    Records older than the start of the display range (outside the
    retention window) are dropped. Records at the very end of the range
    land in the last bucket.
    """
    if bucket_count < 1:
        raise ValueError("bucket_count must be at least 1")
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown aggregation strategy: {strategy}")

    now = as_utc(now or utcnow())

    if not records:
        return placeholder_buckets(bucket_count, now, retention_days)

    ordered = sorted(records, key=lambda r: as_utc(r.recorded_at))

    now_ms = to_epoch_ms(now)
    retention_ms = retention_days * 24 * 60 * 60 * 1000
    start_ms = max(to_epoch_ms(ordered[0].recorded_at), now_ms - retention_ms)
    end_ms = max(to_epoch_ms(ordered[-1].recorded_at), now_ms)
    slot_ms = (end_ms - start_ms) / bucket_count

    slots: List[List[HistoryRecord]] = [[] for _ in range(bucket_count)]
    for record in ordered:
        record_ms = to_epoch_ms(record.recorded_at)
        if record_ms < start_ms:
            continue
        if slot_ms > 0:
            index = min(math.floor((record_ms - start_ms) / slot_ms), bucket_count - 1)
        else:
            index = bucket_count - 1
        slots[index].append(record)

    buckets = []
    for index, group in enumerate(slots):
        if not group:
            center_ms = start_ms + (index + 0.5) * slot_ms
            buckets.append(Bucket(
                label=format_date_short(from_epoch_ms(center_ms)),
                status="unknown",
                is_placeholder=True,
                is_future=center_ms > now_ms,
            ))
            continue

        buckets.append(Bucket(
            label=format_date_short(group[-1].recorded_at),
            status=aggregate_bucket([r.status for r in group], strategy),
            is_placeholder=False,
        ))

    return buckets


def to_track_data(buckets: Sequence[Bucket]) -> List[TrackBucket]:
    """Chart entries: date, tooltip label, color, future flag."""
    track = []
    for bucket in buckets:
        tooltip = NOT_MEASURED if bucket.is_placeholder else STATUS_TOOLTIPS[bucket.status]
        track.append(TrackBucket(
            date=bucket.label,
            tooltip=tooltip,
            color=TOOLTIP_COLORS[tooltip],
            is_future=bucket.is_future,
        ))
    return track
