"""Tests for history downsampling into chart buckets."""
from datetime import timedelta

import pytest

from pulseboard.schemas.history import HistoryRecord
from pulseboard.services.downsampler import (
    NOT_MEASURED,
    TOOLTIP_COLORS,
    Bucket,
    aggregate_bucket,
    downsample,
    format_date_short,
    placeholder_buckets,
    to_track_data,
)

from conftest import NOW


def record(status="up", age=timedelta(0), index=0):
    at = NOW - age
    return HistoryRecord(
        id=f"r{index}",
        monitor_id="homepage",
        status=status,
        recorded_at=at,
        bucketed_at=at,
    )


def hourly(statuses):
    """One record per hour, the last one at NOW."""
    count = len(statuses)
    return [record(s, timedelta(hours=count - 1 - i), i) for i, s in enumerate(statuses)]


class TestBucketCount:

    @pytest.mark.parametrize("bucket_count", [1, 7, 90])
    def test_no_records(self, bucket_count):
        buckets = downsample([], bucket_count, now=NOW)

        assert len(buckets) == bucket_count
        assert all(b.is_placeholder and b.status == "unknown" for b in buckets)

    @pytest.mark.parametrize("bucket_count", [1, 7, 90])
    def test_single_record(self, bucket_count):
        buckets = downsample([record("down")], bucket_count, now=NOW)

        assert len(buckets) == bucket_count
        assert buckets[-1].status == "down"
        assert not buckets[-1].is_placeholder

    @pytest.mark.parametrize("bucket_count", [1, 7, 90, 365])
    def test_many_records(self, bucket_count):
        records = hourly(["up", "down", "degraded"] * 50)

        assert len(downsample(records, bucket_count, now=NOW)) == bucket_count

    def test_rejects_zero_buckets(self):
        with pytest.raises(ValueError):
            downsample([], 0, now=NOW)

    def test_rejects_unknown_strategy(self):
        with pytest.raises(ValueError):
            downsample([record()], 5, "average", now=NOW)


class TestStrategies:

    def test_worst(self):
        assert aggregate_bucket(["up", "down", "up"], "worst") == "down"
        assert aggregate_bucket(["up", "degraded"], "worst") == "degraded"

    def test_latest(self):
        assert aggregate_bucket(["down", "down", "up"], "latest") == "up"

    def test_majority(self):
        assert aggregate_bucket(["up", "down", "up"], "majority") == "up"

    def test_majority_tie_goes_to_first_seen(self):
        assert aggregate_bucket(["down", "up", "up", "down"], "majority") == "down"

    def test_empty_is_unknown(self):
        assert aggregate_bucket([], "latest") == "unknown"

    def test_single_bucket_uses_strategy(self):
        records = hourly(["up", "down", "up"])

        assert downsample(records, 1, "worst", now=NOW)[0].status == "down"
        assert downsample(records, 1, "latest", now=NOW)[0].status == "up"
        assert downsample(records, 1, "majority", now=NOW)[0].status == "up"


class TestRange:

    def test_deterministic(self):
        records = hourly(["up", "degraded", "down", "up"] * 10)

        first = downsample(records, 12, now=NOW)
        second = downsample(list(reversed(records)), 12, now=NOW)

        assert first == second

    def test_records_outside_retention_are_dropped(self):
        records = [record("down", timedelta(days=10), 0), record("up", timedelta(hours=1), 1)]

        buckets = downsample(records, 7, "worst", now=NOW, retention_days=7)

        assert "down" not in [b.status for b in buckets]

    def test_newest_record_lands_in_last_bucket(self):
        records = hourly(["up"] * 23 + ["down"])

        buckets = downsample(records, 6, "worst", now=NOW)

        assert buckets[-1].status == "down"
        assert buckets[-1].label == format_date_short(NOW)

    def test_future_placeholders(self):
        # Newest record is ahead of now, so the range extends past now
        records = [record("up", timedelta(hours=23), 0), record("up", -timedelta(hours=5), 1)]

        buckets = downsample(records, 28, now=NOW)

        assert buckets[0].status == "up"
        assert buckets[-1].status == "up"
        future = [b for b in buckets if b.is_future]
        assert future
        assert all(b.is_placeholder for b in future)
        assert not buckets[0].is_future

    def test_same_instant_records_share_last_bucket(self):
        records = [record("up", index=0), record("down", index=1)]

        buckets = downsample(records, 4, "latest", now=NOW)

        assert [b.is_placeholder for b in buckets] == [True, True, True, False]
        assert buckets[-1].status == "down"


class TestPlaceholders:

    def test_span_retention_window(self):
        buckets = placeholder_buckets(7, NOW, 7)

        assert buckets[0].label == format_date_short(NOW - timedelta(days=6))
        assert buckets[-1].label == format_date_short(NOW)


class TestTrackData:

    def test_maps_tooltips_and_colors(self):
        buckets = [
            Bucket(label="2026-10-18", status="up", is_placeholder=False),
            Bucket(label="2026-10-18", status="degraded", is_placeholder=False),
            Bucket(label="2026-10-19", status="down", is_placeholder=False),
            Bucket(label="2026-10-20", status="unknown", is_placeholder=True, is_future=True),
        ]

        track = to_track_data(buckets)

        assert [t.tooltip for t in track] == ["Operational", "Maintenance", "Downtime", NOT_MEASURED]
        assert track[0].color == TOOLTIP_COLORS["Operational"]
        assert track[-1].is_future
        assert track[-1].date == "2026-10-20"
