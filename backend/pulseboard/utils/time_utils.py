"""UTC helpers shared by the stores, cache and downsampler."""
from datetime import datetime, timedelta, timezone

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive values (as read back from the database) or convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_naive_utc(value: datetime) -> datetime:
    """Naive UTC for storage in DateTime columns."""
    return as_utc(value).replace(tzinfo=None)


def to_epoch_ms(value: datetime) -> int:
    return (as_utc(value) - EPOCH) // timedelta(milliseconds=1)


def from_epoch_ms(value: float) -> datetime:
    return EPOCH + timedelta(milliseconds=value)


def floor_to_interval(value: datetime, interval_ms: int) -> datetime:
    """Floor a timestamp to a multiple of interval_ms since the epoch."""
    ms = to_epoch_ms(value)
    return from_epoch_ms((ms // interval_ms) * interval_ms)
