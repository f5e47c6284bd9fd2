"""Time intervals and group-by-time bucketing."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

_ZERO_AWARE = datetime(1, 1, 1, tzinfo=timezone.utc)
_ZERO_NAIVE = datetime(1, 1, 1)


def _to_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


@dataclass(frozen=True, order=True)
class TimeInterval:
    """A span of time with an inclusive start and an exclusive end, kept in UTC.

    Naive datetimes are taken to be UTC.
    """

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        start = _to_utc(self.start)
        end = _to_utc(self.end)
        if end < start:
            raise ValueError("bad interval: end is before start")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    def overlaps(self, other: TimeInterval) -> bool:
        """Whether the two intervals share any time."""
        if self.end == other.start or other.end == self.start:
            return False
        return (
            (self.start <= other.start and other.end <= self.end)
            or (self.start <= other.start <= self.end)
            or (self.start <= other.end <= self.end)
            or (other.start <= self.start and self.end <= other.end)
        )


def truncate_time(moment: datetime, window: timedelta) -> datetime:
    """Round ``moment`` down to a multiple of ``window`` since the year 1.

    A non-positive window leaves the moment unchanged.
    """
    if window <= timedelta(0):
        return moment
    zero = _ZERO_NAIVE if moment.tzinfo is None else _ZERO_AWARE
    return moment - (moment - zero) % window


def bucket_time_intervals(
    start: datetime, end: datetime, window: timedelta
) -> list[TimeInterval]:
    """Split the span from ``start`` to ``end`` into consecutive window-sized buckets."""
    if _to_utc(end) < _to_utc(start):
        raise ValueError("bad bucket range: end is before start")
    if window <= timedelta(0):
        raise ValueError("bucket window must be positive")
    buckets: list[TimeInterval] = []
    current = truncate_time(start, window)
    while current < end:
        buckets.append(TimeInterval(current, current + window))
        current += window
    return buckets