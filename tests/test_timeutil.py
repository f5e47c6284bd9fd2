from datetime import datetime, timedelta, timezone

import pytest

from tsbench.timeutil import TimeInterval, bucket_time_intervals, truncate_time

UTC = timezone.utc
HOUR = timedelta(hours=1)


def at(hour, minute=0, second=0):
    return datetime(2016, 1, 1, hour, minute, second, tzinfo=UTC)


def test_interval_rejects_end_before_start():
    with pytest.raises(ValueError):
        TimeInterval(at(2), at(1))


def test_interval_converts_to_utc():
    plus_two = timezone(timedelta(hours=2))
    start = datetime(2016, 1, 1, 2, tzinfo=plus_two)
    interval = TimeInterval(start, start + HOUR)
    assert interval.start.tzinfo == UTC
    assert interval.start == start
    assert interval.end - interval.start == HOUR


def test_interval_treats_naive_as_utc():
    interval = TimeInterval(datetime(2016, 1, 1), datetime(2016, 1, 2))
    assert interval.start == datetime(2016, 1, 1, tzinfo=UTC)


def test_adjacent_intervals_do_not_overlap():
    first = TimeInterval(at(0), at(1))
    second = TimeInterval(at(1), at(2))
    assert first.overlaps(second) is False
    assert second.overlaps(first) is False


@pytest.mark.parametrize(
    "other",
    [
        TimeInterval(at(1), at(2)),
        TimeInterval(at(0), at(3)),
        TimeInterval(at(0), at(2)),
        TimeInterval(at(2), at(4)),
    ],
)
def test_overlapping_intervals(other):
    interval = TimeInterval(at(1), at(3))
    assert interval.overlaps(other) is True
    assert other.overlaps(interval) is True


def test_disjoint_intervals_do_not_overlap():
    assert TimeInterval(at(0), at(1)).overlaps(TimeInterval(at(2), at(3))) is False


def test_truncate_to_hour():
    assert truncate_time(at(12, 34, 56), HOUR) == at(12)


def test_truncate_invariants_for_odd_window():
    window = timedelta(minutes=7)
    moment = at(13, 5, 9)
    result = truncate_time(moment, window)
    assert result <= moment < result + window
    assert (result - datetime(1, 1, 1, tzinfo=UTC)) % window == timedelta(0)


def test_truncate_non_positive_window_is_identity():
    moment = at(12, 34, 56)
    assert truncate_time(moment, timedelta(0)) == moment


def test_truncate_keeps_timezone():
    plus_two = timezone(timedelta(hours=2))
    moment = datetime(2016, 1, 1, 5, 30, tzinfo=plus_two)
    result = truncate_time(moment, HOUR)
    assert result.tzinfo == plus_two
    assert result <= moment < result + HOUR


def test_buckets_cover_range():
    start, end = at(0, 30), at(3)
    buckets = bucket_time_intervals(start, end, HOUR)
    assert buckets[0].start == truncate_time(start, HOUR)
    assert buckets[-1].start < end <= buckets[-1].end
    assert all(b.end - b.start == HOUR for b in buckets)
    assert all(a.end == b.start for a, b in zip(buckets, buckets[1:]))
    assert sorted(reversed(buckets)) == buckets


def test_buckets_empty_on_boundary():
    assert bucket_time_intervals(at(1), at(1), HOUR) == []


def test_buckets_reject_reversed_range():
    with pytest.raises(ValueError):
        bucket_time_intervals(at(2), at(1), HOUR)


def test_buckets_reject_zero_window():
    with pytest.raises(ValueError):
        bucket_time_intervals(at(1), at(2), timedelta(0))