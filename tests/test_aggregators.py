import pytest

from tsbench.aggregators import (
    AvgAggregator,
    MaxAggregator,
    MinAggregator,
    get_aggregator,
)


def fill(aggregator, values):
    for value in values:
        aggregator.put(value)
    return aggregator.get()


def test_max_aggregator():
    assert fill(MaxAggregator(), [1.0, 5.0, 3.0]) == 5.0


def test_max_aggregator_all_negative():
    assert fill(MaxAggregator(), [-3.0, -1.0, -2.0]) == -1.0


def test_min_aggregator():
    assert fill(MinAggregator(), [4.0, 1.0, 3.0]) == 1.0


def test_min_aggregator_all_positive():
    assert fill(MinAggregator(), [7.0, 9.0, 8.0]) == 7.0


def test_avg_aggregator():
    assert fill(AvgAggregator(), [1.0, 2.0, 3.0]) == pytest.approx(2.0)


@pytest.mark.parametrize("cls", [MaxAggregator, MinAggregator, AvgAggregator])
def test_empty_aggregators_give_zero(cls):
    assert cls().get() == 0.0


@pytest.mark.parametrize(
    "label, values, expected",
    [
        ("max", [2.0, 9.0, 4.0], 9.0),
        ("min", [2.0, 9.0, 4.0], 2.0),
        ("avg", [6.0, 6.0], 6.0),
    ],
)
def test_get_aggregator_by_label(label, values, expected):
    assert fill(get_aggregator(label), values) == pytest.approx(expected)


def test_get_aggregator_returns_fresh_instances():
    first = get_aggregator("max")
    first.put(10.0)
    second = get_aggregator("max")
    assert second.get() == 0.0
    assert first.get() == 10.0


def test_get_aggregator_rejects_unknown_label():
    with pytest.raises(ValueError, match="invalid aggregation specifier"):
        get_aggregator("median")