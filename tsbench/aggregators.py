"""Client-side aggregators that mirror server-side aggregation functions."""

from __future__ import annotations

from abc import ABC, abstractmethod


class Aggregator(ABC):
    """Merges a stream of values in constant space."""

    def __init__(self) -> None:
        self.value = 0.0
        self.count = 0

    @abstractmethod
    def put(self, n: float) -> None:
        """Add a value."""

    @abstractmethod
    def get(self) -> float:
        """Return the aggregate so far."""


class MaxAggregator(Aggregator):
    """The maximum of the values, or 0 when there are none."""

    def put(self, n: float) -> None:
        if n > self.value or self.count == 0:
            self.value = n
        self.count += 1

    def get(self) -> float:
        return self.value if self.count else 0.0


class MinAggregator(Aggregator):
    """The minimum of the values, or 0 when there are none."""

    def put(self, n: float) -> None:
        if n < self.value or self.count == 0:
            self.value = n
        self.count += 1

    def get(self) -> float:
        return self.value


class AvgAggregator(Aggregator):
    """The mean of the values, or 0 when there are none."""

    def put(self, n: float) -> None:
        self.value += n
        self.count += 1

    def get(self) -> float:
        return self.value / self.count if self.count else 0.0


_AGGREGATORS: dict[str, type[Aggregator]] = {
    "min": MinAggregator,
    "max": MaxAggregator,
    "avg": AvgAggregator,
}


def get_aggregator(label: str) -> Aggregator:
    """Return a fresh aggregator for ``min``, ``max`` or ``avg``."""
    try:
        return _AGGREGATORS[label]()
    except KeyError:
        raise ValueError("invalid aggregation specifier") from None