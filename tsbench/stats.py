"""Streaming latency statistics, a moving-window average and a response-time trend."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta


def _divide(numerator: float, denominator: float) -> float:
    """Divide like IEEE floats do, giving NaN or an infinity instead of raising."""
    if denominator == 0:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)
    return numerator / denominator


@dataclass
class Stat:
    """One labelled measurement, in milliseconds."""

    label: str = ""
    value: float = 0.0


@dataclass
class StatGroup:
    """Simple streaming statistics over pushed values."""

    min: float = 0.0
    max: float = 0.0
    mean: float = 0.0
    sum: float = 0.0
    count: int = 0

    def push(self, n: float) -> None:
        if self.count == 0:
            self.min = self.max = self.mean = self.sum = n
            self.count = 1
            return
        if n < self.min:
            self.min = n
        if n > self.max:
            self.max = n
        self.sum += n
        total = self.mean * self.count + n
        self.mean = total / (self.count + 1)
        self.count += 1

    def __str__(self) -> str:
        return (
            f"min: {self.min:f}, max: {self.max:f}, mean: {self.mean:f}, "
            f"count: {self.count}, sum: {self.sum:f}"
        )


@dataclass(frozen=True)
class HistoryItem:
    """A moving average together with the number of workers it was measured with."""

    value: float
    workers: int


class TimedStatGroup:
    """Average and median over the values pushed within a trailing time window."""

    def __init__(self, max_duration: timedelta, max_trend_samples: int) -> None:
        self.max_duration = max_duration
        self._stats: list[tuple[datetime, float]] = []
        self._last_avg = 0.0
        self._last_median = 0.0
        self.trend = TrendStat(max_trend_samples, True)
        self.history: list[HistoryItem] = []

    @property
    def avg(self) -> float:
        """The average computed by the last update."""
        return self._last_avg

    @property
    def median(self) -> float:
        """The median computed by the last update."""
        return self._last_median

    def push(self, timestamp: datetime, value: float) -> None:
        self._stats.append((timestamp, value))

    def update_avg(self, now: datetime, workers: int) -> tuple[float, float]:
        """Drop values older than the window and recompute average and median."""
        cutoff = now - self.max_duration
        self._stats = [stat for stat in self._stats if stat[0] > cutoff]
        values = [value for _, value in self._stats]
        if values:
            self._last_avg = sum(values) / len(values)
            self._last_median = sorted(values)[len(values) // 2]
        else:
            self._last_avg = math.nan
            self._last_median = math.nan
        self.history.append(HistoryItem(self._last_avg, workers))
        self.trend.add(self._last_avg)
        return self._last_avg, self._last_median

    def find_history_item_below(self, value: float) -> HistoryItem | None:
        """Return the latest history item below ``value`` whose successor is not."""
        pairs = list(zip(self.history, self.history[1:]))
        for current, following in reversed(pairs):
            if current.value < value and following.value >= value:
                return current
        return None


class TrendStat:
    """Linear trend of the most recent samples, fitted once five are present."""

    _MIN_SAMPLES = 5

    def __init__(self, size: int, skip_first: bool) -> None:
        print(f"Trend statistics using {size} samples")
        self.size = size
        self.skip_first = skip_first
        self.slope = 0.0
        self.intercept = 0.0
        self._x = [float(i) for i in range(size)]
        self._y: list[float] = []

    def add(self, y: float) -> None:
        """Add a sample in milliseconds and refit the trend."""
        if not self._y and self.skip_first:
            self.skip_first = False
            return
        y = y / 1000
        if len(self._y) < self.size:
            self._y.append(y)
            if len(self._y) < self._MIN_SAMPLES:
                return
        else:
            if self.size < 1:
                raise ValueError("trend window must hold at least one sample")
            del self._y[0]
            self._y.append(y)

        regression = SimpleRegression()
        base = self._y[0]
        for x, value in zip(self._x, self._y):
            regression.update(x, value - base)
        self.slope = regression.slope()
        self.intercept = (regression.intercept() + base) * 1000


@dataclass
class SimpleRegression:
    """Streaming least-squares regression, optionally forced through the origin."""

    sum_x: float = 0.0
    sum_xx: float = 0.0
    sum_y: float = 0.0
    sum_yy: float = 0.0
    sum_xy: float = 0.0
    n: float = 0.0
    x_bar: float = 0.0
    y_bar: float = 0.0
    has_intercept: bool = False

    def update(self, x: float, y: float) -> None:
        if self.n == 0:
            self.x_bar = x
            self.y_bar = y
        elif self.has_intercept:
            fact1 = 1.0 + self.n
            fact2 = self.n / (1.0 + self.n)
            dx = x - self.x_bar
            dy = y - self.y_bar
            self.sum_xx += dx * dx * fact2
            self.sum_yy += dy * dy * fact2
            self.sum_xy += dx * dy * fact2
            self.x_bar += dx / fact1
            self.y_bar += dy / fact1
        if not self.has_intercept:
            self.sum_xx += x * x
            self.sum_yy += y * y
            self.sum_xy += x * y
        self.sum_x += x
        self.sum_y += y
        self.n += 1

    def slope(self) -> float:
        if self.n < 2:
            return math.nan
        return _divide(self.sum_xy, self.sum_xx)

    def intercept(self) -> float:
        if not self.has_intercept:
            return 0.0
        return (self.sum_y - self.slope() * self.sum_x) / self.n