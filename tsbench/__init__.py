"""Query timing, latency statistics and InfluxDB result reporting for time-series benchmarks."""

__version__ = "0.1.0"