"""Report load and query benchmark results as points to an InfluxDB server."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from tsbench.report import Collector, Point, new_collector_v2

_ESCAPES = {
    "\t": r"\t",
    "\n": r"\n",
    "\f": r"\f",
    "\r": r"\r",
    ",": r"\,",
    " ": r"\ ",
    "=": r"\=",
}
_ESCAPE_TABLE = str.maketrans(_ESCAPES)


@dataclass
class ReportParams:
    """Parameters shared by load and query reports."""

    db_type: str = ""
    report_database_name: str = ""
    report_host: str = ""
    report_user: str = ""
    report_password: str = ""
    report_tags: list[tuple[str, str]] = field(default_factory=list)
    hostname: str = ""
    destination_url: str = ""
    report_org_id: str = ""
    report_auth_token: str = ""
    workers: int = 0
    item_limit: int = 0


@dataclass
class LoadReportParams(ReportParams):
    """Parameters specific to bulk load reports."""

    is_gzip: bool = False
    batch_size: int = 0


@dataclass
class QueryReportParams(ReportParams):
    """Parameters specific to bulk query reports."""

    burn_in: int = 0


@dataclass(frozen=True)
class ExtraVal:
    """An additional named field for a report."""

    name: str
    value: Any


def escape(s: str) -> str:
    """Escape characters that are special in line-protocol tag values."""
    return s.translate(_ESCAPE_TABLE)


def _add_extra_vals(point: Point, extra_vals: tuple[ExtraVal, ...]) -> None:
    for extra in extra_vals:
        value = extra.value
        if isinstance(value, bool):
            raise TypeError(f"unsupported type {type(value).__name__}")
        if isinstance(value, float):
            point.add_float_field(extra.name, value)
        elif isinstance(value, int):
            point.add_int_field(extra.name, value)
        else:
            raise TypeError(f"unsupported type {type(value).__name__}")


def init_report(params: ReportParams, measurement: str) -> tuple[Collector, Point]:
    """Create the collector and a point carrying the common report tags."""
    if params.report_org_id == "":
        collector = Collector(
            params.report_host,
            params.report_database_name,
            params.report_user,
            params.report_password,
        )
    else:
        collector = new_collector_v2(
            params.report_host,
            params.report_org_id,
            params.report_database_name,
            params.report_auth_token,
        )
    collector.create_database()

    point = Point(measurement, time.time_ns())
    for key, value in params.report_tags:
        point.add_tag(key, value)
    point.add_tag("client_hostname", params.hostname)
    point.add_tag("server_url", params.destination_url.replace(",", "\\,"))
    if params.db_type:
        point.add_tag("database_type", params.db_type)
    point.add_tag("item_limit", str(params.item_limit))
    point.add_tag("workers", str(params.workers))
    return collector, point


def finish_report(collector: Collector, point: Point) -> None:
    """Send the point and clear it."""
    collector.put(point)
    collector.prep_batch()
    try:
        collector.send_batch()
    finally:
        point.reset()


def report_load_result(
    params: LoadReportParams,
    total_items: int,
    value_rate: float,
    input_speed: float,
    load_duration: timedelta,
    *args: ExtraVal,
) -> None:
    """Send the result of a bulk load run."""
    collector, point = init_report(params, "load_benchmarks")
    point.add_tag("gzip", "true" if params.is_gzip else "false")
    point.add_tag("batch_size", str(params.batch_size))

    point.add_int_field("total_items", total_items)
    point.add_float_field("values_rate", value_rate)
    point.add_float_field("input_rate", input_speed)
    point.add_float_field("duration", load_duration.total_seconds())
    _add_extra_vals(point, args)
    finish_report(collector, point)


def _add_time_and_rate(point: Point, name: str, query_time: float) -> None:
    point.add_float_field(f"{name}_time", query_time)
    point.add_float_field(f"{name}_rate", 1000 / query_time if query_time > 0 else -1)


def report_query_result(
    params: QueryReportParams,
    query_name: str,
    min_query_time: float,
    mean_query_time: float,
    max_query_time: float,
    total_queries: int,
    query_duration: timedelta,
    *args: ExtraVal,
) -> None:
    """Send the result of a bulk query run."""
    collector, point = init_report(params, "query_benchmarks")
    point.add_tag("burn_in", str(int(params.burn_in)))
    point.add_tag("query_name", escape(query_name))

    _add_time_and_rate(point, "min", min_query_time)
    _add_time_and_rate(point, "mean", mean_query_time)
    _add_time_and_rate(point, "max", max_query_time)
    point.add_int_field("total_items", total_queries)
    point.add_float_field("duration", query_duration.total_seconds())
    _add_extra_vals(point, args)
    finish_report(collector, point)