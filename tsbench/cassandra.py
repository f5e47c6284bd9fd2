"""Query plans that answer high-level queries against a Cassandra cluster."""

from __future__ import annotations

import enum
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Protocol, Sequence

from tsbench.aggregators import Aggregator, get_aggregator
from tsbench.timeutil import TimeInterval, bucket_time_intervals, truncate_time

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Session(Protocol):
    """Anything that runs a CQL statement with bound parameters and yields rows."""

    def execute(self, statement: str, parameters: Sequence[Any]) -> Iterable[Sequence[Any]]:
        ...


def _utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _unix_nanos(moment: datetime) -> int:
    delta = _utc(moment) - _EPOCH
    return (delta.days * 86400 + delta.seconds) * 10**9 + delta.microseconds * 1000


def _from_unix_nanos(nanos: int) -> datetime:
    return _EPOCH + timedelta(microseconds=nanos // 1000)


class AggregationPlan(enum.IntEnum):
    """Where aggregation of query results takes place."""

    WITH_SERVER_AGGREGATION = 1
    WITHOUT_SERVER_AGGREGATION = 2

    @classmethod
    def from_label(cls, label: str) -> AggregationPlan:
        """Map the labels ``server`` and ``client`` to a plan."""
        choices = {
            "server": cls.WITH_SERVER_AGGREGATION,
            "client": cls.WITHOUT_SERVER_AGGREGATION,
        }
        try:
            return choices[label]
        except KeyError:
            raise ValueError("invalid aggregation plan") from None


@dataclass(frozen=True)
class CQLQuery:
    """A preparable CQL statement with its bound arguments."""

    preparable_query_string: str
    args: tuple[Any, ...]

    def __str__(self) -> str:
        return f"{self.preparable_query_string} {list(self.args)}"


@dataclass(frozen=True)
class CQLResult:
    """An aggregated value for one time interval."""

    interval: TimeInterval
    value: float


def new_cql_query(
    aggr_label: str,
    table_name: str,
    field_name: str,
    tag_condition: str,
    time_start_nanos: int,
    time_end_nanos: int,
) -> CQLQuery:
    """Build a CQL query; an empty aggregation label selects raw rows."""
    if aggr_label == "":
        statement = (
            f"SELECT time, {field_name} FROM {table_name} "
            f"WHERE {tag_condition} AND time >= ? AND time < ?"
        )
    else:
        statement = (
            f"SELECT {aggr_label}({field_name}) FROM {table_name} "
            f"WHERE {tag_condition} AND time >= ? AND time < ?"
        )
    return CQLQuery(statement, (time_start_nanos, time_end_nanos))


@dataclass
class QueryPlanWithServerAggregation:
    """Runs one aggregating query per time bucket on the server."""

    aggregator_label: str
    bucketed_cql_queries: dict[TimeInterval, CQLQuery]

    def execute(self, session: Session, debug: int = 0) -> list[CQLResult]:
        """Run every bucket's query and aggregate its rows."""
        get_aggregator(self.aggregator_label)
        results = []
        for interval, query in self.bucketed_cql_queries.items():
            aggregator = get_aggregator(self.aggregator_label)
            for row in session.execute(query.preparable_query_string, query.args):
                aggregator.put(float(row[0]))
            results.append(CQLResult(interval, aggregator.get()))
        return results

    def debug_queries(self, level: int) -> None:
        if level >= 1:
            print(
                "[qpsa] query with server aggregation plan has "
                f"{len(self.bucketed_cql_queries)} CQLQuery objects"
            )
        if level >= 2:
            for interval, query in self.bucketed_cql_queries.items():
                print(f"[qpsa] CQL:  {interval}, {query}")


@dataclass
class QueryPlanWithoutServerAggregation:
    """Scans raw rows from the server and aggregates them per bucket on the client."""

    aggregators: dict[TimeInterval, Aggregator]
    group_by_duration: timedelta
    time_buckets: list[TimeInterval]
    cql_queries: list[CQLQuery] = field(default_factory=list)

    def execute(self, session: Session, debug: int = 0) -> list[CQLResult]:
        """Run the queries, bucket each row by time, and aggregate every bucket."""
        for query in self.cql_queries:
            if debug == 1:
                print(f"[qp] Query: {query}")
            for timestamp_ns, value in session.execute(
                query.preparable_query_string, query.args
            ):
                start = truncate_time(_from_unix_nanos(int(timestamp_ns)), self.group_by_duration)
                key = TimeInterval(start, start + self.group_by_duration)
                aggregator = self.aggregators.get(key)
                if aggregator is None:
                    raise ValueError(f"row at {start} falls outside every time bucket")
                aggregator.put(float(value))
        return [
            CQLResult(interval, self.aggregators[interval].get())
            for interval in self.time_buckets
        ]

    def debug_queries(self, level: int) -> None:
        if level >= 1:
            print(
                "[qpca] query with client aggregation plan has "
                f"{len(self.cql_queries)} CQLQuery objects"
            )
        if level >= 2:
            for index, query in enumerate(self.cql_queries):
                print(f"[qpca] CQL: {index}, {query}")


QueryPlan = QueryPlanWithServerAggregation | QueryPlanWithoutServerAggregation


@dataclass
class HLQuery:
    """A high-level query as produced by a bulk query generator."""

    human_label: str = ""
    human_description: str = ""
    id: int = 0
    measurement_name: str = ""
    field_name: str = ""
    aggregation_type: str = ""
    time_start: datetime = _EPOCH
    time_end: datetime = _EPOCH
    group_by_duration: timedelta = timedelta(0)
    tags_condition: str = ""

    def __str__(self) -> str:
        return (
            f"ID: {self.id}, HumanLabel: {self.human_label}, "
            f"HumanDescription: {self.human_description}, "
            f"MeasurementName: {self.measurement_name}, FieldName: {self.field_name}, "
            f"AggregationType: {self.aggregation_type}, TimeStart: {self.time_start}, "
            f"TimeEnd: {self.time_end}, GroupByDuration: {self.group_by_duration}, "
            f"TagSets: {self.tags_condition}"
        )

    def force_utc(self) -> None:
        """Rewrite both timestamps in UTC."""
        self.time_start = _utc(self.time_start)
        self.time_end = _utc(self.time_end)

    def to_query_plan_with_server_aggregation(self) -> QueryPlanWithServerAggregation:
        """Build one aggregating query per group-by bucket, clamped to the query range."""
        query_start = _utc(self.time_start)
        query_end = _utc(self.time_end)
        buckets: dict[TimeInterval, CQLQuery] = {}
        for interval in bucket_time_intervals(
            self.time_start, self.time_end, self.group_by_duration
        ):
            start = max(interval.start, query_start)
            end = min(interval.end, query_end)
            buckets[interval] = new_cql_query(
                self.aggregation_type,
                self.measurement_name,
                self.field_name,
                self.tags_condition,
                _unix_nanos(start),
                _unix_nanos(end),
            )
        return QueryPlanWithServerAggregation(self.aggregation_type, buckets)

    def to_query_plan_without_server_aggregation(self) -> QueryPlanWithoutServerAggregation:
        """Build a single raw scan plus one client-side aggregator per bucket."""
        time_buckets = bucket_time_intervals(
            self.time_start, self.time_end, self.group_by_duration
        )
        query = new_cql_query(
            "",
            self.measurement_name,
            self.field_name,
            self.tags_condition,
            _unix_nanos(self.time_start),
            _unix_nanos(self.time_end),
        )
        aggregators = {
            interval: get_aggregator(self.aggregation_type) for interval in time_buckets
        }
        return QueryPlanWithoutServerAggregation(
            aggregators, self.group_by_duration, time_buckets, [query]
        )


@dataclass
class HLQueryExecutorOptions:
    """Options for :meth:`HLQueryExecutor.do`."""

    aggregation_plan: AggregationPlan = AggregationPlan.WITH_SERVER_AGGREGATION
    subquery_parallelism: int = 0
    debug: int = 0
    pretty_print_responses: bool = False


class HLQueryExecutor:
    """Plans and runs high-level queries on a Cassandra session."""

    def __init__(self, session: Session, debug: int = 0) -> None:
        self.session = session
        self.debug = debug

    def do(self, query: HLQuery, options: HLQueryExecutorOptions) -> tuple[float, float]:
        """Plan and run ``query``; return planning and request lag in milliseconds."""
        if options.debug >= 1:
            print(f"[hlqe] Do: {query}")

        plan_start = time.perf_counter()
        if options.aggregation_plan == AggregationPlan.WITH_SERVER_AGGREGATION:
            plan: QueryPlan = query.to_query_plan_with_server_aggregation()
        elif options.aggregation_plan == AggregationPlan.WITHOUT_SERVER_AGGREGATION:
            plan = query.to_query_plan_without_server_aggregation()
        else:
            raise ValueError("invalid aggregation plan option")
        plan_lag_ms = (time.perf_counter() - plan_start) * 1e3

        if options.debug >= 1:
            print(f"[hlqe] query planning took {plan_lag_ms:f}ms")
            plan.debug_queries(options.debug)

        exec_start = time.perf_counter()
        results = plan.execute(self.session, options.debug)
        request_lag_ms = (time.perf_counter() - exec_start) * 1e3

        if options.pretty_print_responses:
            for result in results:
                print(
                    f"ID {query.id}: [{result.interval.start}, {result.interval.end}] "
                    f"-> {result.value:f}",
                    file=sys.stderr,
                )
        return plan_lag_ms, request_lag_ms