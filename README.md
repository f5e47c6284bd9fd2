# tsbench

Building blocks for benchmarking the query side of time-series databases:
timing HTTP and Cassandra queries, keeping latency statistics, and writing the
results to an InfluxDB server as line protocol.

## Modules

- `tsbench.report`: line-protocol `Point`, `Tag` and `Field`, and a `Collector`
  that batches points and posts them to an InfluxDB 1.x server
  (`Collector(host, db_name, user, password)`) or a 2.x bucket
  (`new_collector_v2(host, org_id, bucket_id, auth_token)`). Failures and
  unexpected status codes raise `CollectorError`.
- `tsbench.result`: `report_query_result` and `report_load_result` build one point
  with the common tags of a `QueryReportParams` or `LoadReportParams` (hostname,
  server URL, database type, item limit, workers, plus your own tags), add the
  min/mean/max times and rates, totals and duration, and any extra `ExtraVal`
  fields (int or float), then send it. `escape` escapes tag values.
- `tsbench.telemetry`: `TelemetryRunner` (also returned by `telemetry_run_async`)
  sends submitted points on a background thread in batches of `batch_size`,
  skipping the first `skip_n`, optionally echoing each batch to stderr. `close()`,
  or leaving the `with` block, flushes what is left and raises any send error.
- `tsbench.stats`: `StatGroup` (streaming min, max, mean, sum, count),
  `TimedStatGroup` (mean and median over a trailing time window, with a history
  of averages per worker count and `find_history_item_below`), `TrendStat` and
  `SimpleRegression`.
- `tsbench.timeutil`: `TimeInterval` (UTC, start inclusive, end exclusive, with
  `overlaps`), `truncate_time` and `bucket_time_intervals`.
- `tsbench.aggregators`: `get_aggregator("min" | "max" | "avg")`.
- `tsbench.cassandra`: `HLQuery` turns into a query plan that aggregates either on
  the server (one aggregating CQL query per time bucket) or on the client (one
  raw scan, rows bucketed by time). `HLQueryExecutor.do` plans and runs a query
  and returns the planning and request lag in milliseconds.
- `tsbench.http_client`: `HTTPClient.do(query, options)` sends a `Query` to
  `host/path`, returns its latency in milliseconds, and raises `QueryError` (with
  `lag` and `status_code`) unless the answer is 200 OK. With
  `HTTPClientOptions` it prints debug lines at levels 1 to 5 and can pretty-print
  JSON responses. `HTTPClientPool` and `HTTPClientPools` hand out pre-created,
  pinged clients per host.
- `tsbench.opentsdb`: `OpenTSDBClient`, and `filter_response`, which keeps only the
  data points within a query's nanosecond range and renders their timestamps as
  UTC RFC 3339 strings.
- `tsbench.void_server`: an IPv4 HTTP server that answers every request with
  `204 No Content`, for measuring what the client costs on its own.

## Installation

```
pip install .
```

## Example: recording statistics

```python
from tsbench.stats import StatGroup

group = StatGroup()
for latency_ms in (12.0, 8.5, 20.1):
    group.push(latency_ms)
print(group.min, group.mean, group.max, group.count)
```

## Example: sending a point

```python
from tsbench.report import Collector, Point

collector = Collector("http://localhost:8086", "database_benchmarks", "", "")
collector.create_database()

point = Point("benchmarks_telemetry", 0)
point.add_tag("client_type", "query")
point.add_float_field("query_response_time_mean", 4.2)

collector.put(point)
collector.prep_batch()
collector.send_batch()
```

## Example: timing an HTTP query

```python
from tsbench.http_client import HTTPClient, HTTPClientOptions, Query

with HTTPClient("http://localhost:8086") as client:
    query = Query(human_label="ping", method="GET", path="ping")
    lag_ms = client.do(query, HTTPClientOptions(debug=1))
```

## The void server

```
tsbench-void-server --addr :8080
```

It listens on the given `host:port` (an empty host means all interfaces) and
answers every request with status 204.

## What it does not do

There is no benchmark command: nothing here reads encoded queries from stdin,
runs workers concurrently or ramps their number up. You drive the clients and
statistics from your own code. `tsbench.cassandra` ships no database driver; it
expects a session object with an `execute(statement, parameters)` method that
yields rows.

## Running the tests

```
pip install ".[test]"
pytest
```