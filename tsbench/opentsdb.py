"""Query client for OpenTSDB that prunes returned points to the requested range."""

from __future__ import annotations

import json
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import requests

from tsbench.http_client import HTTPClientOptions, Query, QueryError

_HTTP_OK = 200
_USER_AGENT = "query_benchmarker"
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_NANOS_PER_MILLI = 10**6


@dataclass
class OpenTSDBQuery(Query):
    """An HTTP query together with the time range, in nanoseconds, it asks for."""

    start_timestamp: int = 0
    end_timestamp: int = 0


def _nanos_to_millis(nanos: int) -> int:
    """Integer division by one million, truncating toward zero."""
    if nanos < 0:
        return -((-nanos) // _NANOS_PER_MILLI)
    return nanos // _NANOS_PER_MILLI


def _rfc3339(millis: int) -> str:
    try:
        moment = _EPOCH + timedelta(milliseconds=millis)
    except OverflowError as exc:
        raise ValueError(f"timestamp out of range: {millis}") from exc
    return (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}Z"
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _plain_number(value: Any) -> Any:
    """Render integral floats as integers, the way JSON numbers are re-encoded."""
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return int(value)
    return value


def _lookup(document: dict[str, Any], key: str) -> Any:
    if key in document:
        return document[key]
    for name, value in document.items():
        if name.lower() == key:
            return value
    return None


def _filter_points(points: Any, start_millis: int, end_millis: int) -> list[list[Any]]:
    if points is None:
        return []
    if not isinstance(points, list):
        raise ValueError("'dps' is not a list of points")
    kept = []
    for point in points:
        if not isinstance(point, list) or not point:
            raise ValueError(f"malformed data point: {point!r}")
        if not _is_number(point[0]):
            raise ValueError(f"data point timestamp is not a number: {point[0]!r}")
        timestamp_millis = int(point[0])
        if start_millis <= timestamp_millis <= end_millis:
            if len(point) < 2:
                raise ValueError(f"data point has no value: {point!r}")
            kept.append([_rfc3339(timestamp_millis), _plain_number(point[1])])
    return kept


def filter_response(
    body: str | bytes, start_timestamp: int, end_timestamp: int
) -> dict[str, Any] | None:
    """Keep only the points of each output within the nanosecond range, inclusive.

    Timestamps become UTC RFC 3339 strings; everything except the outputs'
    data points is dropped. A JSON ``null`` body gives ``None``.
    """
    try:
        document = json.loads(body)
    except ValueError as exc:
        raise ValueError(f"invalid JSON response: {exc}") from exc
    if document is None:
        return None
    if not isinstance(document, dict):
        raise ValueError("response is not a JSON object")

    outputs = _lookup(document, "outputs")
    if outputs is None:
        return {"outputs": None}
    if not isinstance(outputs, list):
        raise ValueError("'outputs' is not a list")

    start_millis = _nanos_to_millis(start_timestamp)
    end_millis = _nanos_to_millis(end_timestamp)
    filtered = []
    for output in outputs:
        if output is None:
            output = {}
        if not isinstance(output, dict):
            raise ValueError("an output is not a JSON object")
        points = _lookup(output, "dps")
        filtered.append({"dps": _filter_points(points, start_millis, end_millis)})
    return {"outputs": filtered}


class OpenTSDBClient:
    """A reusable HTTP client that runs OpenTSDB queries against one host."""

    def __init__(self, host: str, debug: int = 0) -> None:
        self.host = host
        self.debug = debug
        self._session = requests.Session()
        self._session.headers["User-Agent"] = _USER_AGENT

    def __enter__(self) -> OpenTSDBClient:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def do(self, query: OpenTSDBQuery, options: HTTPClientOptions | None = None) -> float:
        """Send ``query`` and return its latency in milliseconds."""
        uri = f"{self.host}/{query.path}"
        start = time.perf_counter()
        try:
            response = self._session.request(query.method, uri, data=query.body)
        except requests.RequestException as exc:
            lag = (time.perf_counter() - start) * 1e3
            raise QueryError(f"request failed: {exc}", lag) from exc
        lag = (time.perf_counter() - start) * 1e3

        body = response.content.decode("utf-8", errors="replace")
        if response.status_code != _HTTP_OK:
            raise QueryError(
                f"Invalid write response (status {response.status_code}): {body}",
                lag,
                response.status_code,
            )

        if options is not None:
            self._print_debug(query, options.debug, lag, body)
            if options.pretty_print_responses:
                try:
                    payload = filter_response(
                        response.content, query.start_timestamp, query.end_timestamp
                    )
                except ValueError as exc:
                    raise QueryError(str(exc), lag, response.status_code) from exc
                prefix = f"ID {query.id}: "
                pretty = json.dumps(payload, indent=2, ensure_ascii=False)
                sys.stderr.write(prefix + pretty.replace("\n", "\n" + prefix) + "\n")
        return lag

    @staticmethod
    def _print_debug(query: OpenTSDBQuery, level: int, lag: float, body: str) -> None:
        if level == 1:
            print(f"debug: {query.human_label} in {lag:7.2f}ms", file=sys.stderr)
        elif level in (2, 3, 4):
            print(
                f"debug: {query.human_label} in {lag:7.2f}ms -- {query.human_description}",
                file=sys.stderr,
            )
            if level >= 3:
                print(f"debug:   request: {query}", file=sys.stderr)
            if level == 4:
                print(f"debug:   response: {body}", file=sys.stderr)

    def close(self) -> None:
        self._session.close()