"""HTTP query client, with per-host pools of pre-warmed clients."""

from __future__ import annotations

import json
import sys
import time
from collections import OrderedDict
from dataclasses import dataclass
from urllib.parse import parse_qs

import requests
from requests.adapters import HTTPAdapter

_HTTP_OK = 200
_USER_AGENT = "query_benchmarker"
_MAX_IDLE_CONNS_PER_HOST = 100

DEFAULT_DIAL_TIMEOUT = 15.0
DEFAULT_READ_TIMEOUT = 300.0
DEFAULT_WRITE_TIMEOUT = 300.0


class QueryError(Exception):
    """Raised when a query request fails or does not return 200 OK."""

    def __init__(self, message: str, lag: float = 0.0, status_code: int | None = None) -> None:
        super().__init__(message)
        self.lag = lag
        self.status_code = status_code


@dataclass
class Query:
    """HTTP request data, typically decoded from the benchmark input."""

    human_label: str = ""
    human_description: str = ""
    method: str = "GET"
    path: str = ""
    body: bytes = b""
    id: int = 0

    def __str__(self) -> str:
        body = self.body.decode("utf-8", errors="replace")
        return (
            f"ID: {self.id}, HumanLabel: {self.human_label}, "
            f"HumanDescription: {self.human_description}, Method: {self.method}, "
            f"Path: {self.path}, Body:{body}"
        )


@dataclass
class HTTPClientOptions:
    """Options used when calling :meth:`HTTPClient.do`."""

    debug: int = 0
    pretty_print_responses: bool = False


def _pretty_json(text: str, prefix: str) -> str | None:
    """Indent JSON with two spaces, starting every line but the first with ``prefix``."""
    try:
        document = json.loads(text, object_pairs_hook=OrderedDict)
    except ValueError:
        return None
    indented = json.dumps(document, indent=2, ensure_ascii=False)
    return indented.replace("\n", "\n" + prefix)


class HTTPClient:
    """A reusable HTTP client that runs queries against one host and times them."""

    def __init__(
        self,
        host: str,
        debug: int = 0,
        dial_timeout: float = DEFAULT_DIAL_TIMEOUT,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        write_timeout: float = DEFAULT_WRITE_TIMEOUT,
        content_type: str | None = None,
    ) -> None:
        self.host = host
        self.debug = debug
        self.dial_timeout = dial_timeout
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout
        self.content_type = content_type
        self._session = requests.Session()
        adapter = HTTPAdapter(pool_maxsize=_MAX_IDLE_CONNS_PER_HOST)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)
        self._session.headers["User-Agent"] = _USER_AGENT

    def __enter__(self) -> HTTPClient:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _uri(self, path: str) -> str:
        return f"{self.host}/{path}"

    def do(self, query: Query, options: HTTPClientOptions | None = None) -> float:
        """Send ``query`` and return its latency in milliseconds."""
        uri = self._uri(query.path)
        headers = {"Content-Type": self.content_type} if self.content_type else {}
        failure: requests.RequestException | None = None
        response: requests.Response | None = None

        start = time.perf_counter()
        try:
            response = self._session.request(
                query.method,
                uri,
                data=query.body,
                headers=headers,
                timeout=(self.dial_timeout, self.read_timeout),
            )
        except requests.RequestException as exc:
            failure = exc
        lag = (time.perf_counter() - start) * 1e3

        debug = options.debug if options is not None else 0
        if debug == 5 and (response is None or response.status_code != _HTTP_OK):
            values = parse_qs(uri)
            print(f"debug: url: {uri}, path {query.path}, parsed url - {values}")

        if failure is not None:
            raise QueryError(f"request failed: {failure}", lag) from failure
        assert response is not None

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
                prefix = f"ID {query.id}: "
                pretty = _pretty_json(body, prefix)
                sys.stderr.write(f"{prefix}{pretty if pretty is not None else body}\n")
        return lag

    @staticmethod
    def _print_debug(query: Query, level: int, lag: float, body: str) -> None:
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

    def ping(self) -> None:
        """Send ``GET /ping`` to open a connection; failures are ignored."""
        try:
            self._session.get(
                f"{self.host}/ping", timeout=(self.dial_timeout, self.read_timeout)
            )
        except requests.RequestException:
            pass

    def close(self) -> None:
        self._session.close()


class HTTPClientPool:
    """Pre-created, pinged clients for one host, handed out until depleted."""

    def __init__(
        self,
        host: str,
        clients: int,
        debug: int = 0,
        dial_timeout: float = DEFAULT_DIAL_TIMEOUT,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        write_timeout: float = DEFAULT_WRITE_TIMEOUT,
    ) -> None:
        self.host = host
        self.debug = debug
        self.dial_timeout = dial_timeout
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout
        self._clients: list[HTTPClient] = []
        print(f"Creating HTTP client pool for {host} ", end="")
        for _ in range(clients):
            client = self._new_client()
            client.ping()
            self._clients.append(client)
            print(".", end="")
        print()

    @property
    def available(self) -> int:
        """How many pre-created clients remain."""
        return len(self._clients)

    def _new_client(self) -> HTTPClient:
        return HTTPClient(
            self.host, self.debug, self.dial_timeout, self.read_timeout, self.write_timeout
        )

    def cached_or_new(self) -> HTTPClient:
        """Take a pre-created client, or make a new one if none remain."""
        if self._clients:
            return self._clients.pop()
        print(f"HTTP client pool [{self.host}] depleted, creating new HTTPClient")
        return self._new_client()


class HTTPClientPools:
    """Client pools keyed by host; empty when no clients per host are requested."""

    def __init__(
        self,
        clients_per_host: int,
        urls: list[str],
        debug: int = 0,
        dial_timeout: float = DEFAULT_DIAL_TIMEOUT,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        write_timeout: float = DEFAULT_WRITE_TIMEOUT,
    ) -> None:
        self.debug = debug
        self.dial_timeout = dial_timeout
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout
        self.pools: dict[str, HTTPClientPool] | None = None
        if clients_per_host <= 0:
            return
        self.pools = {
            url: HTTPClientPool(
                url, clients_per_host, debug, dial_timeout, read_timeout, write_timeout
            )
            for url in urls
        }

    def get(self, host: str) -> HTTPClient:
        """Return a client for ``host``, from its pool when pools exist."""
        if self.pools is None:
            return HTTPClient(
                host, self.debug, self.dial_timeout, self.read_timeout, self.write_timeout
            )
        try:
            pool = self.pools[host]
        except KeyError:
            raise KeyError(f"no HTTP client pool for host {host}") from None
        return pool.cached_or_new()