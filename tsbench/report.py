"""Line-protocol points and a collector that ships them to an InfluxDB server."""

from __future__ import annotations

import base64
import enum
import math
from dataclasses import dataclass, field

import requests
from urllib.parse import quote_plus

_HTTP_OK = 200
_HTTP_NO_CONTENT = 204


class CollectorError(Exception):
    """Raised when the reporting server fails or rejects a request."""


class ValueKind(enum.Enum):
    """The type a field value is written as."""

    FLOAT = "float"
    INT = "int"
    BOOL = "bool"


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return f"{value:f}"


@dataclass(frozen=True)
class Tag:
    """A tag key and value."""

    key: str
    value: str

    def serialize(self) -> str:
        return f"{self.key}={self.value}"


@dataclass(frozen=True)
class Field:
    """A field key with a typed value."""

    key: str
    value: int | float | bool
    kind: ValueKind

    def serialize(self) -> str:
        if self.kind is ValueKind.INT:
            return f"{self.key}={int(self.value)}i"
        if self.kind is ValueKind.FLOAT:
            return f"{self.key}={_format_float(float(self.value))}"
        return f"{self.key}={'true' if self.value else 'false'}"


@dataclass
class Point:
    """A measurement with tags, fields and an optional nanosecond timestamp."""

    measurement: str = ""
    timestamp_nano: int = 0
    tags: list[Tag] = field(default_factory=list)
    fields: list[Field] = field(default_factory=list)

    def add_tag(self, key: str, value: str) -> None:
        self.tags.append(Tag(key, value))

    def add_int_field(self, key: str, value: int) -> None:
        self.fields.append(Field(key, int(value), ValueKind.INT))

    def add_float_field(self, key: str, value: float) -> None:
        self.fields.append(Field(key, float(value), ValueKind.FLOAT))

    def add_bool_field(self, key: str, value: bool) -> None:
        self.fields.append(Field(key, bool(value), ValueKind.BOOL))

    def serialize(self) -> str:
        """Render the point as one line of line protocol, without a newline."""
        line = self.measurement
        if self.tags:
            line += "," + ",".join(tag.serialize() for tag in self.tags)
        if self.fields:
            line += " " + ",".join(f.serialize() for f in self.fields)
        if self.timestamp_nano > 0:
            line += f" {self.timestamp_nano}"
        return line

    def reset(self) -> None:
        self.measurement = ""
        self.tags.clear()
        self.fields.clear()
        self.timestamp_nano = 0


class Collector:
    """Batches points and writes them to an InfluxDB 1.x or 2.x server."""

    def __init__(self, host: str, db_name: str, user: str, password: str) -> None:
        self.points: list[Point] = []
        self._buffer = bytearray()
        self._base_uri = host
        self._write_uri = f"{host}/write?db={quote_plus(db_name)}"
        self._auth = ""
        if user:
            credentials = f"{user}:{password}".encode()
            self._auth = "Basic " + base64.b64encode(credentials).decode("ascii")
        self._db_name = db_name
        self._version = 1
        self._session = requests.Session()
        self._session.verify = False
        self._session.headers["User-Agent"] = "collector"

    @property
    def buffer(self) -> bytes:
        """The serialized batch prepared so far."""
        return bytes(self._buffer)

    def put(self, point: Point) -> None:
        self.points.append(point)

    def reset(self) -> None:
        self.points.clear()
        self._buffer.clear()

    def prep_batch(self) -> None:
        """Append every collected point to the outgoing buffer."""
        for point in self.points:
            self._buffer += point.serialize().encode()
            self._buffer += b"\n"

    def _post(self, uri: str, headers: dict[str, str]) -> requests.Response:
        try:
            return self._session.post(uri, data=bytes(self._buffer), headers=headers)
        except requests.RequestException as exc:
            raise CollectorError(f"collector error: {exc}") from exc

    def create_database(self) -> None:
        """Create the target database; a no-op for 2.x servers."""
        if self._version != 1:
            return
        headers = {"Authorization": self._auth} if self._auth else {}
        uri = f"{self._base_uri}/query?q=create%20database%20{quote_plus(self._db_name)}"
        response = self._post(uri, headers)
        if response.status_code != _HTTP_OK:
            raise CollectorError(
                f"collector error: unexpected status code {response.status_code}"
            )

    def send_batch(self) -> None:
        """Write the prepared buffer to the server."""
        headers: dict[str, str] = {}
        if self._auth:
            if self._version == 1:
                headers["Authorization"] = self._auth
            else:
                headers["Authorization"] = f"Token {self._auth}"
        response = self._post(self._write_uri, headers)
        if response.status_code not in (_HTTP_NO_CONTENT, _HTTP_OK):
            raise CollectorError(
                f"collector error: unexpected status code {response.status_code}: "
                f"{response.text}"
            )


def new_collector_v2(host: str, org_id: str, bucket_id: str, auth_token: str) -> Collector:
    """Build a collector that writes to an InfluxDB 2.x bucket."""
    collector = Collector(host, bucket_id, "", "")
    collector._write_uri = f"{host}/api/v2/write?org={org_id}&bucket={bucket_id}"
    collector._auth = auth_token
    collector._version = 2
    return collector