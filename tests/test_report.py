import base64

import pytest
import responses

from tsbench.report import Collector, CollectorError, Point, new_collector_v2

HOST = "http://localhost:8086"


def _collector():
    password = "password"
    return Collector(HOST, "bench", "user", password)


@pytest.fixture
def collector():
    return _collector()


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def test_point_serialize_full_line():
    point = Point("cpu", 100)
    point.add_tag("host", "a")
    point.add_tag("region", "b")
    point.add_float_field("usage", 1.5)
    point.add_int_field("count", 3)
    point.add_bool_field("ok", True)
    assert point.serialize() == "cpu,host=a,region=b usage=1.500000,count=3i,ok=true 100"


def test_point_without_timestamp_has_two_sections():
    point = Point("m")
    point.add_int_field("v", 1)
    parts = point.serialize().split(" ")
    assert len(parts) == 2
    assert parts[0] == "m"


def test_point_without_tags_or_fields_is_measurement_only():
    assert Point("m").serialize() == "m"


def test_int_field_has_suffix():
    point = Point("m")
    point.add_int_field("n", 42)
    assert point.fields[0].serialize().endswith("42i")


def test_float_field_has_six_decimals():
    point = Point("m")
    point.add_float_field("x", 2)
    key, value = point.fields[0].serialize().split("=")
    assert key == "x"
    assert len(value.split(".")[1]) == 6
    assert float(value) == 2.0


def test_bool_field():
    point = Point("m")
    point.add_bool_field("flag", True)
    assert point.fields[0].serialize() == "flag=true"


def test_point_reset():
    point = Point("m", 5)
    point.add_tag("a", "b")
    point.add_int_field("c", 1)
    point.reset()
    assert (point.measurement, point.tags, point.fields, point.timestamp_nano) == ("", [], [], 0)


def test_create_database_v1(mocked):
    url = f"{HOST}/query?q=create%20database%20bench"
    mocked.add(responses.POST, url, status=200)
    collector = _collector()
    result = collector.create_database()
    assert result is None
    assert (collector.points, collector.buffer) == ([], b"")
    assert len(mocked.calls) == 1
    request = mocked.calls[0].request
    assert request.url == url
    expected = "Basic " + base64.b64encode(b"user:password").decode()
    assert request.headers["Authorization"] == expected


def test_create_database_failure(mocked, collector):
    mocked.add(responses.POST, f"{HOST}/query?q=create%20database%20bench", status=500)
    with pytest.raises(CollectorError):
        collector.create_database()


def test_create_database_v2_sends_nothing(mocked):
    collector = new_collector_v2(HOST, "org", "bucket", "token")
    result = collector.create_database()
    assert result is None
    assert collector.points == []
    assert len(mocked.calls) == 0


def test_send_batch_body_matches_points(mocked, collector):
    mocked.add(responses.POST, f"{HOST}/write?db=bench", status=204)
    first = Point("a", 1)
    first.add_int_field("v", 1)
    second = Point("b", 2)
    second.add_float_field("w", 0.5)
    collector.put(first)
    collector.put(second)
    collector.prep_batch()
    collector.send_batch()
    body = mocked.calls[0].request.body
    assert body == (first.serialize() + "\n" + second.serialize() + "\n").encode()
    assert body == collector.buffer


def test_send_batch_v2_uses_token(mocked):
    collector = new_collector_v2(HOST, "org", "bucket", "token")
    mocked.add(responses.POST, f"{HOST}/api/v2/write?org=org&bucket=bucket", status=204)
    collector.send_batch()
    assert mocked.calls[0].request.headers["Authorization"] == "Token token"


def test_send_batch_error_includes_body(mocked, collector):
    mocked.add(responses.POST, f"{HOST}/write?db=bench", status=500, body="boom")
    with pytest.raises(CollectorError, match="boom"):
        collector.send_batch()


def test_db_name_is_query_escaped(mocked):
    password = "password"
    collector = Collector(HOST, "my db", "user", password)
    mocked.add(responses.POST, f"{HOST}/write?db=my+db", status=204)
    collector.send_batch()
    assert "db=my+db" in mocked.calls[0].request.url


def test_collector_reset(collector):
    collector.put(Point("m", 1))
    collector.prep_batch()
    assert collector.buffer
    collector.reset()
    assert collector.points == []
    assert collector.buffer == b""