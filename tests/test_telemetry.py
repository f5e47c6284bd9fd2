import pytest
import responses

from tsbench.report import Collector, CollectorError, Point
from tsbench.telemetry import TelemetryRunner, telemetry_run_async

HOST = "http://localhost:8086"
WRITE_URL = f"{HOST}/write?db=telemetry"


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def _collector():
    password = "password"
    return Collector(HOST, "telemetry", "user", password)


def _point(n):
    point = Point("bench", n + 1)
    point.add_int_field("n", n)
    return point


def test_points_are_sent_in_batches(mocked):
    mocked.add(responses.POST, WRITE_URL, status=204)
    collector = _collector()
    runner = telemetry_run_async(collector, 2, False, 0)
    for n in range(5):
        runner.submit(_point(n))
    runner.close()
    assert [call.request.body.count(b"\n") for call in mocked.calls] == [2, 2, 1]
    assert (collector.points, collector.buffer) == ([], b"")


def test_skipped_points_are_not_sent(mocked):
    mocked.add(responses.POST, WRITE_URL, status=204)
    points = [_point(n) for n in range(4)]
    expected = "".join(p.serialize() + "\n" for p in points[2:]).encode()
    runner = telemetry_run_async(_collector(), 10, False, 2)
    for point in points:
        runner.submit(point)
    runner.close()
    assert len(mocked.calls) == 1
    assert mocked.calls[0].request.body == expected


def test_write_to_stderr(mocked, capsys):
    mocked.add(responses.POST, WRITE_URL, status=204)
    point = _point(7)
    line = point.serialize()
    runner = telemetry_run_async(_collector(), 1, True, 0)
    runner.submit(point)
    runner.close()
    assert line in capsys.readouterr().err


def test_no_points_no_requests(mocked):
    mocked.add(responses.POST, WRITE_URL, status=204)
    collector = _collector()
    runner = telemetry_run_async(collector, 3, False, 0)
    runner.close()
    assert collector.points == []
    assert len(mocked.calls) == 0


def test_send_error_raised_on_close(mocked):
    mocked.add(responses.POST, WRITE_URL, status=500)
    runner = telemetry_run_async(_collector(), 1, False, 0)
    runner.submit(_point(1))
    with pytest.raises(CollectorError):
        runner.close()


def test_context_manager_flushes(mocked):
    mocked.add(responses.POST, WRITE_URL, status=204)
    collector = _collector()
    first, second = _point(1), _point(2)
    with TelemetryRunner(collector, 100, False, 0) as runner:
        runner.submit(first)
        runner.submit(second)
    assert collector.points == []
    assert len(mocked.calls) == 1
    expected = (first.serialize() + "\n" + second.serialize() + "\n").encode()
    assert mocked.calls[0].request.body == expected


def test_submit_after_close_raises(mocked):
    runner = telemetry_run_async(_collector(), 1, False, 0)
    runner.close()
    with pytest.raises(RuntimeError):
        runner.submit(_point(1))


def test_invalid_batch_size():
    with pytest.raises(ValueError):
        TelemetryRunner(_collector(), 0, False, 0)