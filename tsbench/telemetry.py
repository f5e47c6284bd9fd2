"""Background batching of telemetry points to a collector."""

from __future__ import annotations

import queue
import sys
import threading

from tsbench.report import Collector, CollectorError, Point

_STOP = object()


class TelemetryRunner:
    """Consumes points on a background thread and sends them in batches."""

    def __init__(
        self,
        collector: Collector,
        batch_size: int,
        write_to_stderr: bool = False,
        skip_n: int = 0,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch size must be at least 1")
        self._collector = collector
        self._batch_size = batch_size
        self._write_to_stderr = write_to_stderr
        self._skip_n = skip_n
        self._queue: queue.Queue = queue.Queue(maxsize=100)
        self._error: Exception | None = None
        self._closed = False
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def submit(self, point: Point) -> None:
        if self._closed:
            raise RuntimeError("telemetry runner is closed")
        self._queue.put(point)

    def close(self) -> None:
        """Flush remaining points, stop the thread and raise any send error."""
        if not self._closed:
            self._closed = True
            self._queue.put(_STOP)
            self._thread.join()
        if self._error is not None:
            raise self._error

    def __enter__(self) -> TelemetryRunner:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _run(self) -> None:
        count = 0
        while (point := self._queue.get()) is not _STOP:
            count += 1
            if count <= self._skip_n or self._error is not None:
                continue
            self._collector.put(point)
            if count % self._batch_size == 0:
                self._send()
        if self._collector.points and self._error is None:
            self._send()

    def _send(self) -> None:
        try:
            self._collector.prep_batch()
            if self._write_to_stderr:
                sys.stderr.write(self._collector.buffer.decode())
                sys.stderr.flush()
            self._collector.send_batch()
        except (CollectorError, OSError) as exc:
            self._error = exc
        finally:
            self._collector.reset()


def telemetry_run_async(
    collector: Collector, batch_size: int, write_to_stderr: bool, skip_n: int
) -> TelemetryRunner:
    """Start a runner that batches submitted points to the collector."""
    return TelemetryRunner(collector, batch_size, write_to_stderr, skip_n)