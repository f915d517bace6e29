"""Background scrape loop that polls every device's sensors on a fixed interval."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from nvml_exporter._backend import DeviceEnumerator, SensorReader
from nvml_exporter._errors import DeviceHandleError, EnumerationError
from nvml_exporter._metrics import GpuMetrics
from nvml_exporter._types import CycleResult, FailureReason, SensorKind, SensorReading

logger = logging.getLogger("nvml_exporter.scrape")

# Order in which each device's sensors are queried.
SENSOR_QUERIES: tuple[tuple[SensorKind, str], ...] = (
    (SensorKind.CLOCK, "read_clock"),
    (SensorKind.UTILIZATION, "read_utilization"),
    (SensorKind.MEMORY, "read_memory"),
    (SensorKind.POWER, "read_power"),
    (SensorKind.TEMPERATURE, "read_temperature"),
)


class ScrapeLoop:
    """Daemon thread that runs one scrape cycle per interval.

    Cycles never overlap: the thread runs a cycle, then waits the interval
    before the next, so a slow cycle delays its successor instead of racing it.
    """

    def __init__(
        self,
        enumerator: DeviceEnumerator,
        reader: SensorReader,
        metrics: GpuMetrics,
        *,
        interval_ms: int = 5000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._enumerator = enumerator
        self._reader = reader
        self._metrics = metrics
        self._interval_s = interval_ms / 1000.0
        self._clock = clock
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._cycles = 0

    def start(self) -> None:
        """Start the background scrape loop."""
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="nvml-scrape", daemon=True)
        self._thread.start()
        logger.info("Scrape loop started (interval %.3fs)", self._interval_s)

    def stop(self, timeout: float = 5.0) -> None:
        """Signal stop and wait for the in-flight cycle to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Scrape loop did not stop within %.1fs", timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.scrape_once()
            except Exception:  # noqa: BLE001
                logger.exception("Scrape cycle failed")
            if self._stop_event.wait(timeout=self._interval_s):
                break

    def scrape_once(self) -> CycleResult:
        """Run one full pass over all devices and sensors."""
        started = time.perf_counter()
        try:
            count = self._enumerator.device_count()
        except EnumerationError as err:
            logger.warning("Skipping scrape cycle: %s", err)
            self._metrics.publish_enumeration_failure()
            return CycleResult(enumeration_failed=True)

        queries = writes = 0
        failures: dict[SensorKind, int] = {}
        for index in range(count):
            try:
                handle = self._enumerator.handle_for(index)
            except DeviceHandleError as err:
                logger.warning("Skipping device: %s", err)
                continue
            except Exception:  # noqa: BLE001
                logger.exception("Skipping device: gpu=%d handle lookup raised", index)
                continue

            for kind, method in SENSOR_QUERIES:
                queries += 1
                reading = self._query(index, kind, method, handle)
                if not reading.ok:
                    failures[kind] = failures.get(kind, 0) + 1
                    logger.warning(
                        "Sensor read failed: gpu=%d sensor=%s reason=%s detail=%s",
                        index, kind.value, reading.reason.value, reading.detail,
                    )
                    continue
                if self._metrics.publish(index, reading):
                    writes += 1

        duration = time.perf_counter() - started
        self._metrics.publish_cycle(
            devices=count,
            duration_s=duration,
            finished_at=self._clock(),
            failures_by_sensor=failures,
        )
        self._cycles += 1
        logger.debug(
            "Scrape cycle %d: %d devices, %d queries, %d writes in %.3fs",
            self._cycles, count, queries, writes, duration,
        )
        return CycleResult(
            devices=count,
            queries=queries,
            writes=writes,
            failures=sum(failures.values()),
            failures_by_sensor=failures,
        )

    def _query(self, index: int, kind: SensorKind, method: str, handle: Any) -> SensorReading:
        try:
            return getattr(self._reader, method)(handle)
        except Exception as exc:  # noqa: BLE001
            logger.debug("gpu=%d sensor=%s raised", index, kind.value, exc_info=True)
            return SensorReading.failure(kind, FailureReason.QUERY_FAILED, repr(exc))

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def cycles(self) -> int:
        """Number of completed scrape cycles."""
        return self._cycles
