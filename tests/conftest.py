"""Shared fakes: a scriptable device enumerator and sensor reader (no GPU needed)."""

from __future__ import annotations

from typing import Any

import pytest

from nvml_exporter._errors import DeviceHandleError, EnumerationError
from nvml_exporter._metrics import GpuMetrics
from nvml_exporter._registry import MetricRegistry
from nvml_exporter._types import FailureReason, SensorKind, SensorReading


class FakeEnumerator:
    """Devices are plain ints; handles are ``("handle", index)`` tuples."""

    def __init__(self, count: int = 2, *, bad_handles: set[int] | None = None) -> None:
        self.count = count
        self.bad_handles = bad_handles or set()
        self.fail_count = False
        self.init_calls = 0
        self.shutdown_calls = 0

    def init(self) -> None:
        self.init_calls += 1

    def device_count(self) -> int:
        if self.fail_count:
            raise EnumerationError("device count query failed: Unknown Error")
        return self.count

    def handle_for(self, index: int) -> Any:
        if index in self.bad_handles:
            raise DeviceHandleError(index, "GPU is lost")
        return ("handle", index)

    def shutdown(self) -> None:
        self.shutdown_calls += 1


def sample_values(index: int) -> dict[SensorKind, dict[str, float]]:
    return {
        SensorKind.CLOCK: {"clock": 1410.0 + index},
        SensorKind.UTILIZATION: {"gpu": 85.0 + index, "memory": 40.0 + index},
        SensorKind.MEMORY: {
            "total": 85_899_345_920.0,
            "used": 42_949_672_960.0 + index,
            "free": 42_949_672_960.0 - index,
        },
        SensorKind.POWER: {"power": 150_000.0 + index * 1000},
        SensorKind.TEMPERATURE: {"temperature": 65.0 + index},
    }


class FakeReader:
    """Returns ``sample_values`` unless a (device, sensor) pair is set to fail."""

    def __init__(self) -> None:
        self.fail: set[tuple[int, SensorKind]] = set()
        self.explode: set[tuple[int, SensorKind]] = set()
        self.overrides: dict[tuple[int, SensorKind], dict[str, float]] = {}
        self.calls: list[tuple[int, SensorKind]] = []

    def _read(self, handle: Any, kind: SensorKind, unit: str) -> SensorReading:
        index = handle[1]
        self.calls.append((index, kind))
        if (index, kind) in self.explode:
            raise RuntimeError("driver exploded")
        if (index, kind) in self.fail:
            return SensorReading.failure(kind, FailureReason.NOT_SUPPORTED, "Not Supported")
        values = self.overrides.get((index, kind), sample_values(index)[kind])
        return SensorReading.success(kind, values, unit)

    def read_clock(self, handle: Any) -> SensorReading:
        return self._read(handle, SensorKind.CLOCK, "MHz")

    def read_utilization(self, handle: Any) -> SensorReading:
        return self._read(handle, SensorKind.UTILIZATION, "percent")

    def read_memory(self, handle: Any) -> SensorReading:
        return self._read(handle, SensorKind.MEMORY, "bytes")

    def read_power(self, handle: Any) -> SensorReading:
        return self._read(handle, SensorKind.POWER, "mW")

    def read_temperature(self, handle: Any) -> SensorReading:
        return self._read(handle, SensorKind.TEMPERATURE, "C")


@pytest.fixture
def enumerator() -> FakeEnumerator:
    return FakeEnumerator(count=2)


@pytest.fixture
def reader() -> FakeReader:
    return FakeReader()


@pytest.fixture
def registry() -> MetricRegistry:
    return MetricRegistry()


@pytest.fixture
def metrics(registry: MetricRegistry) -> GpuMetrics:
    gpu_metrics = GpuMetrics(registry)
    gpu_metrics.register()
    return gpu_metrics
