"""Hardware backend protocols: device enumeration and per-device sensor reads."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from nvml_exporter._types import SensorReading


@runtime_checkable
class DeviceEnumerator(Protocol):
    """Structural protocol for the hardware session and device lookup."""

    def init(self) -> None: ...

    def device_count(self) -> int: ...

    def handle_for(self, index: int) -> Any: ...

    def shutdown(self) -> None: ...


@runtime_checkable
class SensorReader(Protocol):
    """Structural protocol for per-device sensor queries.

    Every method returns a ``SensorReading``; hardware errors are reported as
    failed readings, not raised.
    """

    def read_clock(self, handle: Any) -> SensorReading: ...

    def read_utilization(self, handle: Any) -> SensorReading: ...

    def read_memory(self, handle: Any) -> SensorReading: ...

    def read_power(self, handle: Any) -> SensorReading: ...

    def read_temperature(self, handle: Any) -> SensorReading: ...
