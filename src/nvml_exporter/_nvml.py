"""NVIDIA NVML backend: session, device enumeration and sensor reads."""

from __future__ import annotations

import logging
from typing import Any

import pynvml

from nvml_exporter._errors import DeviceHandleError, EnumerationError, HardwareInitError
from nvml_exporter._types import FailureReason, SensorKind, SensorReading

logger = logging.getLogger("nvml_exporter.nvml")

# Zero values of nvmlClockType_t / nvmlClockId_t: current graphics clock.
CLOCK_TYPE = pynvml.NVML_CLOCK_GRAPHICS
CLOCK_ID = pynvml.NVML_CLOCK_ID_CURRENT
TEMPERATURE_SENSOR = pynvml.NVML_TEMPERATURE_GPU

_REASON_MAP: dict[int, FailureReason] = {
    pynvml.NVML_ERROR_NOT_SUPPORTED: FailureReason.NOT_SUPPORTED,
    pynvml.NVML_ERROR_INVALID_ARGUMENT: FailureReason.INVALID_HANDLE,
    pynvml.NVML_ERROR_GPU_IS_LOST: FailureReason.GPU_LOST,
    pynvml.NVML_ERROR_NO_PERMISSION: FailureReason.NO_PERMISSION,
}


def failure_reason(err: pynvml.NVMLError) -> FailureReason:
    """Map an NVML error code onto a ``FailureReason``."""
    return _REASON_MAP.get(getattr(err, "value", None), FailureReason.QUERY_FAILED)


class NvmlDeviceEnumerator:
    """Owns the process-wide NVML session."""

    def __init__(self) -> None:
        self._initialized = False

    def init(self) -> None:
        if self._initialized:
            return
        try:
            pynvml.nvmlInit()
        except pynvml.NVMLError as err:
            raise HardwareInitError(f"NVML initialization failed: {err}") from err
        self._initialized = True
        try:
            logger.info("NVML initialized (driver %s)", pynvml.nvmlSystemGetDriverVersion())
        except pynvml.NVMLError:
            logger.info("NVML initialized")

    def device_count(self) -> int:
        try:
            return int(pynvml.nvmlDeviceGetCount())
        except pynvml.NVMLError as err:
            raise EnumerationError(f"device count query failed: {err}") from err

    def handle_for(self, index: int) -> Any:
        try:
            return pynvml.nvmlDeviceGetHandleByIndex(index)
        except pynvml.NVMLError as err:
            raise DeviceHandleError(index, str(err)) from err

    def shutdown(self) -> None:
        if not self._initialized:
            return
        self._initialized = False
        try:
            pynvml.nvmlShutdown()
        except pynvml.NVMLError as err:
            logger.warning("NVML shutdown failed: %s", err)


class NvmlSensorReader:
    """Issues one NVML query per sensor kind; errors become failed readings."""

    def read_clock(self, handle: Any) -> SensorReading:
        try:
            mhz = pynvml.nvmlDeviceGetClock(handle, CLOCK_TYPE, CLOCK_ID)
        except pynvml.NVMLError as err:
            return SensorReading.failure(SensorKind.CLOCK, failure_reason(err), str(err))
        return SensorReading.success(SensorKind.CLOCK, {"clock": float(mhz)}, "MHz")

    def read_utilization(self, handle: Any) -> SensorReading:
        try:
            util = pynvml.nvmlDeviceGetUtilizationRates(handle)
        except pynvml.NVMLError as err:
            return SensorReading.failure(SensorKind.UTILIZATION, failure_reason(err), str(err))
        return SensorReading.success(
            SensorKind.UTILIZATION,
            {"gpu": float(util.gpu), "memory": float(util.memory)},
            "percent",
        )

    def read_memory(self, handle: Any) -> SensorReading:
        try:
            mem = pynvml.nvmlDeviceGetMemoryInfo(handle)
        except pynvml.NVMLError as err:
            return SensorReading.failure(SensorKind.MEMORY, failure_reason(err), str(err))
        return SensorReading.success(
            SensorKind.MEMORY,
            {"total": float(mem.total), "used": float(mem.used), "free": float(mem.free)},
            "bytes",
        )

    def read_power(self, handle: Any) -> SensorReading:
        try:
            milliwatts = pynvml.nvmlDeviceGetPowerUsage(handle)
        except pynvml.NVMLError as err:
            return SensorReading.failure(SensorKind.POWER, failure_reason(err), str(err))
        return SensorReading.success(SensorKind.POWER, {"power": float(milliwatts)}, "mW")

    def read_temperature(self, handle: Any) -> SensorReading:
        try:
            celsius = pynvml.nvmlDeviceGetTemperature(handle, TEMPERATURE_SENSOR)
        except pynvml.NVMLError as err:
            return SensorReading.failure(SensorKind.TEMPERATURE, failure_reason(err), str(err))
        return SensorReading.success(SensorKind.TEMPERATURE, {"temperature": float(celsius)}, "C")
