"""GPU metric schema: metric identities and reading-to-gauge mapping."""

from __future__ import annotations

from dataclasses import dataclass

from nvml_exporter._registry import MetricRegistry, MetricWrite
from nvml_exporter._types import SensorKind, SensorReading

DEVICE_LABEL = "gpu"
SENSOR_LABEL = "sensor"

MILLIWATTS_PER_WATT = 1000.0


@dataclass(frozen=True)
class GaugeSpec:
    """Maps one component of a sensor reading onto one gauge."""

    name: str
    documentation: str
    kind: SensorKind
    key: str
    divisor: float = 1.0


def gpu_gauges(*, normalize_power: bool = True) -> tuple[GaugeSpec, ...]:
    if normalize_power:
        power = GaugeSpec(
            "nvidia_gpu_power_usage_watts",
            "Current GPU power draw in watts",
            SensorKind.POWER,
            "power",
            MILLIWATTS_PER_WATT,
        )
    else:
        power = GaugeSpec(
            "nvidia_gpu_power_usage_milliwatts",
            "Current GPU power draw in milliwatts",
            SensorKind.POWER,
            "power",
        )
    return (
        GaugeSpec("nvidia_gpu_clock_mhz", "Current graphics clock frequency in MHz",
                  SensorKind.CLOCK, "clock"),
        GaugeSpec("nvidia_gpu_utilization_gpu_percent",
                  "Percent of time a kernel was executing on the GPU",
                  SensorKind.UTILIZATION, "gpu"),
        GaugeSpec("nvidia_gpu_utilization_memory_percent",
                  "Percent of time device memory was being read or written",
                  SensorKind.UTILIZATION, "memory"),
        GaugeSpec("nvidia_gpu_memory_total_bytes", "Total device memory in bytes",
                  SensorKind.MEMORY, "total"),
        GaugeSpec("nvidia_gpu_memory_used_bytes", "Allocated device memory in bytes",
                  SensorKind.MEMORY, "used"),
        GaugeSpec("nvidia_gpu_memory_free_bytes", "Unallocated device memory in bytes",
                  SensorKind.MEMORY, "free"),
        power,
        GaugeSpec("nvidia_gpu_temperature_celsius", "Current GPU die temperature in Celsius",
                  SensorKind.TEMPERATURE, "temperature"),
    )


# Exporter self-metrics, updated once per cycle.
DEVICES = "nvml_exporter_devices"
SCRAPE_DURATION = "nvml_exporter_scrape_duration_seconds"
LAST_SCRAPE = "nvml_exporter_last_scrape_timestamp_seconds"
SENSOR_FAILURES = "nvml_exporter_sensor_failures"
SCRAPE_ERROR = "nvml_exporter_last_scrape_error"


class GpuMetrics:
    """Registers the GPU schema on a registry and turns readings into writes.

    With ``per_device`` the gauges are labeled by device index; otherwise they
    are unlabeled and hold whichever device was written last.
    """

    def __init__(
        self,
        registry: MetricRegistry,
        *,
        per_device: bool = True,
        normalize_power: bool = True,
    ) -> None:
        self.registry = registry
        self.per_device = per_device
        self.gauges = gpu_gauges(normalize_power=normalize_power)
        self._by_kind: dict[SensorKind, list[GaugeSpec]] = {}
        for spec in self.gauges:
            self._by_kind.setdefault(spec.kind, []).append(spec)

    def register(self) -> None:
        for spec in self.gauges:
            if self.per_device:
                self.registry.register_vector(spec.name, spec.documentation, [DEVICE_LABEL])
            else:
                self.registry.register_scalar(spec.name, spec.documentation)

        self.registry.register_scalar(DEVICES, "Number of GPUs enumerated in the last scrape cycle")
        self.registry.register_scalar(SCRAPE_DURATION, "Duration of the last scrape cycle in seconds")
        self.registry.register_scalar(LAST_SCRAPE, "Unix time the last scrape cycle finished")
        self.registry.register_scalar(
            SCRAPE_ERROR, "1 if the last scrape cycle could not enumerate devices, 0 otherwise"
        )
        self.registry.register_vector(
            SENSOR_FAILURES, "Failed sensor queries in the last scrape cycle", [SENSOR_LABEL]
        )

    def writes_for(self, index: int, reading: SensorReading) -> list[MetricWrite]:
        """Gauge writes for a successful reading; empty for a failed one."""
        if not reading.ok:
            return []
        label_values = (str(index),) if self.per_device else ()
        return [
            MetricWrite(spec.name, reading.values[spec.key] / spec.divisor, label_values)
            for spec in self._by_kind.get(reading.kind, ())
            if spec.key in reading.values
        ]

    def publish(self, index: int, reading: SensorReading) -> int:
        """Write one reading's gauges atomically. Returns the number of writes."""
        writes = self.writes_for(index, reading)
        if not writes:
            return 0
        return self.registry.set_many(writes)

    def publish_cycle(
        self,
        *,
        devices: int,
        duration_s: float,
        finished_at: float,
        failures_by_sensor: dict[SensorKind, int],
    ) -> None:
        writes = [
            MetricWrite(DEVICES, devices),
            MetricWrite(SCRAPE_DURATION, duration_s),
            MetricWrite(LAST_SCRAPE, finished_at),
            MetricWrite(SCRAPE_ERROR, 0),
        ]
        writes.extend(
            MetricWrite(SENSOR_FAILURES, failures_by_sensor.get(kind, 0), (kind.value,))
            for kind in SensorKind
        )
        self.registry.set_many(writes)

    def publish_enumeration_failure(self) -> None:
        """Flag a cycle that never reached the devices. Device gauges keep their values."""
        self.registry.set_scalar(SCRAPE_ERROR, 1)
