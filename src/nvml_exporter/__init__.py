"""nvml-exporter: Prometheus exporter for NVIDIA GPU telemetry."""

from __future__ import annotations

from nvml_exporter._app import Exporter
from nvml_exporter._backend import DeviceEnumerator, SensorReader
from nvml_exporter._config import ExporterConfig
from nvml_exporter._errors import (
    DeviceHandleError,
    DuplicateMetricError,
    EnumerationError,
    ExporterError,
    HardwareInitError,
)
from nvml_exporter._metrics import GpuMetrics
from nvml_exporter._registry import MetricRegistry, MetricWrite
from nvml_exporter._scrape import ScrapeLoop
from nvml_exporter._server import MetricsServer
from nvml_exporter._types import CycleResult, FailureReason, SensorKind, SensorReading

__version__ = "0.1.0"

__all__ = [
    "CycleResult",
    "DeviceEnumerator",
    "DeviceHandleError",
    "DuplicateMetricError",
    "EnumerationError",
    "Exporter",
    "ExporterConfig",
    "ExporterError",
    "FailureReason",
    "GpuMetrics",
    "HardwareInitError",
    "MetricRegistry",
    "MetricWrite",
    "MetricsServer",
    "ScrapeLoop",
    "SensorKind",
    "SensorReader",
    "SensorReading",
    "__version__",
]
