"""Exception hierarchy."""

from __future__ import annotations


class ExporterError(Exception):
    """Base class for all exporter errors."""


class HardwareInitError(ExporterError):
    """The hardware library session could not be established. Fatal."""


class EnumerationError(ExporterError):
    """The device count query failed; the current cycle is skipped."""


class DeviceHandleError(ExporterError):
    """A device handle could not be obtained; only that device is skipped."""

    def __init__(self, index: int, message: str) -> None:
        super().__init__(f"gpu {index}: {message}")
        self.index = index


class DuplicateMetricError(ExporterError, ValueError):
    """A metric name was registered twice."""
