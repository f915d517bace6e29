"""Core types: sensor enums, readings and cycle summaries."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class SensorKind(enum.Enum):
    """Sensor queried once per device per cycle."""

    CLOCK = "clock"
    UTILIZATION = "utilization"
    MEMORY = "memory"
    POWER = "power"
    TEMPERATURE = "temperature"


class FailureReason(enum.Enum):
    """Why a sensor query produced no value."""

    NOT_SUPPORTED = "not_supported"
    INVALID_HANDLE = "invalid_handle"
    GPU_LOST = "gpu_lost"
    NO_PERMISSION = "no_permission"
    QUERY_FAILED = "query_failed"


@dataclass(frozen=True)
class SensorReading:
    """Result of one sensor query: values with a unit, or a failure reason.

    Composite sensors carry several values keyed by component, e.g. memory
    readings hold ``total``, ``used`` and ``free``.
    """

    kind: SensorKind
    values: dict[str, float] = field(default_factory=dict)
    unit: str = ""
    reason: FailureReason | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls, kind: SensorKind, values: dict[str, float], unit: str) -> SensorReading:
        return cls(kind=kind, values=dict(values), unit=unit)

    @classmethod
    def failure(
        cls, kind: SensorKind, reason: FailureReason, detail: str | None = None
    ) -> SensorReading:
        return cls(kind=kind, reason=reason, detail=detail)


@dataclass(frozen=True)
class CycleResult:
    """Summary of a single scrape cycle."""

    devices: int = 0
    queries: int = 0
    writes: int = 0
    failures: int = 0
    enumeration_failed: bool = False
    failures_by_sensor: dict[SensorKind, int] = field(default_factory=dict)
