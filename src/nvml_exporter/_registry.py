"""Metric registry: named scalar and vector gauges behind one lock.

The registry is a ``prometheus_client`` custom collector. Each scrape of the
exposition endpoint calls ``collect()``, which snapshots every entry under
the lock, so a composite written with ``set_many`` is either fully visible or
not visible at all.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from nvml_exporter._errors import DuplicateMetricError

LabelValues = tuple[str, ...]


@dataclass(frozen=True)
class MetricWrite:
    """One pending gauge update. Empty ``label_values`` targets a scalar."""

    name: str
    value: float
    label_values: LabelValues = ()


@dataclass
class _Entry:
    name: str
    documentation: str
    label_keys: tuple[str, ...]
    scalar: float | None = None
    series: dict[LabelValues, float] = field(default_factory=dict)

    @property
    def is_vector(self) -> bool:
        return bool(self.label_keys)


def _series_order(item: tuple[LabelValues, float]) -> tuple[tuple[int, int, str], ...]:
    # Device indices sort numerically: gpu="2" before gpu="10".
    return tuple((0, int(v), "") if v.isdigit() else (1, 0, v) for v in item[0])


class MetricRegistry(Collector):
    """Process-wide set of current-value gauges.

    Entries are created once at startup and never removed. Writers overwrite
    the last value; readers always see the most recent complete write.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, _Entry] = {}

    def register_scalar(self, name: str, documentation: str) -> None:
        self._register(_Entry(name, documentation, ()))

    def register_vector(self, name: str, documentation: str, label_keys: Sequence[str]) -> None:
        if not label_keys:
            raise ValueError(f"vector metric {name!r} needs at least one label key")
        self._register(_Entry(name, documentation, tuple(label_keys)))

    def _register(self, entry: _Entry) -> None:
        with self._lock:
            if entry.name in self._entries:
                raise DuplicateMetricError(f"metric {entry.name!r} is already registered")
            self._entries[entry.name] = entry

    def set_scalar(self, name: str, value: float) -> None:
        self.set_many([MetricWrite(name, value)])

    def set_vector(self, name: str, label_values: Sequence[str], value: float) -> None:
        self.set_many([MetricWrite(name, value, tuple(label_values))])

    def set_many(self, writes: Iterable[MetricWrite]) -> int:
        """Apply several writes atomically. Returns the number applied.

        All writes are validated before any is applied.
        """
        writes = list(writes)
        with self._lock:
            for w in writes:
                self._check(w)
            for w in writes:
                entry = self._entries[w.name]
                if entry.is_vector:
                    entry.series[w.label_values] = float(w.value)
                else:
                    entry.scalar = float(w.value)
        return len(writes)

    def _check(self, write: MetricWrite) -> None:
        entry = self._entries.get(write.name)
        if entry is None:
            raise KeyError(f"metric {write.name!r} is not registered")
        if len(write.label_values) != len(entry.label_keys):
            raise ValueError(
                f"metric {write.name!r} expects labels {entry.label_keys}, "
                f"got {write.label_values}"
            )

    def get(self, name: str, label_values: Sequence[str] = ()) -> float | None:
        """Current value of a scalar or one vector series, or None if never set."""
        with self._lock:
            entry = self._entries[name]
            if entry.is_vector:
                return entry.series.get(tuple(label_values))
            return entry.scalar

    def names(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries

    def collect(self) -> Iterator[GaugeMetricFamily]:
        with self._lock:
            snapshot = [
                (
                    e.name,
                    e.documentation,
                    e.label_keys,
                    e.scalar,
                    sorted(e.series.items(), key=_series_order),
                )
                for e in self._entries.values()
            ]

        for name, documentation, label_keys, scalar, series in snapshot:
            if label_keys:
                family = GaugeMetricFamily(name, documentation, labels=list(label_keys))
                for label_values, value in series:
                    family.add_metric(list(label_values), value)
            else:
                family = GaugeMetricFamily(name, documentation)
                if scalar is not None:
                    family.add_metric([], scalar)
            yield family
