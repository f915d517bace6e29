"""Tests for the metric registry and its Prometheus rendering."""

from __future__ import annotations

import threading

import pytest
from prometheus_client import CollectorRegistry, generate_latest

from nvml_exporter._errors import DuplicateMetricError
from nvml_exporter._registry import MetricRegistry, MetricWrite


def _render(registry: MetricRegistry) -> str:
    collector_registry = CollectorRegistry()
    collector_registry.register(registry)
    return generate_latest(collector_registry).decode()


class TestRegistration:
    def test_register_scalar_and_vector(self, registry: MetricRegistry) -> None:
        registry.register_scalar("up", "Exporter up")
        registry.register_vector("temp", "Temperature", ["gpu"])
        assert registry.names() == ["up", "temp"]
        assert "up" in registry
        assert "missing" not in registry

    def test_duplicate_scalar_fails(self, registry: MetricRegistry) -> None:
        registry.register_scalar("up", "Exporter up")
        with pytest.raises(DuplicateMetricError):
            registry.register_scalar("up", "Exporter up")

    def test_duplicate_across_kinds_fails(self, registry: MetricRegistry) -> None:
        registry.register_scalar("temp", "Temperature")
        with pytest.raises(DuplicateMetricError):
            registry.register_vector("temp", "Temperature", ["gpu"])

    def test_duplicate_is_value_error(self) -> None:
        assert issubclass(DuplicateMetricError, ValueError)

    def test_vector_needs_labels(self, registry: MetricRegistry) -> None:
        with pytest.raises(ValueError):
            registry.register_vector("temp", "Temperature", [])


class TestWrites:
    def test_scalar_overwrite(self, registry: MetricRegistry) -> None:
        registry.register_scalar("up", "Exporter up")
        assert registry.get("up") is None
        registry.set_scalar("up", 1)
        registry.set_scalar("up", 0.5)
        assert registry.get("up") == 0.5

    def test_vector_series_are_independent(self, registry: MetricRegistry) -> None:
        registry.register_vector("temp", "Temperature", ["gpu"])
        registry.set_vector("temp", ["0"], 60)
        registry.set_vector("temp", ["1"], 70)
        assert registry.get("temp", ["0"]) == 60.0
        assert registry.get("temp", ["1"]) == 70.0
        assert registry.get("temp", ["2"]) is None

    def test_values_stored_as_float(self, registry: MetricRegistry) -> None:
        registry.register_scalar("count", "Count")
        registry.set_scalar("count", 3)
        assert isinstance(registry.get("count"), float)

    def test_unregistered_name(self, registry: MetricRegistry) -> None:
        with pytest.raises(KeyError):
            registry.set_scalar("nope", 1.0)

    def test_wrong_label_arity(self, registry: MetricRegistry) -> None:
        registry.register_vector("temp", "Temperature", ["gpu"])
        with pytest.raises(ValueError):
            registry.set_vector("temp", ["0", "extra"], 1.0)
        with pytest.raises(ValueError):
            registry.set_scalar("temp", 1.0)

    def test_set_many_is_all_or_nothing(self, registry: MetricRegistry) -> None:
        registry.register_scalar("total", "Total")
        registry.register_scalar("used", "Used")
        with pytest.raises(KeyError):
            registry.set_many([MetricWrite("total", 10.0), MetricWrite("missing", 1.0)])
        assert registry.get("total") is None

    def test_set_many_returns_count(self, registry: MetricRegistry) -> None:
        registry.register_scalar("total", "Total")
        registry.register_scalar("used", "Used")
        assert registry.set_many([MetricWrite("total", 10.0), MetricWrite("used", 4.0)]) == 2


class TestCollect:
    def test_renders_scalar_and_vector(self, registry: MetricRegistry) -> None:
        registry.register_scalar("nvml_exporter_devices", "Devices seen")
        registry.register_vector("nvidia_gpu_temperature_celsius", "Temperature", ["gpu"])
        registry.set_scalar("nvml_exporter_devices", 2)
        registry.set_vector("nvidia_gpu_temperature_celsius", ["1"], 71)
        registry.set_vector("nvidia_gpu_temperature_celsius", ["0"], 65)

        text = _render(registry)
        assert "# TYPE nvml_exporter_devices gauge" in text
        assert "nvml_exporter_devices 2.0" in text
        assert 'nvidia_gpu_temperature_celsius{gpu="0"} 65.0' in text
        assert 'nvidia_gpu_temperature_celsius{gpu="1"} 71.0' in text
        assert text.index('gpu="0"') < text.index('gpu="1"')

    def test_device_labels_sort_numerically(self, registry: MetricRegistry) -> None:
        registry.register_vector("clock", "Clock", ["gpu"])
        for index in reversed(range(12)):
            registry.set_vector("clock", [str(index)], 1410 + index)
        order = [
            line.split('"')[1]
            for line in _render(registry).splitlines()
            if line.startswith("clock{")
        ]
        assert order == [str(i) for i in range(12)]

    def test_unset_metrics_are_absent_not_zero(self, registry: MetricRegistry) -> None:
        registry.register_scalar("up", "Exporter up")
        registry.register_vector("temp", "Temperature", ["gpu"])
        text = _render(registry)
        assert "# HELP up Exporter up" in text
        assert "# HELP temp Temperature" in text
        sample_lines = [line for line in text.splitlines() if not line.startswith("#")]
        assert sample_lines == []

    def test_render_is_idempotent(self, registry: MetricRegistry) -> None:
        registry.register_vector("temp", "Temperature", ["gpu"])
        registry.set_vector("temp", ["0"], 65)
        assert _render(registry) == _render(registry)

    def test_composite_never_half_visible(self, registry: MetricRegistry) -> None:
        registry.register_scalar("total", "Total")
        registry.register_scalar("used", "Used")
        registry.set_many([MetricWrite("total", 0.0), MetricWrite("used", 0.0)])
        stop = threading.Event()

        def writer() -> None:
            n = 0
            while not stop.is_set():
                n += 1
                registry.set_many([MetricWrite("total", float(n)), MetricWrite("used", float(n))])

        thread = threading.Thread(target=writer)
        thread.start()
        try:
            for _ in range(500):
                values = {f.name: f.samples[0].value for f in registry.collect()}
                assert values["total"] == values["used"]
        finally:
            stop.set()
            thread.join()
