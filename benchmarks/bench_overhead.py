#!/usr/bin/env python3
"""Scrape and exposition overhead benchmark.

Measures the exporter-side cost (hardware excluded) of:
  1. one scrape cycle over 8 devices with an instant sensor reader
  2. one atomic composite write (memory total/used/free)
  3. one rendering of the full registry in the text format

Target: scrape bookkeeping well under 1ms per device.

Usage:
    python benchmarks/bench_overhead.py
"""

from __future__ import annotations

import time
from typing import Any

from prometheus_client import CollectorRegistry, generate_latest

from nvml_exporter._metrics import GpuMetrics
from nvml_exporter._registry import MetricRegistry, MetricWrite
from nvml_exporter._scrape import ScrapeLoop
from nvml_exporter._types import SensorKind, SensorReading

NUM_GPUS = 8


class _InstantEnumerator:
    def init(self) -> None:
        pass

    def device_count(self) -> int:
        return NUM_GPUS

    def handle_for(self, index: int) -> Any:
        return index

    def shutdown(self) -> None:
        pass


class _InstantReader:
    _CLOCK = SensorReading.success(SensorKind.CLOCK, {"clock": 1980.0}, "MHz")
    _UTIL = SensorReading.success(SensorKind.UTILIZATION, {"gpu": 97.0, "memory": 61.0}, "percent")
    _MEM = SensorReading.success(
        SensorKind.MEMORY, {"total": 8.5e10, "used": 6.1e10, "free": 2.4e10}, "bytes"
    )
    _POWER = SensorReading.success(SensorKind.POWER, {"power": 612_000.0}, "mW")
    _TEMP = SensorReading.success(SensorKind.TEMPERATURE, {"temperature": 71.0}, "C")

    def read_clock(self, handle: Any) -> SensorReading:
        return self._CLOCK

    def read_utilization(self, handle: Any) -> SensorReading:
        return self._UTIL

    def read_memory(self, handle: Any) -> SensorReading:
        return self._MEM

    def read_power(self, handle: Any) -> SensorReading:
        return self._POWER

    def read_temperature(self, handle: Any) -> SensorReading:
        return self._TEMP


def _setup() -> tuple[MetricRegistry, GpuMetrics]:
    registry = MetricRegistry()
    metrics = GpuMetrics(registry)
    metrics.register()
    return registry, metrics


def bench_scrape_cycle(iterations: int = 5_000) -> float:
    """Benchmark: full scrape cycle, 8 devices × 5 sensors."""
    _, metrics = _setup()
    loop = ScrapeLoop(_InstantEnumerator(), _InstantReader(), metrics)

    # Warmup
    for _ in range(100):
        loop.scrape_once()

    start = time.perf_counter_ns()
    for _ in range(iterations):
        loop.scrape_once()
    elapsed = time.perf_counter_ns() - start

    return elapsed / iterations


def bench_composite_write(iterations: int = 200_000) -> float:
    """Benchmark: one locked three-gauge write."""
    registry, _ = _setup()
    writes = [
        MetricWrite("nvidia_gpu_memory_total_bytes", 8.5e10, ("0",)),
        MetricWrite("nvidia_gpu_memory_used_bytes", 6.1e10, ("0",)),
        MetricWrite("nvidia_gpu_memory_free_bytes", 2.4e10, ("0",)),
    ]

    start = time.perf_counter_ns()
    for _ in range(iterations):
        registry.set_many(writes)
    elapsed = time.perf_counter_ns() - start

    return elapsed / iterations


def bench_render(iterations: int = 5_000) -> float:
    """Benchmark: render the populated registry to the text format."""
    _, metrics = _setup()
    ScrapeLoop(_InstantEnumerator(), _InstantReader(), metrics).scrape_once()
    collector_registry = CollectorRegistry()
    collector_registry.register(metrics.registry)

    start = time.perf_counter_ns()
    for _ in range(iterations):
        generate_latest(collector_registry)
    elapsed = time.perf_counter_ns() - start

    return elapsed / iterations


def main() -> None:
    print("=" * 60)
    print("nvml-exporter Overhead Benchmark")
    print("=" * 60)

    results: list[tuple[str, float, str]] = []

    ns = bench_scrape_cycle()
    per_device = ns / NUM_GPUS
    status = "PASS" if per_device < 100_000 else "WARN" if per_device < 1_000_000 else "FAIL"
    results.append((f"Scrape cycle ({NUM_GPUS} GPUs)", ns, f"{status} (target < 1ms/device)"))

    ns = bench_composite_write()
    status = "PASS" if ns < 10_000 else "WARN"
    results.append(("Composite write", ns, f"{status} (target < 10μs)"))

    ns = bench_render()
    status = "PASS" if ns < 1_000_000 else "WARN"
    results.append(("Render /metrics", ns, f"{status} (target < 1ms)"))

    print()
    for name, value, verdict in results:
        print(f"  {name:<28} {value / 1000:>10.2f} μs   {verdict}")
    print()


if __name__ == "__main__":
    main()
