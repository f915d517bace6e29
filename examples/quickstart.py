"""nvml-exporter Quick Start — embed the exporter in another Python process."""

import logging
import time

from nvml_exporter import Exporter, ExporterConfig

logging.basicConfig(level=logging.INFO)

# 1. Configure: scrape every 2s, serve on :9400/metrics
config = ExporterConfig(scrape_interval_ms=2000, port=9400)

# 2. Start: initializes NVML, registers gauges, starts the loop and the listener
with Exporter(config) as exporter:
    print(f"Serving on http://localhost:{exporter.port}/metrics")
    time.sleep(5)

    # 3. Read current values straight from the registry
    devices = int(exporter.registry.get("nvml_exporter_devices") or 0)
    for gpu in range(devices):
        watts = exporter.registry.get("nvidia_gpu_power_usage_watts", [str(gpu)])
        celsius = exporter.registry.get("nvidia_gpu_temperature_celsius", [str(gpu)])
        print(f"gpu {gpu}: {watts} W, {celsius} °C")

# Leaving the block stops the loop, closes the listener and shuts NVML down.
