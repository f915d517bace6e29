"""Exporter — orchestrates the hardware session, registry, scrape loop and server."""

from __future__ import annotations

import logging
from types import TracebackType

from nvml_exporter._backend import DeviceEnumerator, SensorReader
from nvml_exporter._config import ExporterConfig
from nvml_exporter._metrics import GpuMetrics
from nvml_exporter._nvml import NvmlDeviceEnumerator, NvmlSensorReader
from nvml_exporter._registry import MetricRegistry
from nvml_exporter._scrape import ScrapeLoop
from nvml_exporter._server import MetricsServer

logger = logging.getLogger("nvml_exporter.exporter")


class Exporter:
    """Owns every long-lived component for one process.

    Lifecycle: ``start()`` initializes the hardware session, registers the
    metric schema, then starts the scrape loop and the HTTP listener.
    ``stop()`` tears them down in reverse order. A failed hardware init
    raises ``HardwareInitError`` before anything is served.
    """

    def __init__(
        self,
        config: ExporterConfig | None = None,
        *,
        enumerator: DeviceEnumerator | None = None,
        reader: SensorReader | None = None,
    ) -> None:
        self.config = config or ExporterConfig()
        self._enumerator = enumerator if enumerator is not None else NvmlDeviceEnumerator()
        self._reader = reader if reader is not None else NvmlSensorReader()

        self.registry = MetricRegistry()
        self.metrics = GpuMetrics(
            self.registry,
            per_device=self.config.per_device,
            normalize_power=self.config.normalize_power,
        )
        self._registered = False
        self._loop: ScrapeLoop | None = None
        self._server: MetricsServer | None = None

    def start(self) -> None:
        """Initialize hardware and start scraping and serving."""
        if self._loop is not None:
            return
        self._enumerator.init()
        if not self._registered:
            self.metrics.register()
            self._registered = True

        self._loop = ScrapeLoop(
            self._enumerator,
            self._reader,
            self.metrics,
            interval_ms=self.config.scrape_interval_ms,
        )
        self._server = MetricsServer(
            self.registry,
            port=self.config.port,
            address=self.config.address,
        )
        try:
            self._server.start()
        except OSError:
            self._server = None
            self._loop = None
            self._enumerator.shutdown()
            raise
        self._loop.start()

    def stop(self) -> None:
        """Stop the loop, close the listener and release the hardware session."""
        if self._loop is not None:
            self._loop.stop()
            self._loop = None
        if self._server is not None:
            self._server.stop()
            self._server = None
        self._enumerator.shutdown()
        logger.info("Exporter stopped")

    @property
    def port(self) -> int | None:
        return self._server.port if self._server is not None else None

    @property
    def loop(self) -> ScrapeLoop | None:
        return self._loop

    def __enter__(self) -> Exporter:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.stop()
