"""Pull endpoint serving the registry in the Prometheus text format."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, start_http_server

if TYPE_CHECKING:
    from wsgiref.simple_server import WSGIServer

    from nvml_exporter._registry import MetricRegistry

logger = logging.getLogger("nvml_exporter.server")


class MetricsServer:
    """HTTP listener exposing a ``MetricRegistry`` at ``/metrics``.

    The server only reads the registry; it never triggers or waits on a scrape.
    """

    def __init__(
        self,
        registry: MetricRegistry,
        *,
        port: int = 8080,
        address: str = "0.0.0.0",
    ) -> None:
        self.collector_registry = CollectorRegistry()
        self.collector_registry.register(registry)
        self._address = address
        self._requested_port = port
        self._httpd: WSGIServer | None = None
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Bind the listener and serve in a daemon thread."""
        if self._httpd is not None:
            return
        self._httpd, self._thread = start_http_server(
            self._requested_port, addr=self._address, registry=self.collector_registry
        )
        logger.info("Serving metrics on http://%s:%d/metrics", self._address, self.port)

    def stop(self) -> None:
        """Stop accepting requests and close the listening socket."""
        if self._httpd is None:
            return
        self._httpd.shutdown()
        self._httpd.server_close()
        self._httpd = None
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None

    @property
    def port(self) -> int:
        """Bound port, or the requested one before ``start()``."""
        if self._httpd is not None:
            return self._httpd.server_port
        return self._requested_port

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
