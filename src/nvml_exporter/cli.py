"""Command-line entry point (Click-based)."""

from __future__ import annotations

import logging
import signal
import threading
from types import FrameType

import click

from nvml_exporter._app import Exporter
from nvml_exporter._config import ExporterConfig
from nvml_exporter._errors import HardwareInitError

logger = logging.getLogger("nvml_exporter.cli")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _wait_for_signal(stop: threading.Event) -> None:
    def handler(signum: int, frame: FrameType | None) -> None:
        logger.info("Received %s, shutting down", signal.Signals(signum).name)
        stop.set()

    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)
    while not stop.wait(timeout=1.0):
        pass


@click.command(help="Export NVIDIA GPU telemetry as Prometheus metrics.")
@click.option(
    "--interval-ms",
    "scrape_interval_ms",
    type=click.IntRange(min=1),
    default=5000,
    show_default=True,
    envvar="NVML_EXPORTER_INTERVAL_MS",
    help="Milliseconds between scrape cycles.",
)
@click.option(
    "--port",
    type=click.IntRange(0, 65535),
    default=8080,
    show_default=True,
    envvar="NVML_EXPORTER_PORT",
    help="TCP port for the metrics endpoint.",
)
@click.option(
    "--address",
    default="0.0.0.0",
    show_default=True,
    envvar="NVML_EXPORTER_ADDRESS",
    help="Address to bind the metrics endpoint to.",
)
@click.option(
    "--per-device/--no-per-device",
    default=True,
    show_default=True,
    help="Label gauges by device index instead of exposing one unlabeled set.",
)
@click.option(
    "--raw-power",
    is_flag=True,
    help="Expose power draw in native milliwatts instead of watts.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    show_default=True,
    envvar="NVML_EXPORTER_LOG_LEVEL",
)
def main(
    scrape_interval_ms: int,
    port: int,
    address: str,
    per_device: bool,
    raw_power: bool,
    log_level: str,
) -> None:
    """Run the exporter until SIGINT or SIGTERM."""
    try:
        config = ExporterConfig(
            scrape_interval_ms=scrape_interval_ms,
            port=port,
            address=address,
            per_device=per_device,
            normalize_power=not raw_power,
            log_level=log_level.upper(),
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc

    logging.basicConfig(level=config.log_level, format=LOG_FORMAT)

    exporter = Exporter(config)
    try:
        exporter.start()
    except HardwareInitError as exc:
        logger.critical("%s", exc)
        raise SystemExit(1) from exc
    except OSError as exc:
        raise click.ClickException(f"cannot listen on {address}:{port}: {exc}") from exc

    try:
        _wait_for_signal(threading.Event())
    finally:
        exporter.stop()


__all__ = ["main"]
