"""Exporter configuration."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ExporterConfig:
    """Immutable exporter configuration."""

    scrape_interval_ms: int = 5000
    port: int = 8080
    address: str = "0.0.0.0"
    per_device: bool = True
    normalize_power: bool = True
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.scrape_interval_ms <= 0:
            raise ValueError(f"scrape_interval_ms must be positive, got {self.scrape_interval_ms}")
        if not 0 <= self.port <= 65535:
            raise ValueError(f"port must be in [0, 65535], got {self.port}")

    @property
    def scrape_interval_s(self) -> float:
        return self.scrape_interval_ms / 1000.0
