"""Simulator configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SimulatorConfig:
    """Configuración del generador de tráfico."""
    mqtt_host: str
    mqtt_port: int
    devices: int
    bias: Optional[str]
    offline: Optional[str]
    min_interval_seconds: float
    max_interval_seconds: float
    topic_template: str
    once: bool
