"""Simulator package: synthetic device-state traffic for local testing.

Modules:
- config: SimulatorConfig dataclass
- traffic: Report generation (weighted state choice, device ids)
- cli: CLI entry point (main)
"""

from .config import SimulatorConfig
from .traffic import build_report, device_ids, pick_state
from .cli import main

__all__ = ["SimulatorConfig", "build_report", "device_ids", "pick_state", "main"]
