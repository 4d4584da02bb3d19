"""Generación de reportes sintéticos (sin I/O)."""

from __future__ import annotations

import random
import time
from typing import Optional

from aggregator_api.core.domain.device import STATE_ORDER, DeviceState

BIAS_WEIGHT = 4
BASE_WEIGHT = 1


def device_ids(count: int, prefix: str = "mug") -> list[str]:
    """``mug-001``, ``mug-002``, ..."""
    return [f"{prefix}-{i:03d}" for i in range(1, count + 1)]


def pick_state(rng: random.Random, bias: Optional[DeviceState] = None) -> DeviceState:
    """Elige un estado al azar; ``bias`` pesa 4 contra 1 del resto."""
    weights = [BIAS_WEIGHT if state == bias else BASE_WEIGHT for state in STATE_ORDER]
    return rng.choices(STATE_ORDER, weights=weights, k=1)[0]


def build_report(
    device_id: str,
    rng: random.Random,
    bias: Optional[DeviceState] = None,
    now: Optional[int] = None,
) -> dict:
    return {
        "device_id": device_id,
        "state": pick_state(rng, bias).value,
        "rssi": -50 - rng.randint(0, 24),
        "ts": int(time.time()) if now is None else now,
    }


def offline_report() -> dict:
    return {"status": "offline"}
