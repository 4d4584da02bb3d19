"""Saneamiento de timestamps reportados por dispositivos.

Los dispositivos baratos suelen enviar contadores de uptime
(``millis() / 1000``) o relojes sin sincronizar. Este módulo convierte
esos valores en una estimación de reloj de pared para que el TTL del
registro siga teniendo sentido.

Reglas (en orden):
- ausente / no numérico / no entero / no finito → ``now``
- mayor que ``FUTURE_BOUND`` (año 2033) → ``now``
- más viejo que ``now - STALE_THRESHOLD_SECONDS`` → ``now``
- en otro caso se respeta el valor reportado
"""

from __future__ import annotations

import math
from typing import Any

# Cualquier valor por encima de esto es un contador de uptime, no epoch.
FUTURE_BOUND = 2_000_000_000

STALE_THRESHOLD_SECONDS = 3600


def _as_integral(value: Any) -> int | None:
    # bool es subclase de int; true/false no es un timestamp
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            return None
        return int(value)
    return None


def sanitize_timestamp(reported: Any, now: int) -> int:
    """Normaliza ``reported`` contra ``now``. Nunca lanza excepciones."""
    ts = _as_integral(reported)
    if ts is None:
        return now
    if ts > FUTURE_BOUND:
        return now
    if ts < now - STALE_THRESHOLD_SECONDS:
        return now
    return ts
