"""Cálculo de la mayoría sobre el contenido del registro.

Función pura: mismo input, mismo output (incluido el desempate).
"""

from __future__ import annotations

from typing import Mapping

from .domain.device import STATE_ORDER, DeviceRecord, DeviceState, MajorityView


def count_states(records: Mapping[str, DeviceRecord]) -> dict[DeviceState, int]:
    """Cuenta registros por estado. Siempre incluye los cuatro estados."""
    counts = {state: 0 for state in STATE_ORDER}
    for record in records.values():
        counts[record.state] += 1
    return counts


def compute_majority(records: Mapping[str, DeviceRecord], now: int = 0) -> MajorityView:
    """Calcula el estado ganador.

    Recorre ``STATE_ORDER`` una sola vez con comparación estricta ``>``:
    en empate gana el primer estado del orden. Con cero registros gana
    ``STATE_ORDER[0]`` y todos los conteos son 0.
    """
    counts = count_states(records)

    winner = STATE_ORDER[0]
    max_count = -1
    for state in STATE_ORDER:
        if counts[state] > max_count:
            winner = state
            max_count = counts[state]

    return MajorityView(
        winning_state=winner,
        counts=counts,
        online_total=sum(counts.values()),
        computed_at=now,
    )
