"""Modelo de dominio para dispositivos y vista de mayoría."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional


class DeviceState(str, Enum):
    """Estados que puede reportar un dispositivo.

    Conjunto cerrado. Un dispositivo sin registro se considera offline;
    "offline" no es miembro del enum.
    """

    BLUE = "blue"
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"

    @classmethod
    def parse(cls, value: object) -> Optional["DeviceState"]:
        """Retorna el estado o None si el valor no pertenece al enum."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


# Orden fijo para conteos y desempate. No depende del orden del registro.
STATE_ORDER: tuple[DeviceState, ...] = (
    DeviceState.BLUE,
    DeviceState.GREEN,
    DeviceState.YELLOW,
    DeviceState.RED,
)

OFFLINE_MARKER = "offline"


@dataclass(frozen=True)
class DeviceRecord:
    """Último estado conocido de un dispositivo."""

    device_id: str
    state: DeviceState
    observed_at: int  # epoch seconds, ya saneado
    signal_strength: Optional[int] = None

    def age_seconds(self, now: int) -> int:
        return now - self.observed_at


@dataclass(frozen=True)
class MajorityView:
    """Vista derivada del registro. Se reemplaza en cada tick, nunca se muta."""

    winning_state: DeviceState
    counts: Mapping[DeviceState, int] = field(default_factory=dict)
    online_total: int = 0
    computed_at: int = 0

    def count_for(self, state: DeviceState) -> int:
        return self.counts.get(state, 0)

    def same_content(self, other: Optional["MajorityView"]) -> bool:
        """True si ganador y conteos coinciden (ignora computed_at)."""
        if other is None:
            return False
        return (
            self.winning_state == other.winning_state
            and self.online_total == other.online_total
            and dict(self.counts) == dict(other.counts)
        )
