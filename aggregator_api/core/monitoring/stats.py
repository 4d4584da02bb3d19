"""Estadísticas de ingesta."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Stats:
    """Estadísticas de procesamiento de reportes de dispositivos."""

    received: int = 0
    upserted: int = 0
    removed: int = 0
    ignored: int = 0
    malformed: int = 0
    unknown_state: int = 0
    last_message_at: float = 0
    started_at: datetime = field(default_factory=_utcnow)

    @property
    def failed(self) -> int:
        return self.malformed + self.unknown_state

    @property
    def processed(self) -> int:
        return self.upserted + self.removed + self.ignored

    def __str__(self) -> str:
        return (
            f"Stats: received={self.received} upserted={self.upserted} "
            f"removed={self.removed} failed={self.failed}"
        )

    def to_dict(self) -> dict:
        """Convierte a diccionario."""
        return {
            "received": self.received,
            "upserted": self.upserted,
            "removed": self.removed,
            "ignored": self.ignored,
            "malformed": self.malformed,
            "unknown_state": self.unknown_state,
            "failed": self.failed,
            "last_message_at": self.last_message_at,
            "started_at": self.started_at.isoformat(),
            "success_rate": self._success_rate(),
        }

    def _success_rate(self) -> float:
        """Calcula tasa de éxito."""
        total = self.processed + self.failed
        if total == 0:
            return 1.0
        return self.processed / total
