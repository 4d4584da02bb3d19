"""Registro en memoria de dispositivos con expiración por TTL.

FUENTE ÚNICA DE VERDAD del último estado de cada dispositivo.

Invariante: justo después de ``prune(now)`` todo registro cumple
``now - observed_at <= ttl``. Ningún otro componente filtra por edad;
los consumidores confían en el registro después de cada prune.

Todas las mutaciones llegan desde un único hilo (``SerialExecutor``);
el lock interno existe para que el endpoint HTTP lea copias coherentes.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Optional

from .domain.device import DeviceRecord, DeviceState

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Mapa device_id → DeviceRecord con TTL y bandera dirty."""

    def __init__(self, ttl_seconds: int = 10) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be > 0, got {ttl_seconds}")
        self._ttl = int(ttl_seconds)
        self._records: Dict[str, DeviceRecord] = {}
        self._dirty = False
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def upsert(
        self,
        device_id: str,
        state: DeviceState,
        timestamp: int,
        signal_strength: Optional[int] = None,
    ) -> None:
        """Reemplaza el registro de ``device_id`` (last write wins, sin merge)."""
        if not isinstance(state, DeviceState):
            raise ValueError(f"unknown device state: {state!r}")

        record = DeviceRecord(
            device_id=device_id,
            state=state,
            observed_at=int(timestamp),
            signal_strength=signal_strength,
        )
        with self._lock:
            self._records[device_id] = record
            self._dirty = True

        logger.debug(
            "[REGISTRY] upsert device=%s state=%s ts=%d rssi=%s",
            device_id,
            state.value,
            record.observed_at,
            signal_strength,
        )

    def remove(self, device_id: str) -> bool:
        """Elimina el dispositivo. Retorna True si existía."""
        with self._lock:
            removed = self._records.pop(device_id, None) is not None
            if removed:
                self._dirty = True
        if removed:
            logger.info("[REGISTRY] device %s offline", device_id)
        return removed

    def prune(self, now: int) -> bool:
        """Elimina registros con edad > TTL. Retorna True si eliminó alguno."""
        with self._lock:
            expired = [
                record
                for record in self._records.values()
                if now - record.observed_at > self._ttl
            ]
            for record in expired:
                del self._records[record.device_id]
            if expired:
                self._dirty = True

        for record in expired:
            logger.info(
                "[REGISTRY] pruning device %s: age=%ds ts=%d now=%d",
                record.device_id,
                now - record.observed_at,
                record.observed_at,
                now,
            )
        return bool(expired)

    def snapshot(self) -> Dict[str, DeviceRecord]:
        """Copia independiente del contenido actual."""
        with self._lock:
            # DeviceRecord es inmutable; basta con copiar el dict
            return dict(self._records)

    def is_dirty(self) -> bool:
        with self._lock:
            return self._dirty

    def clear_dirty(self) -> None:
        with self._lock:
            self._dirty = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, device_id: object) -> bool:
        with self._lock:
            return device_id in self._records
