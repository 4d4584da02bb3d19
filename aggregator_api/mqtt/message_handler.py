"""Handler de reportes MQTT: valida y aplica un reporte al registro."""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Optional

import orjson

from ..core import metrics
from ..core.monitoring.stats import Stats
from ..core.registry import DeviceRegistry
from ..core.timestamps import sanitize_timestamp
from .topics import device_id_from_topic
from .validators import RejectReason, validate_device_report

logger = logging.getLogger(__name__)


class IngestOutcome(str, Enum):
    """Qué hizo el handler con un reporte."""

    UPSERTED = "upserted"
    REMOVED = "removed"
    IGNORED = "ignored"  # offline de un dispositivo que no estaba registrado
    MALFORMED = "malformed"
    UNKNOWN_STATE = "unknown_state"


class IngestHandler:
    """Aplica reportes al registro.

    Responsabilidades:
    - Parseo de JSON (orjson)
    - Validación contra el esquema cerrado
    - Saneamiento del timestamp
    - upsert / remove en el registro
    - Tracking de estadísticas

    Nunca lanza: un reporte malformado no puede bloquear los siguientes.
    """

    def __init__(self, registry: DeviceRegistry, topic_pattern: str = "mugs/+/state"):
        self._registry = registry
        self._topic_pattern = topic_pattern
        self._stats = Stats()

    def handle_message(self, topic: str, payload: bytes, now: Optional[int] = None) -> IngestOutcome:
        """Punto de entrada desde el transporte: extrae la identidad del topic."""
        device_id = device_id_from_topic(topic, self._topic_pattern)
        if device_id is None:
            self._stats.received += 1
            self._record(IngestOutcome.MALFORMED)
            logger.warning("[INGEST] Ignoring message on unexpected topic %s", topic)
            return IngestOutcome.MALFORMED
        return self.handle(device_id, payload, int(time.time()) if now is None else now)

    def handle(self, device_id: str, raw_payload: bytes, now: int) -> IngestOutcome:
        self._stats.received += 1
        self._stats.last_message_at = time.time()

        data = self._parse_json(raw_payload, device_id)
        if data is None:
            return self._record(IngestOutcome.MALFORMED)

        validation = validate_device_report(data)
        if not validation.valid:
            if validation.reason is RejectReason.UNKNOWN_STATE:
                logger.warning("[INGEST] Ignoring state for %s: %s", device_id, validation.error)
                return self._record(IngestOutcome.UNKNOWN_STATE)
            logger.warning("[INGEST] Invalid report for %s: %s", device_id, validation.error)
            return self._record(IngestOutcome.MALFORMED)

        for warn in validation.warnings:
            logger.debug("[INGEST] Warning: %s", warn)

        payload = validation.payload
        if payload.device_id is not None and payload.device_id != device_id:
            logger.debug(
                "[INGEST] Body device_id=%s differs from topic id=%s (topic wins)",
                payload.device_id,
                device_id,
            )

        if payload.is_offline:
            if self._registry.remove(device_id):
                return self._record(IngestOutcome.REMOVED)
            return self._record(IngestOutcome.IGNORED)

        # Un reloj adelantado (bajo FUTURE_BOUND) no puede quedar con edad negativa
        timestamp = min(sanitize_timestamp(payload.ts_value, now), now)
        if payload.ts is not None and timestamp != payload.ts_value:
            logger.info(
                "[INGEST] corrected timestamp for %s from %s to %d",
                device_id,
                payload.ts_value,
                timestamp,
            )

        self._registry.upsert(
            device_id,
            payload.device_state,
            timestamp,
            payload.signal_strength,
        )
        return self._record(IngestOutcome.UPSERTED)

    def _parse_json(self, payload: bytes, device_id: str) -> Optional[object]:
        """Parsea payload JSON con orjson."""
        try:
            return orjson.loads(payload)
        except orjson.JSONDecodeError as e:
            logger.warning("[INGEST] Ignoring malformed payload for %s: %s", device_id, e)
            return None

    def _record(self, outcome: IngestOutcome) -> IngestOutcome:
        if outcome is IngestOutcome.UPSERTED:
            self._stats.upserted += 1
        elif outcome is IngestOutcome.REMOVED:
            self._stats.removed += 1
        elif outcome is IngestOutcome.IGNORED:
            self._stats.ignored += 1
        elif outcome is IngestOutcome.UNKNOWN_STATE:
            self._stats.unknown_state += 1
        else:
            self._stats.malformed += 1
        metrics.MESSAGES_RECEIVED.labels(status=outcome.value).inc()
        return outcome

    @property
    def stats(self) -> Stats:
        return self._stats
