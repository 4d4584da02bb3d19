"""Publicación deduplicada hacia el broker.

Varios ticks seguidos suelen observar el mismo agregado. Este módulo
suprime reenvíos byte-idénticos por canal para no generar tráfico ni
despertar a consumidores de mensajes retenidos.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

from ..errors import PublishError
from . import metrics

logger = logging.getLogger(__name__)


class Publisher(Protocol):
    """Interfaz mínima de salida hacia el broker.

    ``publish`` no bloquea esperando confirmación (fire-and-forget) y
    lanza ``PublishError`` si el envío no pudo encolarse.
    """

    def publish(self, topic: str, payload: bytes, retain: bool = False) -> None:
        ...


@dataclass(frozen=True)
class PublishedMessage:
    topic: str
    payload: bytes
    retain: bool


class InMemoryPublisher(Publisher):
    """Publisher en memoria: guarda cada envío en orden.

    Útil para tests y para ejecutar el motor sin broker.
    """

    def __init__(self) -> None:
        self.messages: List[PublishedMessage] = []
        self.fail_next: int = 0

    def publish(self, topic: str, payload: bytes, retain: bool = False) -> None:
        if self.fail_next > 0:
            self.fail_next -= 1
            raise PublishError(topic, "simulated failure")
        self.messages.append(PublishedMessage(topic, payload, retain))

    def on_topic(self, topic: str) -> List[PublishedMessage]:
        return [m for m in self.messages if m.topic == topic]


@dataclass
class PublishStats:
    sent: int = 0
    suppressed: int = 0
    failed: int = 0
    by_channel: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "sent": self.sent,
            "suppressed": self.suppressed,
            "failed": self.failed,
            "by_channel": dict(self.by_channel),
        }


class PublishDeduplicator:
    """Suprime publicaciones idénticas a la última enviada en cada canal.

    La caché vive lo que vive el proceso: un proceso nuevo siempre
    re-anuncia en su primer tick aunque el contenido coincida con lo
    último que publicó el proceso anterior.
    """

    def __init__(self, publisher: Publisher) -> None:
        self._publisher = publisher
        self._last_sent: Dict[str, bytes] = {}
        self._stats = PublishStats()

    def maybe_publish(self, channel: str, payload: bytes, retain: bool) -> bool:
        """Publica si ``payload`` difiere del último envío en ``channel``.

        Returns:
            True si se hizo un envío real.
        """
        if self._last_sent.get(channel) == payload:
            self._stats.suppressed += 1
            metrics.PUBLISHES.labels(channel=channel, result="suppressed").inc()
            return False

        try:
            self._publisher.publish(channel, payload, retain=retain)
        except PublishError as e:
            # No se registra como enviado: el próximo tick reintenta.
            self._stats.failed += 1
            metrics.PUBLISHES.labels(channel=channel, result="failed").inc()
            logger.warning("[PUBLISH] %s", e)
            return False

        self._last_sent[channel] = payload
        self._stats.sent += 1
        self._stats.by_channel[channel] = self._stats.by_channel.get(channel, 0) + 1
        metrics.PUBLISHES.labels(channel=channel, result="sent").inc()
        logger.debug("[PUBLISH] %s retain=%s bytes=%d", channel, retain, len(payload))
        return True

    def last_payload(self, channel: str) -> Optional[bytes]:
        return self._last_sent.get(channel)

    def reset(self) -> None:
        """Olvida todos los envíos previos (equivale a reiniciar el proceso)."""
        self._last_sent.clear()

    @property
    def stats(self) -> PublishStats:
        return self._stats
