"""Servicio agregador - Punto de ensamblado del motor.

Usa la arquitectura modular:
- mqtt/     → Cliente MQTT + IngestHandler
- core/     → Registro, mayoría, publicación deduplicada, scheduler
- executor  → Único hilo escritor del registro

Flujo:
  paho thread  ──submit(handle_message)──┐
                                          ├─→ SerialExecutor (1 hilo) → registry
  tick trigger ──submit(safe_tick)───────┘
"""

from __future__ import annotations

import logging
from typing import Optional

from common.config import Settings

from .core.domain.device import STATE_ORDER
from .core.executor import SerialExecutor
from .core.majority import count_states
from .core.publishing import PublishDeduplicator, Publisher
from .core.registry import DeviceRegistry
from .core.scheduler import AggregationScheduler, Clock, IntervalTrigger, wall_clock
from .mqtt.message_handler import IngestHandler
from .mqtt.mqtt_client import MQTTClient

logger = logging.getLogger(__name__)


class AggregatorService:
    """Agregador con arquitectura modular.

    Componentes:
    - DeviceRegistry: estado por dispositivo con TTL
    - IngestHandler: reportes → registro
    - AggregationScheduler: prune → mayoría → publicación
    - SerialExecutor: serializa ingest y ticks
    - IntervalTrigger: dispara ticks cada ``tick_seconds``
    - MQTTClient: transporte (entrada y salida)
    """

    def __init__(
        self,
        settings: Settings,
        *,
        mqtt_client: Optional[MQTTClient] = None,
        publisher: Optional[Publisher] = None,
        clock: Optional[Clock] = None,
    ):
        self._settings = settings
        self._clock = clock or wall_clock

        self._mqtt = mqtt_client or MQTTClient(
            broker_host=settings.mqtt_host,
            broker_port=settings.mqtt_port,
            username=settings.mqtt_username,
            password=settings.mqtt_password,
            client_id=settings.mqtt_client_id,
            subscribe_topic=settings.state_topic,
            reconnect_min_delay=settings.mqtt_reconnect_min_seconds,
            reconnect_max_delay=settings.mqtt_reconnect_max_seconds,
        )

        self.registry = DeviceRegistry(ttl_seconds=settings.ttl_seconds)
        self.deduplicator = PublishDeduplicator(publisher or self._mqtt)
        self.scheduler = AggregationScheduler(
            self.registry,
            self.deduplicator,
            majority_topic=settings.majority_topic,
            snapshot_topic=settings.snapshot_topic,
            clock=self._clock,
        )
        self.handler = IngestHandler(self.registry, topic_pattern=settings.state_topic)

        self._executor = SerialExecutor()
        self._trigger = IntervalTrigger(settings.tick_seconds, self._enqueue_tick)
        self._running = False

    def start(self) -> bool:
        """Inicia el servicio.

        Un broker inaccesible no es fatal: paho reintenta con backoff y el
        motor sigue operando (y expirando por TTL) mientras tanto.
        """
        if self._running:
            return True

        self._executor.start()
        self._mqtt.set_message_handler(self._on_message)
        if not self._mqtt.connect():
            logger.warning("[SERVICE] Starting without broker connection")

        self._trigger.start()
        self._running = True
        logger.info(
            "[SERVICE] Started ttl=%ds tick=%.2fs topics in=%s out=%s,%s",
            self._settings.ttl_seconds,
            self._settings.tick_seconds,
            self._settings.state_topic,
            self._settings.majority_topic,
            self._settings.snapshot_topic,
        )
        return True

    def stop(self) -> None:
        """Detiene el servicio drenando el trabajo pendiente antes de desconectar."""
        if not self._running:
            return
        self._running = False

        logger.info("[SERVICE] shutting down")
        self._trigger.stop()
        self._executor.stop(drain=True)
        self._mqtt.disconnect()
        logger.info("[SERVICE] Stopped. %s", self.handler.stats)

    def _on_message(self, topic: str, payload: bytes) -> None:
        # Hilo de paho: solo encolar
        now = int(self._clock())
        self._executor.submit(lambda: self.handler.handle_message(topic, payload, now))

    def _enqueue_tick(self) -> None:
        self._executor.submit(self.scheduler.safe_tick)

    def query_stats(self) -> dict:
        """Vista de solo lectura para el endpoint /stats.

        Se deriva de ``registry.snapshot()``; no toca estado interno del motor.
        """
        now = int(self._clock())
        records = self.registry.snapshot()
        counts = count_states(records)
        devices = [
            {
                "device_id": record.device_id,
                "state": record.state.value,
                "ageSec": max(0, record.age_seconds(now)),
                "lastRssi": record.signal_strength,
            }
            for record in sorted(records.values(), key=lambda r: r.device_id)
        ]
        return {
            "counts": {state.value: counts[state] for state in STATE_ORDER},
            "online": sum(counts.values()),
            "devices": devices,
            "ts": now,
        }

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_connected(self) -> bool:
        return self._mqtt.is_connected

    @property
    def stats(self) -> dict:
        """Estadísticas del servicio."""
        return {
            "running": self._running,
            "connected": self.is_connected,
            "reconnects": self._mqtt.reconnect_count,
            "broker": f"{self._settings.mqtt_host}:{self._settings.mqtt_port}",
            "devices_online": len(self.registry),
            "ingest": self.handler.stats.to_dict(),
            "publish": self.deduplicator.stats.to_dict(),
            "scheduler": self.scheduler.stats,
            "executor": self._executor.metrics,
        }
