"""Fixtures compartidas: reloj falso, publisher en memoria y servicio sin broker."""

from __future__ import annotations

import pytest

from aggregator_api.core.publishing import InMemoryPublisher, PublishDeduplicator
from aggregator_api.core.registry import DeviceRegistry
from aggregator_api.core.scheduler import AggregationScheduler
from aggregator_api.mqtt.message_handler import IngestHandler
from common.config import Settings

NOW = 1_760_000_000
TTL = 10
MAJORITY_TOPIC = "dashboard/majority"
SNAPSHOT_TOPIC = "dashboard/snapshot"


class FakeClock:
    """Reloj controlable en segundos enteros."""

    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


class FakeMQTTClient:
    """Sustituto del MQTTClient: sin red, registra lo publicado."""

    def __init__(self, connected: bool = True):
        self.publisher = InMemoryPublisher()
        self.handler = None
        self.connected = connected
        self.connect_calls = 0
        self.disconnect_calls = 0

    def set_message_handler(self, handler):
        self.handler = handler

    def connect(self) -> bool:
        self.connect_calls += 1
        return self.connected

    def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.connected = False

    def publish(self, topic, payload, retain=False):
        self.publisher.publish(topic, payload, retain=retain)

    def deliver(self, topic: str, payload: bytes) -> None:
        """Simula la llegada de un mensaje desde el broker."""
        self.handler(topic, payload)

    @property
    def is_connected(self) -> bool:
        return self.connected

    @property
    def reconnect_count(self) -> int:
        return 0


def make_settings(**overrides) -> Settings:
    values = dict(
        mqtt_host="localhost",
        mqtt_port=1883,
        mqtt_username=None,
        mqtt_password=None,
        mqtt_client_id="test-aggregator",
        mqtt_reconnect_min_seconds=2,
        mqtt_reconnect_max_seconds=30,
        state_topic="mugs/+/state",
        majority_topic=MAJORITY_TOPIC,
        snapshot_topic=SNAPSHOT_TOPIC,
        ttl_seconds=TTL,
        tick_seconds=1.0,
        http_host="127.0.0.1",
        http_port=4000,
        log_level="INFO",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry() -> DeviceRegistry:
    return DeviceRegistry(ttl_seconds=TTL)


@pytest.fixture
def publisher() -> InMemoryPublisher:
    return InMemoryPublisher()


@pytest.fixture
def deduplicator(publisher) -> PublishDeduplicator:
    return PublishDeduplicator(publisher)


@pytest.fixture
def scheduler(registry, deduplicator, clock) -> AggregationScheduler:
    return AggregationScheduler(
        registry,
        deduplicator,
        majority_topic=MAJORITY_TOPIC,
        snapshot_topic=SNAPSHOT_TOPIC,
        clock=clock,
    )


@pytest.fixture
def handler(registry) -> IngestHandler:
    return IngestHandler(registry)


@pytest.fixture
def settings() -> Settings:
    return make_settings()
