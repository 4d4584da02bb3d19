"""Tests del servicio ensamblado (sin broker real)."""

import threading
import time

import orjson
import pytest

from aggregator_api.service import AggregatorService

from conftest import MAJORITY_TOPIC, NOW, SNAPSHOT_TOPIC, FakeClock, FakeMQTTClient, make_settings


@pytest.fixture
def fake_mqtt() -> FakeMQTTClient:
    return FakeMQTTClient()


@pytest.fixture
def service(fake_mqtt, clock) -> AggregatorService:
    return AggregatorService(make_settings(tick_seconds=0.05), mqtt_client=fake_mqtt, clock=clock)


def _wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


class TestAggregatorService:

    def test_messages_flow_to_registry_and_majority(self, service, fake_mqtt):
        service.start()
        try:
            for device_id, state in [("a", "green"), ("b", "green"), ("c", "red")]:
                fake_mqtt.deliver(f"mugs/{device_id}/state", orjson.dumps({"state": state}))

            def published_green():
                msgs = fake_mqtt.publisher.on_topic(MAJORITY_TOPIC)
                return bool(msgs) and orjson.loads(msgs[-1].payload)["counts"]["online"] == 3

            assert _wait_for(published_green)
        finally:
            service.stop()

        majority = orjson.loads(fake_mqtt.publisher.on_topic(MAJORITY_TOPIC)[-1].payload)
        assert majority["state"] == "green"
        assert fake_mqtt.publisher.on_topic(MAJORITY_TOPIC)[-1].retain is True
        assert fake_mqtt.publisher.on_topic(SNAPSHOT_TOPIC)[-1].retain is False

    def test_stop_disconnects_after_draining(self, service, fake_mqtt):
        service.start()
        fake_mqtt.deliver("mugs/a/state", orjson.dumps({"state": "blue"}))
        service.stop()

        assert "a" in service.registry
        assert fake_mqtt.disconnect_calls == 1
        assert service.is_running is False

    def test_starts_without_broker(self, clock):
        offline = FakeMQTTClient(connected=False)
        service = AggregatorService(make_settings(), mqtt_client=offline, clock=clock)

        assert service.start() is True
        service.stop()

    def test_query_stats(self, fake_mqtt):
        clock = FakeClock()
        service = AggregatorService(make_settings(), mqtt_client=fake_mqtt, clock=clock)
        service.handler.handle("b", orjson.dumps({"state": "red", "ts": NOW - 4, "rssi": -55}), NOW)
        service.handler.handle("a", orjson.dumps({"state": "green"}), NOW)
        clock.advance(1)

        stats = service.query_stats()

        assert stats["counts"] == {"blue": 0, "green": 1, "yellow": 0, "red": 1}
        assert stats["online"] == 2
        assert stats["ts"] == NOW + 1
        assert stats["devices"] == [
            {"device_id": "a", "state": "green", "ageSec": 1, "lastRssi": None},
            {"device_id": "b", "state": "red", "ageSec": 5, "lastRssi": -55},
        ]

    def test_stats_shape(self, service):
        stats = service.stats
        for key in ("running", "connected", "ingest", "publish", "scheduler", "executor"):
            assert key in stats
        assert stats["running"] is False

    def test_independent_instances(self, clock):
        one = AggregatorService(make_settings(), mqtt_client=FakeMQTTClient(), clock=clock)
        two = AggregatorService(make_settings(), mqtt_client=FakeMQTTClient(), clock=clock)
        one.handler.handle("a", orjson.dumps({"state": "green"}), NOW)

        assert len(one.registry) == 1
        assert len(two.registry) == 0
