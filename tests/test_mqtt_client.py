"""Tests del cliente MQTT con paho mockeado (sin broker)."""

from unittest.mock import MagicMock, patch

import paho.mqtt.client as mqtt
import pytest

from aggregator_api.errors import PublishError
from aggregator_api.mqtt.mqtt_client import MQTTClient


@pytest.fixture
def paho_client():
    """Mock de paho.mqtt.client.Client."""
    client = MagicMock()
    client.publish.return_value = MagicMock(rc=mqtt.MQTT_ERR_SUCCESS)
    return client


@pytest.fixture
def client(paho_client):
    with patch("aggregator_api.mqtt.mqtt_client.mqtt.Client", return_value=paho_client):
        c = MQTTClient(subscribe_topic="mugs/+/state", reconnect_min_delay=2, reconnect_max_delay=30)
        c.connect(wait_seconds=0)
    return c


# =============================================================================
# CONEXIÓN Y RECONEXIÓN
# =============================================================================

class TestConnection:

    def test_connect_configures_backoff_and_starts_loop(self, client, paho_client):
        paho_client.reconnect_delay_set.assert_called_once_with(min_delay=2, max_delay=30)
        paho_client.connect_async.assert_called_once()
        paho_client.loop_start.assert_called_once()
        assert client.is_connected is False

    def test_subscribes_on_every_connect(self, client, paho_client):
        client._on_connect(paho_client, None, {}, 0)
        client._on_disconnect(paho_client, None, {}, 7)
        client._on_connect(paho_client, None, {}, 0)

        assert paho_client.subscribe.call_count == 2
        paho_client.subscribe.assert_called_with("mugs/+/state", qos=1)
        assert client.is_connected is True
        assert client.reconnect_count == 1

    def test_refused_connection_stays_disconnected(self, client, paho_client):
        client._on_connect(paho_client, None, {}, 5)

        assert client.is_connected is False
        paho_client.subscribe.assert_not_called()

    def test_disconnect_before_loop_stop(self, client, paho_client):
        calls = []
        paho_client.disconnect.side_effect = lambda: calls.append("disconnect")
        paho_client.loop_stop.side_effect = lambda: calls.append("loop_stop")

        client.disconnect()

        assert calls == ["disconnect", "loop_stop"]
        assert client.is_connected is False


# =============================================================================
# MENSAJES Y PUBLICACIÓN
# =============================================================================

class TestMessaging:

    def test_messages_are_delegated(self, client, paho_client):
        received = []
        client.set_message_handler(lambda topic, payload: received.append((topic, payload)))

        client._on_message(paho_client, None, MagicMock(topic="mugs/a/state", payload=b"{}"))

        assert received == [("mugs/a/state", b"{}")]

    def test_publish_passes_retain_flag(self, client, paho_client):
        client.publish("dashboard/majority", b"{}", retain=True)
        paho_client.publish.assert_called_once_with("dashboard/majority", b"{}", qos=0, retain=True)

    def test_publish_failure_raises(self, client, paho_client):
        paho_client.publish.return_value = MagicMock(rc=mqtt.MQTT_ERR_NO_CONN)

        with pytest.raises(PublishError):
            client.publish("dashboard/snapshot", b"{}")

    def test_publish_before_connect_raises(self):
        with pytest.raises(PublishError):
            MQTTClient().publish("dashboard/majority", b"{}")
