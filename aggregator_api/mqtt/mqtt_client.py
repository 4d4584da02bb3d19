"""Cliente MQTT: suscripción a reportes y publicación de agregados."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import paho.mqtt.client as mqtt

from ..core import metrics
from ..errors import PublishError

logger = logging.getLogger(__name__)

MessageCallback = Callable[[str, bytes], None]


class MQTTClient:
    """Cliente MQTT ligero del agregador.

    Responsabilidades:
    - Conexión/desconexión a broker MQTT
    - Reconexión automática con backoff (paho ``reconnect_delay_set``)
    - Re-suscripción en cada (re)conexión
    - Delegación de mensajes a handler
    - Publicación fire-and-forget (implementa ``Publisher``)
    """

    def __init__(
        self,
        broker_host: str = "localhost",
        broker_port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None,
        client_id: str = "aura-aggregator",
        subscribe_topic: str = "mugs/+/state",
        reconnect_min_delay: int = 2,
        reconnect_max_delay: int = 30,
        keepalive: int = 60,
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.username = username
        self.password = password
        self.client_id = f"{client_id}-{int(time.time())}"
        self.subscribe_topic = subscribe_topic
        self.reconnect_min_delay = reconnect_min_delay
        self.reconnect_max_delay = reconnect_max_delay
        self.keepalive = keepalive

        self._client: Optional[mqtt.Client] = None
        self._connected = False
        self._connect_count = 0
        self._message_handler: Optional[MessageCallback] = None

    def set_message_handler(self, handler: MessageCallback) -> None:
        """Configura el handler de mensajes."""
        self._message_handler = handler

    def _build_client(self) -> mqtt.Client:
        client = mqtt.Client(
            client_id=self.client_id,
            protocol=mqtt.MQTTv311,
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        )
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        client.reconnect_delay_set(
            min_delay=self.reconnect_min_delay,
            max_delay=self.reconnect_max_delay,
        )
        if self.username and self.password:
            client.username_pw_set(self.username, self.password)
        return client

    def connect(self, wait_seconds: float = 5.0) -> bool:
        """Conecta al broker e inicia el loop de red.

        Si el broker no está disponible, el loop de paho sigue
        reintentando en segundo plano; retorna False pero no aborta.
        """
        self._client = self._build_client()
        logger.info("[MQTT] Connecting to %s:%d", self.broker_host, self.broker_port)

        try:
            # connect_async: el primer intento y los reintentos los hace el loop
            self._client.connect_async(self.broker_host, self.broker_port, keepalive=self.keepalive)
            self._client.loop_start()
        except Exception as e:
            logger.exception("[MQTT] Connection setup failed: %s", e)
            return False

        deadline = time.monotonic() + wait_seconds
        while time.monotonic() < deadline:
            if self._connected:
                return True
            time.sleep(0.1)

        logger.warning(
            "[MQTT] Broker not reachable yet at %s:%d, retrying in background",
            self.broker_host,
            self.broker_port,
        )
        return False

    def disconnect(self) -> None:
        """Desconecta del broker.

        ``disconnect()`` antes de ``loop_stop()`` para que el loop termine
        de enviar lo que ya estaba encolado.
        """
        if self._client:
            try:
                self._client.disconnect()
                self._client.loop_stop()
            except Exception as e:
                logger.warning("[MQTT] Disconnect error: %s", e)
        self._connected = False
        metrics.MQTT_CONNECTED.set(0)

    def publish(self, topic: str, payload: bytes, retain: bool = False) -> None:
        """Publica sin esperar confirmación. Lanza ``PublishError`` si falla."""
        if self._client is None:
            raise PublishError(topic, "client not started")

        info = self._client.publish(topic, payload, qos=0, retain=retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(topic, mqtt.error_string(info.rc))

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        """Callback de conexión."""
        if reason_code == 0:
            self._connected = True
            self._connect_count += 1
            metrics.MQTT_CONNECTED.set(1)
            if self._connect_count > 1:
                metrics.MQTT_RECONNECTS.inc()
                logger.info("[MQTT] Reconnected to broker (reconnects=%d)", self.reconnect_count)
            else:
                logger.info("[MQTT] Connected to %s:%d", self.broker_host, self.broker_port)

            client.subscribe(self.subscribe_topic, qos=1)
            logger.info("[MQTT] Subscribed to %s", self.subscribe_topic)
        else:
            self._connected = False
            metrics.MQTT_CONNECTED.set(0)
            logger.error("[MQTT] Connection refused: %s", reason_code)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        """Callback de desconexión (paho reintenta solo)."""
        self._connected = False
        metrics.MQTT_CONNECTED.set(0)
        logger.warning("[MQTT] Disconnected (%s), reconnecting...", reason_code)

    def _on_message(self, client, userdata, msg):
        """Callback de mensaje - delega al handler."""
        if self._message_handler:
            self._message_handler(msg.topic, msg.payload)

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def reconnect_count(self) -> int:
        return max(0, self._connect_count - 1)
