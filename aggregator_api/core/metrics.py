"""Métricas Prometheus del agregador."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Info

MESSAGES_RECEIVED = Counter(
    "aggregator_messages_received_total",
    "Total device reports received",
    ["status"],  # upserted, removed, ignored, malformed, unknown_state
)

PUBLISHES = Counter(
    "aggregator_publishes_total",
    "Publish attempts per output channel",
    ["channel", "result"],  # sent, suppressed, failed
)

TICKS = Counter(
    "aggregator_ticks_total",
    "Aggregation ticks executed",
)

TICK_ERRORS = Counter(
    "aggregator_tick_errors_total",
    "Ticks that raised an unexpected error",
)

DEVICES_ONLINE = Gauge(
    "aggregator_devices_online",
    "Devices currently present in the registry",
)

STATE_COUNT = Gauge(
    "aggregator_state_devices",
    "Devices per reported state",
    ["state"],
)

MQTT_CONNECTED = Gauge(
    "aggregator_mqtt_connected",
    "MQTT connection status",
)

MQTT_RECONNECTS = Counter(
    "aggregator_mqtt_reconnects_total",
    "MQTT reconnections after the first connect",
)

MAJORITY = Info(
    "aggregator_majority",
    "Current majority state",
)
