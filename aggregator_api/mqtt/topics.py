"""Extracción de identidad desde el topic MQTT.

La identidad del dispositivo sale del segmento del topic
(``mugs/<device_id>/state``), nunca del cuerpo del mensaje.
"""

from __future__ import annotations

from typing import Optional


def device_id_from_topic(topic: str, pattern: str = "mugs/+/state") -> Optional[str]:
    """Retorna el segmento que ocupa el ``+`` del patrón, o None si no coincide.

    >>> device_id_from_topic("mugs/mug-001/state")
    'mug-001'
    >>> device_id_from_topic("mugs//state") is None
    True
    """
    pattern_parts = pattern.split("/")
    if "+" not in pattern_parts:
        raise ValueError(f"topic pattern needs a '+' segment: {pattern!r}")

    topic_parts = topic.split("/")
    if len(topic_parts) != len(pattern_parts):
        return None

    device_id = None
    for expected, actual in zip(pattern_parts, topic_parts):
        if expected == "+":
            device_id = actual
        elif expected != actual:
            return None

    return device_id or None
