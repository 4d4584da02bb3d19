"""MQTT - Transporte e ingesta de reportes de dispositivos.

Estructura modular:
- mqtt_client.py: Conexión, suscripción y publicación (paho-mqtt)
- topics.py: Identidad del dispositivo desde el topic
- validators.py: Esquema cerrado de reportes (pydantic)
- message_handler.py: IngestHandler (registro + saneamiento de ts)
"""

from .message_handler import IngestHandler, IngestOutcome
from .mqtt_client import MQTTClient
from .topics import device_id_from_topic
from .validators import DeviceReportPayload, ValidationResult, validate_device_report

__all__ = [
    "IngestHandler",
    "IngestOutcome",
    "MQTTClient",
    "device_id_from_topic",
    "DeviceReportPayload",
    "ValidationResult",
    "validate_device_report",
]
