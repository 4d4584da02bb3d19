from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _default_env_file() -> str:
    # .env junto al directorio de trabajo (mismo archivo que usa el simulador).
    return str(Path.cwd() / ".env")


@dataclass(frozen=True)
class Settings:
    mqtt_host: str
    mqtt_port: int
    mqtt_username: str | None
    mqtt_password: str | None
    mqtt_client_id: str
    mqtt_reconnect_min_seconds: int
    mqtt_reconnect_max_seconds: int

    state_topic: str
    majority_topic: str
    snapshot_topic: str

    ttl_seconds: int
    tick_seconds: float

    http_host: str
    http_port: int

    log_level: str


def _int_env(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, str(default))
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be > 0, got {value}")
    return value


def get_settings() -> Settings:
    # Carga el .env (si existe) sin pisar variables reales del entorno.
    env_file = os.getenv("AGGREGATOR_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    reconnect_min = _int_env("MQTT_RECONNECT_MIN_SECONDS", 2, minimum=1)
    reconnect_max = _int_env("MQTT_RECONNECT_MAX_SECONDS", 30, minimum=1)
    if reconnect_max < reconnect_min:
        raise ValueError(
            f"MQTT_RECONNECT_MAX_SECONDS ({reconnect_max}) must be >= "
            f"MQTT_RECONNECT_MIN_SECONDS ({reconnect_min})"
        )

    return Settings(
        mqtt_host=os.getenv("MQTT_HOST", "localhost"),
        mqtt_port=_int_env("MQTT_PORT", 1883, minimum=1),
        mqtt_username=os.getenv("MQTT_USERNAME") or None,
        mqtt_password=os.getenv("MQTT_PASSWORD") or None,
        mqtt_client_id=os.getenv("MQTT_CLIENT_ID", "aura-aggregator"),
        mqtt_reconnect_min_seconds=reconnect_min,
        mqtt_reconnect_max_seconds=reconnect_max,
        state_topic=os.getenv("STATE_TOPIC", "mugs/+/state"),
        majority_topic=os.getenv("MAJORITY_TOPIC", "dashboard/majority"),
        snapshot_topic=os.getenv("SNAPSHOT_TOPIC", "dashboard/snapshot"),
        ttl_seconds=_int_env("TTL_SECONDS", 10, minimum=1),
        tick_seconds=_float_env("TICK_SECONDS", 1.0),
        http_host=os.getenv("HTTP_HOST", "0.0.0.0"),
        http_port=_int_env("HTTP_PORT", 4000, minimum=1),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
