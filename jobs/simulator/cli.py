"""CLI entry point for the traffic simulator.

Publica reportes sintéticos en ``mugs/<id>/state`` (retenidos) cada
1–2 s por dispositivo. Herramienta de desarrollo; no forma parte del motor.
"""

from __future__ import annotations

import argparse
import logging
import random
import signal
import sys
import threading
import time
from typing import Optional, Sequence

import orjson
import paho.mqtt.client as mqtt

from aggregator_api.core.domain.device import DeviceState
from common.config import get_settings

from .config import SimulatorConfig
from .traffic import build_report, device_ids, offline_report

logger = logging.getLogger(__name__)


def parse_config(argv: Optional[Sequence[str]] = None) -> SimulatorConfig:
    settings = get_settings()

    p = argparse.ArgumentParser(description="Synthetic device-state traffic generator")
    p.add_argument("--mqtt-host", default=settings.mqtt_host)
    p.add_argument("--mqtt-port", type=int, default=settings.mqtt_port)
    p.add_argument("--devices", type=int, default=8)
    p.add_argument("--major", help="bias the majority towards this state")
    p.add_argument("--offline", help="device id to mark offline and not simulate")
    p.add_argument("--min-interval", type=float, default=1.0)
    p.add_argument("--max-interval", type=float, default=2.0)
    p.add_argument("--topic-template", default="mugs/{device_id}/state")
    p.add_argument("--once", action="store_true", help="publish a single round and exit")
    args = p.parse_args(argv)

    if args.devices <= 0:
        p.error("--devices must be > 0")
    if not 0 < args.min_interval <= args.max_interval:
        p.error("--min-interval must be > 0 and <= --max-interval")

    return SimulatorConfig(
        mqtt_host=args.mqtt_host,
        mqtt_port=args.mqtt_port,
        devices=args.devices,
        bias=args.major,
        offline=args.offline,
        min_interval_seconds=args.min_interval,
        max_interval_seconds=args.max_interval,
        topic_template=args.topic_template,
        once=bool(args.once),
    )


def _publish(client: mqtt.Client, topic: str, document: dict) -> None:
    info = client.publish(topic, orjson.dumps(document), qos=0, retain=True)
    if info.rc != mqtt.MQTT_ERR_SUCCESS:
        logger.error("[SIM] Failed to publish state for %s: %s", topic, mqtt.error_string(info.rc))


def run(cfg: SimulatorConfig, stop_event: threading.Event) -> None:
    bias = DeviceState.parse(cfg.bias) if cfg.bias else None
    if cfg.bias and bias is None:
        logger.warning("[SIM] Ignoring unsupported major colour: %s", cfg.bias)

    active = [d for d in device_ids(cfg.devices) if d != cfg.offline]
    rng = random.Random()

    client = mqtt.Client(
        client_id=f"simulator-{rng.getrandbits(24):06x}",
        protocol=mqtt.MQTTv311,
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
    )
    client.reconnect_delay_set(min_delay=2, max_delay=30)
    client.connect(cfg.mqtt_host, cfg.mqtt_port, keepalive=60)
    client.loop_start()
    logger.info("[SIM] Connected to mqtt://%s:%d devices=%d", cfg.mqtt_host, cfg.mqtt_port, len(active))

    try:
        if cfg.offline:
            _publish(client, cfg.topic_template.format(device_id=cfg.offline), offline_report())
            logger.info("[SIM] Marked %s as offline.", cfg.offline)
        if bias is not None:
            logger.info("[SIM] Biasing majority colour towards %s.", bias.value)

        if cfg.once:
            for device_id in active:
                _publish(client, cfg.topic_template.format(device_id=device_id), build_report(device_id, rng, bias))
            return

        next_at = {
            device_id: time.monotonic() + rng.uniform(cfg.min_interval_seconds, cfg.max_interval_seconds)
            for device_id in active
        }
        while not stop_event.is_set():
            device_id = min(next_at, key=next_at.get)
            delay = next_at[device_id] - time.monotonic()
            if delay > 0 and stop_event.wait(delay):
                break
            _publish(client, cfg.topic_template.format(device_id=device_id), build_report(device_id, rng, bias))
            next_at[device_id] = time.monotonic() + rng.uniform(cfg.min_interval_seconds, cfg.max_interval_seconds)
    finally:
        logger.info("[SIM] Simulator shutting down")
        client.disconnect()
        client.loop_stop()


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )
    cfg = parse_config(argv)

    stop_event = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop_event.set())
    signal.signal(signal.SIGTERM, lambda *_: stop_event.set())

    try:
        run(cfg, stop_event)
    except OSError as e:
        logger.error("[SIM] Cannot connect to mqtt://%s:%d: %s", cfg.mqtt_host, cfg.mqtt_port, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
