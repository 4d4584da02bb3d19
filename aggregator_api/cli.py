"""CLI entry point for the aggregator service."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import socket
import sys
from typing import Optional, Sequence

import uvicorn

from common.config import Settings, get_settings

from .errors import StartupError
from .main import create_app
from .service import AggregatorService

logger = logging.getLogger(__name__)

# Niveles que aceptan tanto logging como uvicorn
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Device-state majority aggregator (MQTT + HTTP stats)")
    p.add_argument("--mqtt-host", help="broker host (MQTT_HOST)")
    p.add_argument("--mqtt-port", type=int, help="broker port (MQTT_PORT)")
    p.add_argument("--ttl", type=int, dest="ttl_seconds", help="device TTL in seconds (TTL_SECONDS)")
    p.add_argument("--tick", type=float, dest="tick_seconds", help="tick period in seconds (TICK_SECONDS)")
    p.add_argument("--http-host", help="stats endpoint bind host (HTTP_HOST)")
    p.add_argument("--http-port", type=int, help="stats endpoint port (HTTP_PORT)")
    p.add_argument("--log-level", help="log level (LOG_LEVEL)")
    return p


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Los flags de CLI pisan los valores del entorno."""
    overrides = {
        name: value
        for name, value in vars(args).items()
        if value is not None and name in {f.name for f in dataclasses.fields(Settings)}
    }
    if "log_level" in overrides:
        overrides["log_level"] = overrides["log_level"].upper()
    for name in ("ttl_seconds", "tick_seconds", "http_port", "mqtt_port"):
        if name in overrides and overrides[name] <= 0:
            raise ValueError(f"--{name.replace('_', '-')} must be > 0")
    return dataclasses.replace(settings, **overrides)


def bind_http_socket(host: str, port: int) -> socket.socket:
    """Abre el puerto HTTP antes de arrancar nada más.

    Si no se puede abrir, el arranque es fatal (sin modo degradado).
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError as e:
        sock.close()
        raise StartupError(f"cannot bind http server on {host}:{port}: {e}") from e
    sock.set_inheritable(True)
    return sock


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = apply_overrides(get_settings(), args)
        if settings.log_level not in LOG_LEVELS:
            raise ValueError(f"unknown log level {settings.log_level!r} (valid: {', '.join(LOG_LEVELS)})")
    except ValueError as e:
        print(f"invalid configuration: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    try:
        sock = bind_http_socket(settings.http_host, settings.http_port)
    except StartupError as e:
        logger.error("[SERVICE] failed to start http server: %s", e)
        return 1

    service = AggregatorService(settings)
    app = create_app(service)
    server = uvicorn.Server(
        uvicorn.Config(app, log_level=settings.log_level.lower(), access_log=False)
    )

    service.start()
    logger.info("[SERVICE] http server listening on http://%s:%d", settings.http_host, settings.http_port)
    try:
        # uvicorn instala los handlers de SIGINT/SIGTERM y retorna al recibirlos
        server.run(sockets=[sock])
    finally:
        service.stop()
        sock.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
