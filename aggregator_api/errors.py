"""Excepciones del agregador."""

from __future__ import annotations


class AggregatorError(Exception):
    """Base de errores del agregador."""


class PublishError(AggregatorError):
    """Fallo transitorio al publicar en el broker.

    El siguiente tick recalcula y vuelve a intentar; no hay cola de reintentos.
    """

    def __init__(self, topic: str, reason: str) -> None:
        super().__init__(f"publish to {topic} failed: {reason}")
        self.topic = topic
        self.reason = reason


class StartupError(AggregatorError):
    """Fallo fatal de arranque (p. ej. no se puede abrir el puerto HTTP)."""
