"""Monitoring - Stats de ingesta."""

from .stats import Stats

__all__ = ["Stats"]
