"""HTTP endpoints del agregador."""

from .health import router as health_router
from .stats import router as stats_router

__all__ = ["health_router", "stats_router"]
