from __future__ import annotations

from fastapi import FastAPI

from .endpoints import health_router, stats_router
from .service import AggregatorService


def create_app(service: AggregatorService) -> FastAPI:
    """App HTTP de solo lectura sobre un servicio ya construido.

    El ciclo de vida del servicio (start/stop) lo maneja el CLI, no la app.
    """
    app = FastAPI(title="IoT Aggregator Service", version="0.1.0")
    app.state.service = service
    app.include_router(health_router)
    app.include_router(stats_router)
    return app
