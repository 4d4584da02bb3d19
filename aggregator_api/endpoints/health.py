"""Health, readiness and metrics endpoints."""

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..schemas import HealthOut

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthOut)
def health():
    """Liveness probe: always returns ok while the process runs."""
    return {"status": "ok"}


@router.get("/ready", response_model=HealthOut)
def ready(request: Request):
    """Readiness probe: requires a live broker connection."""
    service = request.app.state.service
    if not service.is_connected:
        raise HTTPException(status_code=503, detail="not ready")
    return {"status": "ready"}


@router.get("/metrics")
def metrics():
    """Prometheus exposition."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/diagnostics")
def diagnostics(request: Request):
    """Contadores internos del servicio (ingesta, publicación, ticks)."""
    return request.app.state.service.stats
