"""Consulta de solo lectura sobre el registro de dispositivos."""

from fastapi import APIRouter, Request

from ..schemas import StatsOut

router = APIRouter(tags=["stats"])


@router.get("/stats", response_model=StatsOut, response_model_by_alias=True)
def stats(request: Request):
    """Conteos por estado, total online y dispositivos vigentes con su edad."""
    return request.app.state.service.query_stats()
