"""Endpoint de ingesta de una lectura cruda."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from ..dependencies import Services, get_services, require_api_key
from ..schemas import AlertOut, IngestResponse, ReadingOut

router = APIRouter(tags=["ingest"])


@router.post(
    "/ingest/readings",
    response_model=IngestResponse,
    status_code=201,
    dependencies=[Depends(require_api_key)],
)
def ingest_reading(
    payload: Dict[str, Any] = Body(...),
    services: Services = Depends(get_services),
):
    """Acepta formato plano, ``properties`` (objeto o lista) o ``data`` (lista)."""
    outcome = services.pipeline.ingest(payload)
    return IngestResponse(
        reading=ReadingOut.from_domain(outcome.reading),
        alerts=[AlertOut.from_domain(a) for a in outcome.alerts],
        created_alert_ids=outcome.created_alert_ids,
    )
