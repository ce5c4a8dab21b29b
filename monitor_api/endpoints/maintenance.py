"""Reset de datos (lecturas + alertas). Catálogo y dispositivos se conservan."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..dependencies import Services, get_services, require_api_key
from ..schemas import ResetResult

router = APIRouter(tags=["maintenance"], dependencies=[Depends(require_api_key)])


@router.post("/maintenance/reset", response_model=ResetResult)
def reset_data(services: Services = Depends(get_services)):
    alerts_deleted, readings_deleted = services.alerts.purge_all()
    return ResetResult(alerts_deleted=alerts_deleted, readings_deleted=readings_deleted)
