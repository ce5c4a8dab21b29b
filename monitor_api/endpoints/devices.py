from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ..dependencies import Services, get_services, require_api_key
from ..schemas import AlertOut, DeviceStatusOut, IngestResponse, ReadingOut

logger = logging.getLogger(__name__)

router = APIRouter(tags=["devices"], dependencies=[Depends(require_api_key)])


@router.get("/devices/{device_id}/status", response_model=DeviceStatusOut)
def device_status(device_id: str, services: Services = Depends(get_services)):
    device = services.devices.get(device_id)
    return DeviceStatusOut(
        device_id=device.id,
        name=device.name,
        artifact_id=device.artifact_id,
        status=services.devices.status_of(device_id).value,
        last_measurement=device.last_measurement,
    )


@router.post("/devices/{device_id}/fetch", response_model=IngestResponse, status_code=201)
def fetch_device(device_id: str, services: Services = Depends(get_services)):
    """Trae las propiedades actuales del dispositivo desde la nube y las ingesta.

    404 si el dispositivo (o su thing en la nube) no existe; 400 si no está
    vinculado a un thing o a un artefacto; 502 si la nube falla.
    """
    logger.info("[CLOUD] manual fetch requested device=%s", device_id)
    raw = services.source.fetch_device(device_id)
    outcome = services.pipeline.ingest(raw)
    return IngestResponse(
        reading=ReadingOut.from_domain(outcome.reading),
        alerts=[AlertOut.from_domain(a) for a in outcome.alerts],
        created_alert_ids=outcome.created_alert_ids,
    )
