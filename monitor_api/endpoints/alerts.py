"""Consulta y ciclo de vida de alertas."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..alerts.store import parse_status
from ..dependencies import Services, get_services, require_api_key
from ..domain.models import AlertFilters
from ..domain.quantities import Quantity
from ..errors import ValidationError
from ..schemas import AlertOut, AlertStatusIn

router = APIRouter(tags=["alerts"], dependencies=[Depends(require_api_key)])


def _parse_quantity(value: Optional[str]) -> Optional[Quantity]:
    if value is None:
        return None
    try:
        return Quantity(value.strip().lower())
    except ValueError:
        raise ValidationError(f"quantity: unknown quantity {value!r}", field="quantity") from None


@router.get("/alerts", response_model=List[AlertOut])
def list_alerts(
    artifact_id: Optional[str] = None,
    device_id: Optional[str] = None,
    status: Optional[str] = None,
    quantity: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    services: Services = Depends(get_services),
):
    filters = AlertFilters(
        artifact_id=artifact_id,
        device_id=device_id,
        status=parse_status(status) if status is not None else None,
        quantity=_parse_quantity(quantity),
        limit=limit,
    )
    return [AlertOut.from_domain(a) for a in services.alerts.query(filters)]


@router.get("/alerts/{alert_id}", response_model=AlertOut)
def get_alert(alert_id: str, services: Services = Depends(get_services)):
    return AlertOut.from_domain(services.alerts.get(alert_id))


@router.patch("/alerts/{alert_id}/status", response_model=AlertOut)
def set_alert_status(
    alert_id: str,
    payload: AlertStatusIn,
    services: Services = Depends(get_services),
):
    return AlertOut.from_domain(services.alerts.set_status(alert_id, payload.status))
