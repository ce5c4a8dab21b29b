"""Control del colector periódico."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends

from ..dependencies import Services, get_services, require_api_key
from ..schemas import CollectorStartIn, CollectorStatusOut

router = APIRouter(prefix="/collector", tags=["collector"], dependencies=[Depends(require_api_key)])


@router.post("/start", response_model=CollectorStatusOut)
def start_collector(
    payload: Optional[CollectorStartIn] = Body(default=None),
    services: Services = Depends(get_services),
):
    """Arranca una corrida; el primer ciclo corre antes de responder."""
    payload = payload or CollectorStartIn()
    status = services.scheduler.start(payload.duration_minutes, payload.interval_seconds)
    return CollectorStatusOut.from_domain(status)


@router.post("/pause", response_model=CollectorStatusOut)
def pause_collector(services: Services = Depends(get_services)):
    return CollectorStatusOut.from_domain(services.scheduler.pause())


@router.post("/resume", response_model=CollectorStatusOut)
def resume_collector(services: Services = Depends(get_services)):
    return CollectorStatusOut.from_domain(services.scheduler.resume())


@router.post("/stop", response_model=CollectorStatusOut)
def stop_collector(services: Services = Depends(get_services)):
    return CollectorStatusOut.from_domain(services.scheduler.stop())


@router.get("/status", response_model=CollectorStatusOut)
def collector_status(services: Services = Depends(get_services)):
    return CollectorStatusOut.from_domain(services.scheduler.status())
