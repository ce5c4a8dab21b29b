"""Health and readiness endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from common.db import ping

from ..dependencies import Services, get_services

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/health")
def health():
    """Liveness: ok mientras el proceso esté vivo."""
    return {"status": "ok"}


@router.get("/ready")
def ready(services: Services = Depends(get_services)):
    """Readiness: verifica conectividad con la BD."""
    try:
        ping(services.engine)
    except Exception:
        logger.exception("[DB] readiness check failed")
        raise HTTPException(status_code=503, detail="not ready")
    return {"status": "ready"}
