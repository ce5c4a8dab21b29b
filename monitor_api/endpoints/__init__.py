"""Módulo de endpoints HTTP.

Contiene todos los endpoints de la API de monitoreo organizados por función.
"""

from .alerts import router as alerts_router
from .collector import router as collector_router
from .devices import router as devices_router
from .health import router as health_router
from .ingest import router as ingest_router
from .maintenance import router as maintenance_router

__all__ = [
    "alerts_router",
    "collector_router",
    "devices_router",
    "health_router",
    "ingest_router",
    "maintenance_router",
]
