from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .dependencies import Services, build_services
from .endpoints import (
    alerts_router,
    collector_router,
    devices_router,
    health_router,
    ingest_router,
    maintenance_router,
)
from .errors import (
    DeviceNotLinked,
    FetchError,
    InvalidStatus,
    MonitorError,
    NotFound,
    SchedulerStateError,
    UpstreamError,
    ValidationError,
)
from .infrastructure.persistence.tables import ensure_schema

logger = logging.getLogger(__name__)


def _status_code_for(exc: MonitorError) -> int:
    if isinstance(exc, ValidationError):
        return 422
    if isinstance(exc, NotFound):
        return 404
    if isinstance(exc, DeviceNotLinked):
        return 400
    if isinstance(exc, InvalidStatus):
        # Valor desconocido = request mal formado; conflicto con el invariante = 409.
        return 409 if exc.reason else 400
    if isinstance(exc, SchedulerStateError):
        return 409
    if isinstance(exc, (UpstreamError, FetchError)):
        return 502
    return 500


async def _monitor_error_handler(request: Request, exc: MonitorError) -> JSONResponse:
    status_code = _status_code_for(exc)
    if status_code >= 500:
        logger.error("HTTP_%d path=%s code=%s detail=%s", status_code, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=status_code, content={"error": exc.code, "detail": exc.message})


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    detail = "; ".join(
        f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg')}" for e in errors
    ) or "invalid request"
    return JSONResponse(status_code=422, content={"error": ValidationError.code, "detail": detail})


def create_app(services: Optional[Services] = None) -> FastAPI:
    """App factory. Sin ``services`` el grafo se arma desde el entorno al arrancar."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services()
        ensure_schema(app.state.services.engine)
        logger.info("Museum monitor API started")
        try:
            yield
        finally:
            app.state.services.scheduler.shutdown()
            logger.info("Museum monitor API stopped")

    app = FastAPI(title="Museum Monitor Service", version="0.1.0", lifespan=lifespan)
    app.state.services = services

    app.add_exception_handler(MonitorError, _monitor_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)

    app.include_router(health_router)
    app.include_router(ingest_router)
    app.include_router(alerts_router)
    app.include_router(collector_router)
    app.include_router(devices_router)
    app.include_router(maintenance_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )
    uvicorn.run("monitor_api.main:app", host="0.0.0.0", port=8000)
