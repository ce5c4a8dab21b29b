"""Contenedor de servicios por proceso y dependencias de FastAPI."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException, Request
from sqlalchemy.engine import Engine

from common.config import Settings, get_settings
from common.db import get_engine

from .alerts.notifier import Notifier, build_notifier
from .alerts.store import AlertStore
from .catalog import Catalog
from .cloud.client import DeviceCloudClient
from .collector.scheduler import CollectionScheduler
from .collector.source import CloudReadingSource, DeviceReadingSource
from .devices.registry import DeviceRegistry, DeviceStatusPolicy
from .ingest.pipeline import IngestPipeline
from .ingest.reading_store import ReadingStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    engine: Engine
    readings: ReadingStore
    catalog: Catalog
    devices: DeviceRegistry
    alerts: AlertStore
    pipeline: IngestPipeline
    source: DeviceReadingSource
    scheduler: CollectionScheduler


def build_services(
    settings: Optional[Settings] = None,
    *,
    engine: Optional[Engine] = None,
    notifier: Optional[Notifier] = None,
    source: Optional[DeviceReadingSource] = None,
) -> Services:
    """Arma el grafo de servicios; los tests inyectan engine/notifier/source."""
    settings = settings or get_settings()
    engine = engine or get_engine(settings)

    readings = ReadingStore(engine)
    catalog = Catalog(engine)
    devices = DeviceRegistry(
        engine,
        policy=DeviceStatusPolicy.from_minutes(
            settings.device_online_within_minutes,
            settings.device_offline_after_minutes,
        ),
    )
    alerts = AlertStore(engine)

    if notifier is None:
        notifier = build_notifier(
            settings.alert_webhook_url,
            timeout_seconds=settings.alert_webhook_timeout_seconds,
            min_interval_minutes=settings.alert_notify_min_interval_minutes,
        )

    pipeline = IngestPipeline(readings, catalog, devices, alerts, notifier=notifier)

    if source is None:
        client = DeviceCloudClient(
            settings.cloud_client_id,
            settings.cloud_client_secret,
            base_url=settings.cloud_base_url,
            timeout_seconds=settings.cloud_timeout_seconds,
        )
        if not client.configured:
            logger.warning("[CLOUD] CLOUD_CLIENT_ID/SECRET not set - collector cycles will fail")
        source = CloudReadingSource(client, devices)

    scheduler = CollectionScheduler(
        source,
        pipeline,
        default_duration_minutes=settings.collector_default_duration_minutes,
        default_interval_seconds=settings.collector_default_interval_seconds,
    )

    return Services(
        settings=settings,
        engine=engine,
        readings=readings,
        catalog=catalog,
        devices=devices,
        alerts=alerts,
        pipeline=pipeline,
        source=source,
        scheduler=scheduler,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def require_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
) -> None:
    # Sin MONITOR_API_KEY se permite todo (modo desarrollo).
    expected = get_services(request).settings.api_key
    if not expected:
        return

    if not x_api_key:
        raise HTTPException(status_code=401, detail="API key required")
    if x_api_key != expected:
        logger.warning("Invalid API key attempt path=%s", request.url.path)
        raise HTTPException(status_code=401, detail="Invalid API key")
