"""Fixtures compartidas: engine SQLite por test y catálogo sembrado."""

from datetime import datetime, timezone
from typing import Optional

import pytest

from common.db import build_engine
from monitor_api.alerts.store import AlertStore
from monitor_api.catalog import Catalog
from monitor_api.devices.registry import DeviceRegistry
from monitor_api.ingest.pipeline import IngestPipeline
from monitor_api.ingest.reading_store import ReadingStore
from monitor_api.infrastructure.persistence.tables import (
    artifact_materials,
    artifacts,
    devices,
    ensure_schema,
    materials,
)

SEED_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)

ARTIFACT_ID = "art-1"
DEVICE_ID = "dev-1"
MATERIAL_ID = "mat-canvas"


def seed_artifact(engine, artifact_id: str = ARTIFACT_ID, name: str = "Starry Night", **extra) -> None:
    with engine.begin() as conn:
        conn.execute(
            artifacts.insert().values(
                id=artifact_id,
                name=name,
                artist=extra.get("artist", "V. van Gogh"),
                location=extra.get("location", "Room 3"),
                created_at=SEED_TIME,
            )
        )


def seed_material(engine, material_id: str = MATERIAL_ID, **thresholds) -> None:
    """``thresholds`` con nombres de columna sin prefijo, p.ej. temperature_upper=24."""
    values = {f"threshold_{k}": v for k, v in thresholds.items()}
    with engine.begin() as conn:
        conn.execute(
            materials.insert().values(id=material_id, name=material_id, created_at=SEED_TIME, **values)
        )


def link_material(engine, artifact_id: str = ARTIFACT_ID, material_id: str = MATERIAL_ID,
                  created_at: Optional[datetime] = None) -> None:
    with engine.begin() as conn:
        conn.execute(
            artifact_materials.insert().values(
                artifact_id=artifact_id,
                material_id=material_id,
                created_at=created_at or SEED_TIME,
            )
        )


def seed_device(engine, device_id: str = DEVICE_ID, artifact_id: Optional[str] = ARTIFACT_ID,
                cloud_thing_id: Optional[str] = None, status: str = "active",
                last_measurement: Optional[datetime] = None) -> None:
    with engine.begin() as conn:
        conn.execute(
            devices.insert().values(
                id=device_id,
                name=f"Sensor {device_id}",
                artifact_id=artifact_id,
                cloud_thing_id=cloud_thing_id,
                status=status,
                last_measurement=last_measurement,
            )
        )


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def engine(tmp_path):
    """SQLite en archivo: varios threads comparten el mismo engine."""
    eng = build_engine(f"sqlite:///{tmp_path / 'monitor.db'}", timeout_seconds=30.0)
    ensure_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def seeded_engine(engine):
    """Artefacto art-1 con material de temperatura máxima 24 y un dispositivo."""
    seed_artifact(engine)
    seed_material(engine, temperature_upper=24.0)
    link_material(engine)
    seed_device(engine)
    return engine


@pytest.fixture
def alert_store(seeded_engine) -> AlertStore:
    return AlertStore(seeded_engine)


@pytest.fixture
def registry(seeded_engine) -> DeviceRegistry:
    return DeviceRegistry(seeded_engine)


@pytest.fixture
def pipeline(seeded_engine, registry, alert_store) -> IngestPipeline:
    return IngestPipeline(
        ReadingStore(seeded_engine),
        Catalog(seeded_engine),
        registry,
        alert_store,
    )
