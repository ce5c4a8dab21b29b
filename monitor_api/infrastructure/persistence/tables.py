"""Esquema relacional del servicio (SQLAlchemy Core).

El invariante "una sola alerta activa por (artefacto, magnitud, sentido)" lo
garantiza el índice único parcial ``ux_alerts_active_key``, no la aplicación.
"""

from __future__ import annotations

import logging

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
)
from sqlalchemy.engine import Engine

from ...domain.quantities import QUANTITY_TABLE

logger = logging.getLogger(__name__)

metadata = MetaData()


def _threshold_columns() -> list[Column]:
    columns: list[Column] = []
    for spec in QUANTITY_TABLE:
        lower_col, upper_col = spec.threshold_columns
        columns.append(Column(lower_col, Float, nullable=True))
        columns.append(Column(upper_col, Float, nullable=True))
    return columns


def _measurement_columns() -> list[Column]:
    return [Column(spec.reading_field, Float, nullable=True) for spec in QUANTITY_TABLE]


artifacts = Table(
    "artifacts",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("artist", String(255), nullable=True),
    Column("location", String(255), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

materials = Table(
    "materials",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255), nullable=False),
    *_threshold_columns(),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

artifact_materials = Table(
    "artifact_materials",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("artifact_id", String(64), ForeignKey("artifacts.id"), nullable=False),
    Column("material_id", String(64), ForeignKey("materials.id"), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Index("ix_artifact_materials_artifact_id", "artifact_id"),
)

devices = Table(
    "devices",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("artifact_id", String(64), nullable=True),
    Column("cloud_thing_id", String(128), nullable=True, unique=True),
    Column("status", String(32), nullable=False, default="active"),
    Column("last_measurement", DateTime(timezone=True), nullable=True),
    Column("updated_at", DateTime(timezone=True), nullable=True),
)

readings = Table(
    "readings",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("artifact_id", String(64), nullable=False),
    Column("device_id", String(64), nullable=False),
    Column("timestamp", DateTime(timezone=True), nullable=False),
    *_measurement_columns(),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Index("ix_readings_artifact_ts", "artifact_id", "timestamp"),
)

alerts = Table(
    "alerts",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("artifact_id", String(64), nullable=False),
    Column("device_id", String(64), nullable=False),
    Column("reading_id", String(36), ForeignKey("readings.id"), nullable=True),
    Column("quantity", String(32), nullable=False),
    Column("direction", String(8), nullable=False),
    Column("measured_value", Float, nullable=False),
    Column("threshold_value", Float, nullable=False),
    Column("status", String(16), nullable=False, default="active"),
    Column("detected_at", DateTime(timezone=True), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=True),
    Column("dismissed_at", DateTime(timezone=True), nullable=True),
    CheckConstraint("direction IN ('upper', 'lower')", name="ck_alerts_direction"),
    CheckConstraint("status IN ('active', 'dismissed')", name="ck_alerts_status"),
    Index("ix_alerts_artifact_id", "artifact_id"),
    Index("ix_alerts_status", "status"),
)

# Índice único parcial: sólo las filas activas compiten por la clave.
Index(
    "ux_alerts_active_key",
    alerts.c.artifact_id,
    alerts.c.quantity,
    alerts.c.direction,
    unique=True,
    sqlite_where=alerts.c.status == "active",
    postgresql_where=alerts.c.status == "active",
)


def ensure_schema(engine: Engine) -> None:
    """Crea las tablas si no existen. Idempotente."""
    logger.info("[DB] Asegurando esquema (%d tablas)", len(metadata.tables))
    metadata.create_all(engine, checkfirst=True)
