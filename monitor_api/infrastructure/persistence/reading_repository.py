"""Repositorio de lecturas - inserción y consulta."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.engine import Connection

from common.timeutils import as_utc

from ...domain.models import Reading
from ...domain.quantities import READING_FIELDS
from .tables import readings


def insert_reading(conn: Connection, reading: Reading) -> None:
    """Inserta la lectura ya normalizada (nunca se actualiza después)."""
    values = {
        "id": reading.id,
        "artifact_id": reading.artifact_id,
        "device_id": reading.device_id,
        "timestamp": reading.timestamp,
        "created_at": reading.created_at,
    }
    for name in READING_FIELDS:
        values[name] = getattr(reading, name)
    conn.execute(readings.insert().values(**values))


def row_to_reading(row: Mapping[str, Any]) -> Reading:
    measurements = {
        name: float(row[name]) if row[name] is not None else None
        for name in READING_FIELDS
    }
    return Reading(
        id=str(row["id"]),
        artifact_id=str(row["artifact_id"]),
        device_id=str(row["device_id"]),
        timestamp=as_utc(row["timestamp"]),
        created_at=as_utc(row["created_at"]),
        **measurements,
    )


def get_reading(conn: Connection, reading_id: str) -> Optional[Reading]:
    row = conn.execute(
        select(readings).where(readings.c.id == reading_id)
    ).mappings().first()
    return row_to_reading(row) if row else None


def count_readings(conn: Connection, artifact_id: Optional[str] = None) -> int:
    stmt = select(func.count()).select_from(readings)
    if artifact_id is not None:
        stmt = stmt.where(readings.c.artifact_id == artifact_id)
    return int(conn.execute(stmt).scalar_one())
