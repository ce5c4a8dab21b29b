"""Repositorio de dispositivos - last-seen y vínculo con la nube."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.engine import Connection

from common.timeutils import as_utc

from .tables import devices


@dataclass(frozen=True)
class DeviceRecord:
    id: str
    name: str
    artifact_id: Optional[str]
    cloud_thing_id: Optional[str]
    status: str
    last_measurement: Optional[datetime]


def _row_to_device(row) -> DeviceRecord:
    return DeviceRecord(
        id=str(row["id"]),
        name=row["name"],
        artifact_id=row["artifact_id"],
        cloud_thing_id=row["cloud_thing_id"],
        status=row["status"],
        last_measurement=as_utc(row["last_measurement"]),
    )


def get_device(conn: Connection, device_id: str) -> Optional[DeviceRecord]:
    row = conn.execute(select(devices).where(devices.c.id == device_id)).mappings().first()
    return _row_to_device(row) if row else None


def touch_last_measurement(conn: Connection, device_id: str, seen_at: datetime, now: datetime) -> int:
    """Actualiza last_measurement; devuelve filas afectadas (0 = dispositivo desconocido).

    No retrocede el last_measurement si llega una lectura más vieja.
    """
    current = conn.execute(
        select(devices.c.last_measurement).where(devices.c.id == device_id)
    ).first()
    if current is None:
        return 0

    previous = as_utc(current[0])
    values = {"updated_at": now}
    if previous is None or seen_at > previous:
        values["last_measurement"] = seen_at

    result = conn.execute(update(devices).where(devices.c.id == device_id).values(**values))
    return int(result.rowcount or 0)


def list_cloud_bound_devices(conn: Connection) -> List[DeviceRecord]:
    """Dispositivos con thing de la nube y artefacto asignado."""
    rows = conn.execute(
        select(devices)
        .where(devices.c.cloud_thing_id.is_not(None))
        .where(devices.c.artifact_id.is_not(None))
        .order_by(devices.c.id.asc())
    ).mappings().all()
    return [_row_to_device(row) for row in rows]
