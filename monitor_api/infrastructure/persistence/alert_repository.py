"""Repositorio de alertas - operaciones de persistencia."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.engine import Connection

from common.timeutils import as_utc

from ...domain.models import Alert, AlertFilters, AlertStatus, Direction
from ...domain.quantities import Quantity
from .tables import alerts, readings


def row_to_alert(row: Mapping[str, Any]) -> Alert:
    return Alert(
        id=str(row["id"]),
        artifact_id=str(row["artifact_id"]),
        device_id=str(row["device_id"]),
        reading_id=row["reading_id"],
        quantity=Quantity(row["quantity"]),
        direction=Direction(row["direction"]),
        measured_value=float(row["measured_value"]),
        threshold_value=float(row["threshold_value"]),
        status=AlertStatus(row["status"]),
        detected_at=as_utc(row["detected_at"]),
        created_at=as_utc(row["created_at"]),
        updated_at=as_utc(row["updated_at"]),
        dismissed_at=as_utc(row["dismissed_at"]),
    )


def get_alert(conn: Connection, alert_id: str) -> Optional[Alert]:
    row = conn.execute(select(alerts).where(alerts.c.id == alert_id)).mappings().first()
    return row_to_alert(row) if row else None


def find_active_alert(
    conn: Connection,
    artifact_id: str,
    quantity: str,
    direction: str,
) -> Optional[Alert]:
    """Alerta activa para la clave (artefacto, magnitud, sentido), si existe."""
    row = conn.execute(
        select(alerts)
        .where(alerts.c.artifact_id == artifact_id)
        .where(alerts.c.quantity == quantity)
        .where(alerts.c.direction == direction)
        .where(alerts.c.status == AlertStatus.ACTIVE.value)
    ).mappings().first()
    return row_to_alert(row) if row else None


def insert_alert(conn: Connection, alert: Alert) -> None:
    conn.execute(
        alerts.insert().values(
            id=alert.id,
            artifact_id=alert.artifact_id,
            device_id=alert.device_id,
            reading_id=alert.reading_id,
            quantity=alert.quantity.value,
            direction=alert.direction.value,
            measured_value=alert.measured_value,
            threshold_value=alert.threshold_value,
            status=alert.status.value,
            detected_at=alert.detected_at,
            created_at=alert.created_at,
            updated_at=alert.updated_at,
            dismissed_at=alert.dismissed_at,
        )
    )


def update_alert_status(
    conn: Connection,
    alert_id: str,
    status: AlertStatus,
    updated_at: datetime,
    dismissed_at: Optional[datetime],
) -> int:
    result = conn.execute(
        update(alerts)
        .where(alerts.c.id == alert_id)
        .values(status=status.value, updated_at=updated_at, dismissed_at=dismissed_at)
    )
    return int(result.rowcount or 0)


def query_alerts(conn: Connection, filters: AlertFilters) -> List[Alert]:
    """Consulta con filtros opcionales, detección más reciente primero."""
    stmt = select(alerts)
    if filters.artifact_id:
        stmt = stmt.where(alerts.c.artifact_id == filters.artifact_id)
    if filters.device_id:
        stmt = stmt.where(alerts.c.device_id == filters.device_id)
    if filters.status is not None:
        stmt = stmt.where(alerts.c.status == filters.status.value)
    if filters.quantity is not None:
        stmt = stmt.where(alerts.c.quantity == filters.quantity.value)

    stmt = stmt.order_by(alerts.c.detected_at.desc(), alerts.c.created_at.desc())
    if filters.limit is not None:
        stmt = stmt.limit(filters.limit)

    rows = conn.execute(stmt).mappings().all()
    return [row_to_alert(row) for row in rows]


def count_active(conn: Connection, artifact_id: Optional[str] = None) -> int:
    stmt = select(func.count()).select_from(alerts).where(alerts.c.status == AlertStatus.ACTIVE.value)
    if artifact_id is not None:
        stmt = stmt.where(alerts.c.artifact_id == artifact_id)
    return int(conn.execute(stmt).scalar_one())


def purge_alerts_and_readings(conn: Connection) -> tuple[int, int]:
    """Borra TODAS las alertas y lecturas (reset de datos).

    Las alertas van primero porque referencian a la lectura de origen.
    """
    alerts_deleted = conn.execute(delete(alerts)).rowcount or 0
    readings_deleted = conn.execute(delete(readings)).rowcount or 0
    return int(alerts_deleted), int(readings_deleted)
