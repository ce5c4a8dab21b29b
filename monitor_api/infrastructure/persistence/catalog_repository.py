"""Consultas al catálogo de artefactos y materiales.

El catálogo lo administra otra parte del sistema; aquí sólo se lee.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.engine import Connection

from ...domain.models import ArtifactContext, MaterialThresholds
from ...domain.quantities import QUANTITY_TABLE
from .tables import artifact_materials, artifacts, materials


def _as_float(value) -> Optional[float]:
    return float(value) if value is not None else None


def get_material_thresholds(conn: Connection, artifact_id: str) -> Optional[MaterialThresholds]:
    """Obtiene los umbrales del material asociado al artefacto.

    Si el artefacto tiene varios materiales se usa el primer emparejamiento
    (orden de creación). Devuelve None si no hay material configurado.
    """
    row = conn.execute(
        select(materials)
        .join(artifact_materials, artifact_materials.c.material_id == materials.c.id)
        .where(artifact_materials.c.artifact_id == artifact_id)
        .order_by(artifact_materials.c.created_at.asc(), artifact_materials.c.id.asc())
        .limit(1)
    ).mappings().first()

    if not row:
        return None

    bounds = {}
    for spec in QUANTITY_TABLE:
        lower_col, upper_col = spec.threshold_columns
        bounds[spec.lower_field] = _as_float(row[lower_col])
        bounds[spec.upper_field] = _as_float(row[upper_col])

    return MaterialThresholds(material_id=str(row["id"]), **bounds)


def get_artifact(conn: Connection, artifact_id: str) -> Optional[ArtifactContext]:
    row = conn.execute(
        select(artifacts.c.id, artifacts.c.name, artifacts.c.artist, artifacts.c.location)
        .where(artifacts.c.id == artifact_id)
    ).mappings().first()
    if not row:
        return None
    return ArtifactContext(
        id=str(row["id"]),
        name=row["name"],
        artist=row["artist"],
        location=row["location"],
    )
