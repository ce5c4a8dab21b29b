"""Catálogo de artefactos/materiales (sólo lectura)."""

from __future__ import annotations

from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .domain.models import ArtifactContext, MaterialThresholds
from .errors import UpstreamError
from .infrastructure.persistence import catalog_repository as repo


class Catalog:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def thresholds_for(self, artifact_id: str) -> Optional[MaterialThresholds]:
        """Umbrales del material del artefacto, o None si no hay configurados."""
        try:
            with self._engine.connect() as conn:
                return repo.get_material_thresholds(conn, artifact_id)
        except SQLAlchemyError as e:
            raise UpstreamError(f"Catalog lookup failed: {type(e).__name__}") from e

    def artifact(self, artifact_id: str) -> Optional[ArtifactContext]:
        try:
            with self._engine.connect() as conn:
                return repo.get_artifact(conn, artifact_id)
        except SQLAlchemyError as e:
            raise UpstreamError(f"Catalog lookup failed: {type(e).__name__}") from e
