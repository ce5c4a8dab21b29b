"""Store de lecturas sobre el engine compartido."""

from __future__ import annotations

from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..domain.models import Reading
from ..errors import NotFound, UpstreamError
from ..infrastructure.persistence import reading_repository as repo


class ReadingStore:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def add(self, reading: Reading) -> Reading:
        try:
            with self._engine.begin() as conn:
                repo.insert_reading(conn, reading)
        except SQLAlchemyError as e:
            raise UpstreamError(f"Reading insert failed: {type(e).__name__}") from e
        return reading

    def get(self, reading_id: str) -> Reading:
        try:
            with self._engine.connect() as conn:
                reading = repo.get_reading(conn, reading_id)
        except SQLAlchemyError as e:
            raise UpstreamError(f"Reading lookup failed: {type(e).__name__}") from e
        if reading is None:
            raise NotFound("reading", reading_id)
        return reading

    def count(self, artifact_id: Optional[str] = None) -> int:
        try:
            with self._engine.connect() as conn:
                return repo.count_readings(conn, artifact_id)
        except SQLAlchemyError as e:
            raise UpstreamError(f"Reading count failed: {type(e).__name__}") from e
