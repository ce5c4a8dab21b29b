"""Deduplicador / store de alertas.

Reglas:
- UNA alerta activa por (artefacto, magnitud, sentido). Lo garantiza el índice
  único parcial de la BD, no un cache en memoria.
- Si la alerta activa ya existe se devuelve tal cual (no se pisa ningún campo).
- Si dos writers concurrentes compiten, el perdedor recibe IntegrityError y
  devuelve el registro del ganador.
- Las alertas no se borran salvo en el reset de datos (``purge_all``).
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from common.timeutils import as_utc, utc_now

from ..domain.models import Alert, AlertFilters, AlertStatus, BreachCandidate
from ..errors import InvalidStatus, NotFound, UpstreamError
from ..infrastructure.persistence import alert_repository as repo

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def parse_status(value: object) -> AlertStatus:
    """Valida que el estado pedido sea 'active' o 'dismissed'."""
    if isinstance(value, AlertStatus):
        return value
    if isinstance(value, str):
        try:
            return AlertStatus(value.strip().lower())
        except ValueError:
            pass
    raise InvalidStatus(value)


class AlertStore:
    """Ciclo de vida de alertas sobre el store relacional."""

    def __init__(self, engine: Engine, clock: Optional[Clock] = None) -> None:
        self._engine = engine
        self._clock = clock or utc_now

    # ------------------------------------------------------------------
    # Reconciliación
    # ------------------------------------------------------------------

    def reconcile(self, candidate: BreachCandidate) -> Alert:
        alert, _ = self.reconcile_with_outcome(candidate)
        return alert

    def reconcile_with_outcome(self, candidate: BreachCandidate) -> Tuple[Alert, bool]:
        """Devuelve (alerta, creada). ``creada`` es False si ya había una activa."""
        artifact_id, quantity, direction = candidate.key

        try:
            with self._engine.connect() as conn:
                existing = repo.find_active_alert(conn, artifact_id, quantity, direction)
        except SQLAlchemyError as e:
            raise UpstreamError(f"Alert lookup failed: {type(e).__name__}") from e

        if existing is not None:
            logger.debug(
                "ALERT_DEDUP existing=%s artifact=%s quantity=%s direction=%s",
                existing.id, artifact_id, quantity, direction,
            )
            return existing, False

        now = self._clock()
        alert = Alert(
            id=str(uuid.uuid4()),
            artifact_id=candidate.artifact_id,
            device_id=candidate.device_id,
            reading_id=candidate.reading_id,
            quantity=candidate.quantity,
            direction=candidate.direction,
            measured_value=candidate.measured_value,
            threshold_value=candidate.threshold_value,
            status=AlertStatus.ACTIVE,
            detected_at=as_utc(candidate.reading_timestamp),
            created_at=now,
        )

        try:
            with self._engine.begin() as conn:
                repo.insert_alert(conn, alert)
        except IntegrityError:
            # Otro writer ganó la carrera: su alerta es la válida.
            winner = self._find_winner(artifact_id, quantity, direction)
            if winner is None:
                raise UpstreamError(
                    f"Alert insert conflicted but no active alert found for "
                    f"artifact={artifact_id} quantity={quantity} direction={direction}"
                )
            logger.info(
                "ALERT_RACE_LOST artifact=%s quantity=%s direction=%s winner=%s",
                artifact_id, quantity, direction, winner.id,
            )
            return winner, False
        except SQLAlchemyError as e:
            raise UpstreamError(f"Alert insert failed: {type(e).__name__}") from e

        logger.info(
            "ALERT_CREATED id=%s artifact=%s quantity=%s direction=%s measured=%s threshold=%s",
            alert.id, artifact_id, quantity, direction,
            alert.measured_value, alert.threshold_value,
        )
        return alert, True

    def _find_winner(self, artifact_id: str, quantity: str, direction: str) -> Optional[Alert]:
        try:
            with self._engine.connect() as conn:
                return repo.find_active_alert(conn, artifact_id, quantity, direction)
        except SQLAlchemyError as e:
            raise UpstreamError(f"Alert lookup failed: {type(e).__name__}") from e

    # ------------------------------------------------------------------
    # Estado
    # ------------------------------------------------------------------

    def get(self, alert_id: str) -> Alert:
        try:
            with self._engine.connect() as conn:
                alert = repo.get_alert(conn, alert_id)
        except SQLAlchemyError as e:
            raise UpstreamError(f"Alert lookup failed: {type(e).__name__}") from e
        if alert is None:
            raise NotFound("alert", alert_id)
        return alert

    def set_status(self, alert_id: str, new_status: object) -> Alert:
        """Descarta o reactiva una alerta (mismo registro, misma identidad).

        - dismissed: sella dismissed_at (se conserva si ya estaba descartada).
        - active: limpia dismissed_at. Si ya hay otra activa para la misma
          clave, la reactivación rompería el invariante y se rechaza.
        - Siempre sella updated_at.
        """
        status = parse_status(new_status)
        now = self._clock()

        try:
            with self._engine.begin() as conn:
                current = repo.get_alert(conn, alert_id)
                if current is None:
                    raise NotFound("alert", alert_id)

                if status == AlertStatus.DISMISSED:
                    already = not current.is_active and current.dismissed_at is not None
                    dismissed_at = current.dismissed_at if already else now
                else:
                    dismissed_at = None

                repo.update_alert_status(conn, alert_id, status, now, dismissed_at)
                updated = repo.get_alert(conn, alert_id)
        except IntegrityError as e:
            raise InvalidStatus(
                status.value,
                reason="another active alert already tracks this artifact/quantity/direction",
            ) from e
        except SQLAlchemyError as e:
            raise UpstreamError(f"Alert update failed: {type(e).__name__}") from e

        logger.info("ALERT_STATUS id=%s status=%s", alert_id, status.value)
        return updated

    # ------------------------------------------------------------------
    # Consulta y mantenimiento
    # ------------------------------------------------------------------

    def query(self, filters: Optional[AlertFilters] = None) -> List[Alert]:
        filters = filters or AlertFilters()
        try:
            with self._engine.connect() as conn:
                return repo.query_alerts(conn, filters)
        except SQLAlchemyError as e:
            raise UpstreamError(f"Alert query failed: {type(e).__name__}") from e

    def count_active(self, artifact_id: Optional[str] = None) -> int:
        try:
            with self._engine.connect() as conn:
                return repo.count_active(conn, artifact_id)
        except SQLAlchemyError as e:
            raise UpstreamError(f"Alert count failed: {type(e).__name__}") from e

    def purge_all(self) -> Tuple[int, int]:
        """Reset de datos: borra alertas y lecturas en una sola transacción."""
        try:
            with self._engine.begin() as conn:
                alerts_deleted, readings_deleted = repo.purge_alerts_and_readings(conn)
        except SQLAlchemyError as e:
            raise UpstreamError(f"Data reset failed: {type(e).__name__}") from e

        logger.warning(
            "DATA_RESET alerts_deleted=%d readings_deleted=%d",
            alerts_deleted, readings_deleted,
        )
        return alerts_deleted, readings_deleted
