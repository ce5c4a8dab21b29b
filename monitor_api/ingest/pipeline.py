"""Pipeline de ingesta de lecturas."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional

from common.timeutils import utc_now

from ..alerts.evaluator import evaluate_reading
from ..alerts.notifier import Notifier
from ..alerts.store import AlertStore
from ..catalog import Catalog
from ..devices.registry import DeviceRegistry
from ..domain.models import Alert, IngestOutcome, Reading
from ..errors import ValidationError
from .normalizer import map_vendor_properties
from .reading_store import ReadingStore
from .validation import (
    ARTIFACT_ID_KEYS,
    DEVICE_ID_KEYS,
    coerce_measurement,
    parse_timestamp,
    require_identifier,
)

logger = logging.getLogger(__name__)


class IngestPipeline:
    """Procesa una lectura cruda a través del pipeline completo.

    Pipeline:
    1. Validación de ids (artefacto, dispositivo)
    2. Normalización de nombres del proveedor
    3. Persistencia de la lectura (si falla, falla todo)
    4. Last-seen del dispositivo (best-effort)
    5. Umbrales del material (sin umbrales = sin evaluación)
    6. Evaluación + reconciliación de alertas
    7. Notificación de alertas nuevas (best-effort)
    """

    def __init__(
        self,
        readings: ReadingStore,
        catalog: Catalog,
        devices: DeviceRegistry,
        alerts: AlertStore,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._readings = readings
        self._catalog = catalog
        self._devices = devices
        self._alerts = alerts
        self._notifier = notifier
        self._clock = clock

    def build_reading(self, raw: Mapping[str, Any]) -> Reading:
        """Valida y normaliza el payload crudo; no persiste nada."""
        if not isinstance(raw, Mapping):
            raise ValidationError("reading payload must be an object")

        artifact_id = require_identifier(raw, ARTIFACT_ID_KEYS, "artifact_id")
        device_id = require_identifier(raw, DEVICE_ID_KEYS, "device_id")

        now = self._clock()
        timestamp = parse_timestamp(raw, default=now)

        values: Dict[str, Optional[float]] = {}
        for quantity, value in map_vendor_properties(raw).items():
            values[quantity.value] = coerce_measurement(quantity, value)

        return Reading(
            id=str(uuid.uuid4()),
            artifact_id=artifact_id,
            device_id=device_id,
            timestamp=timestamp,
            created_at=now,
            **values,
        )

    def ingest(self, raw: Mapping[str, Any]) -> IngestOutcome:
        reading = self._readings.add(self.build_reading(raw))
        outcome = IngestOutcome(reading=reading)

        self._touch_device(reading)

        thresholds = self._catalog.thresholds_for(reading.artifact_id)
        if thresholds is None:
            logger.debug("INGEST no_thresholds artifact=%s reading=%s", reading.artifact_id, reading.id)
            return outcome

        for candidate in evaluate_reading(reading, thresholds):
            alert, created = self._alerts.reconcile_with_outcome(candidate)
            outcome.alerts.append(alert)
            if created:
                outcome.created_alert_ids.append(alert.id)

        if outcome.created_alert_ids:
            self._notify_new(outcome)

        logger.info(
            "INGEST_OK reading=%s artifact=%s device=%s alerts=%d new=%d",
            reading.id, reading.artifact_id, reading.device_id,
            len(outcome.alerts), len(outcome.created_alert_ids),
        )
        return outcome

    def _touch_device(self, reading: Reading) -> None:
        try:
            known = self._devices.touch(reading.device_id, reading.timestamp)
        except Exception:
            logger.exception("INGEST device_touch_failed device=%s reading=%s", reading.device_id, reading.id)
            return
        if not known:
            logger.info("INGEST unknown_device device=%s reading=%s", reading.device_id, reading.id)

    def _notify_new(self, outcome: IngestOutcome) -> None:
        if self._notifier is None:
            return

        new_alerts = [a for a in outcome.alerts if a.id in outcome.created_alert_ids]
        try:
            artifact = self._catalog.artifact(outcome.reading.artifact_id)
        except Exception:
            logger.exception("[NOTIFY] artifact lookup failed artifact=%s", outcome.reading.artifact_id)
            artifact = None

        for alert in new_alerts:
            self._send(alert, artifact)

    def _send(self, alert: Alert, artifact) -> None:
        try:
            self._notifier.notify(alert, artifact)
        except Exception:
            logger.exception("[NOTIFY] notifier failed alert=%s", alert.id)
