"""Tests del pipeline de ingesta.

Tests obligatorios:
1. Ejemplo 24 / 26 / 24: una sola alerta activa
2. Sin umbrales configurados no se evalúa
3. Fallos best-effort (dispositivo, notificador) no rompen la ingesta
4. Fallo de persistencia corta el pipeline

Ejecutar:
    pytest tests/test_ingest_pipeline.py -v
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from monitor_api.alerts.store import AlertStore
from monitor_api.catalog import Catalog
from monitor_api.devices.registry import DeviceRegistry
from monitor_api.domain.models import AlertStatus, Direction
from monitor_api.domain.quantities import Quantity
from monitor_api.errors import UpstreamError, ValidationError
from monitor_api.ingest.pipeline import IngestPipeline
from monitor_api.ingest.reading_store import ReadingStore

from .conftest import ARTIFACT_ID, DEVICE_ID, seed_artifact


def _raw(**values):
    payload = {"artifact_id": ARTIFACT_ID, "device_id": DEVICE_ID}
    payload.update(values)
    return payload


# =============================================================================
# TEST 1: SECUENCIA 24 / 26 / 24
# =============================================================================

class TestThresholdSequence:
    """Umbral superior de temperatura = 24."""

    def test_at_threshold_creates_no_alert(self, pipeline):
        outcome = pipeline.ingest(_raw(temperature=24))
        assert outcome.alerts == []
        assert outcome.reading.temperature == 24.0

    def test_above_threshold_creates_alert(self, pipeline):
        outcome = pipeline.ingest(_raw(temperature=26, timestamp="2024-05-01T12:00:00Z"))

        [alert] = outcome.alerts
        assert alert.quantity == Quantity.TEMPERATURE
        assert alert.direction == Direction.UPPER
        assert alert.measured_value == 26.0
        assert alert.threshold_value == 24.0
        assert alert.detected_at == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        assert alert.reading_id == outcome.reading.id
        assert outcome.created_alert_ids == [alert.id]

    def test_sequence_leaves_single_active_alert(self, pipeline, alert_store):
        pipeline.ingest(_raw(temperature=24))
        second = pipeline.ingest(_raw(temperature=26))
        third = pipeline.ingest(_raw(temperature=24))
        fourth = pipeline.ingest(_raw(temperature=27))

        assert third.alerts == []
        assert fourth.alerts[0].id == second.alerts[0].id
        assert fourth.created_alert_ids == []
        assert alert_store.count_active() == 1
        # una condición que vuelve a rango no resuelve la alerta
        assert alert_store.get(second.alerts[0].id).status == AlertStatus.ACTIVE

    def test_vendor_list_payload(self, pipeline):
        outcome = pipeline.ingest({
            "painting_id": ARTIFACT_ID,
            "device_id": DEVICE_ID,
            "data": [{"variable_name": "Temperature", "value": "25.5"}],
        })
        assert outcome.reading.temperature == 25.5
        assert len(outcome.alerts) == 1


# =============================================================================
# TEST 2: SIN UMBRALES
# =============================================================================

class TestNoThresholds:
    def test_artifact_without_material_skips_evaluation(self, seeded_engine, pipeline):
        seed_artifact(seeded_engine, artifact_id="art-bare", name="Untitled")

        outcome = pipeline.ingest({"artifact_id": "art-bare", "device_id": DEVICE_ID, "temperature": 99})

        assert outcome.alerts == []
        assert ReadingStore(seeded_engine).count("art-bare") == 1

    def test_unknown_artifact_is_stored(self, seeded_engine, pipeline):
        outcome = pipeline.ingest({"artifact_id": "ghost", "device_id": DEVICE_ID, "temperature": 99})
        assert outcome.alerts == []
        assert ReadingStore(seeded_engine).get(outcome.reading.id).artifact_id == "ghost"

    def test_reading_without_quantities_is_stored(self, seeded_engine, pipeline):
        outcome = pipeline.ingest(_raw(battery=90))
        assert outcome.alerts == []
        assert outcome.reading.temperature is None
        assert ReadingStore(seeded_engine).count() == 1


# =============================================================================
# TEST 3: VALIDACIÓN Y EFECTOS BEST-EFFORT
# =============================================================================

class TestValidationAndSideEffects:
    def test_missing_device_id_rejected_before_persisting(self, seeded_engine, pipeline):
        with pytest.raises(ValidationError):
            pipeline.ingest({"artifact_id": ARTIFACT_ID, "temperature": 30})
        assert ReadingStore(seeded_engine).count() == 0

    def test_nan_value_rejected(self, seeded_engine, pipeline):
        with pytest.raises(ValidationError):
            pipeline.ingest(_raw(temperature=float("nan")))
        assert ReadingStore(seeded_engine).count() == 0

    def test_device_last_seen_is_updated(self, pipeline, registry):
        pipeline.ingest(_raw(temperature=21, timestamp="2024-05-01T12:00:00Z"))
        device = registry.get(DEVICE_ID)
        assert device.last_measurement == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def test_device_touch_failure_is_swallowed(self, seeded_engine, alert_store):
        devices = MagicMock(spec=DeviceRegistry)
        devices.touch.side_effect = UpstreamError("device store down")
        pipeline = IngestPipeline(ReadingStore(seeded_engine), Catalog(seeded_engine), devices, alert_store)

        outcome = pipeline.ingest(_raw(temperature=26))

        assert len(outcome.alerts) == 1
        devices.touch.assert_called_once()

    def test_notifier_called_only_for_new_alerts(self, seeded_engine, registry, alert_store):
        notifier = MagicMock()
        pipeline = IngestPipeline(
            ReadingStore(seeded_engine), Catalog(seeded_engine), registry, alert_store, notifier=notifier,
        )

        pipeline.ingest(_raw(temperature=26))
        pipeline.ingest(_raw(temperature=27))

        assert notifier.notify.call_count == 1
        alert, artifact = notifier.notify.call_args[0]
        assert alert.measured_value == 26.0
        assert artifact.name == "Starry Night"

    def test_notifier_failure_is_swallowed(self, seeded_engine, registry, alert_store):
        notifier = MagicMock()
        notifier.notify.side_effect = RuntimeError("smtp down")
        pipeline = IngestPipeline(
            ReadingStore(seeded_engine), Catalog(seeded_engine), registry, alert_store, notifier=notifier,
        )

        outcome = pipeline.ingest(_raw(temperature=26))

        assert len(outcome.alerts) == 1
        assert alert_store.count_active() == 1


# =============================================================================
# TEST 4: FALLO DE PERSISTENCIA
# =============================================================================

class TestPersistenceFailure:
    def test_reading_store_failure_stops_pipeline(self, seeded_engine):
        readings = MagicMock(spec=ReadingStore)
        readings.add.side_effect = UpstreamError("insert failed")
        devices = MagicMock(spec=DeviceRegistry)
        alerts = MagicMock(spec=AlertStore)
        pipeline = IngestPipeline(readings, Catalog(seeded_engine), devices, alerts)

        with pytest.raises(UpstreamError):
            pipeline.ingest(_raw(temperature=26))

        devices.touch.assert_not_called()
        alerts.reconcile_with_outcome.assert_not_called()

    def test_catalog_failure_after_store_keeps_reading(self, seeded_engine, registry, alert_store):
        catalog = MagicMock(spec=Catalog)
        catalog.thresholds_for.side_effect = UpstreamError("catalog down")
        store = ReadingStore(seeded_engine)
        pipeline = IngestPipeline(store, catalog, registry, alert_store)

        with pytest.raises(UpstreamError):
            pipeline.ingest(_raw(temperature=26))

        assert store.count() == 1
