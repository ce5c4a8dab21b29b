"""Tests del store/deduplicador de alertas.

Tests obligatorios:
1. Reconciliación idempotente
2. Ciclo de vida dismiss / reactivate
3. Concurrencia: N reconciles simultáneos -> una alerta activa
4. Consulta con filtros y orden

Ejecutar:
    pytest tests/test_alert_store.py -v
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from monitor_api.alerts.store import AlertStore, parse_status
from monitor_api.domain.models import AlertFilters, AlertStatus, BreachCandidate, Direction
from monitor_api.domain.quantities import Quantity
from monitor_api.errors import InvalidStatus, NotFound, UpstreamError
from monitor_api.ingest.reading_store import ReadingStore

from .conftest import ARTIFACT_ID, DEVICE_ID

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _candidate(
    quantity=Quantity.TEMPERATURE,
    direction=Direction.UPPER,
    measured=26.0,
    threshold=24.0,
    ts=T0,
    artifact_id=ARTIFACT_ID,
    device_id=DEVICE_ID,
    reading_id="r-1",
) -> BreachCandidate:
    return BreachCandidate(
        artifact_id=artifact_id,
        device_id=device_id,
        reading_id=reading_id,
        reading_timestamp=ts,
        quantity=quantity,
        direction=direction,
        measured_value=measured,
        threshold_value=threshold,
    )


# =============================================================================
# TEST 1: RECONCILIACIÓN
# =============================================================================

class TestReconcile:
    """Una sola alerta activa por clave; la existente no se pisa."""

    def test_creates_active_alert(self, alert_store):
        alert = alert_store.reconcile(_candidate())

        assert alert.status == AlertStatus.ACTIVE
        assert alert.detected_at == T0
        assert alert.measured_value == 26.0
        assert alert.threshold_value == 24.0
        assert alert.dismissed_at is None

    def test_reconcile_is_idempotent(self, alert_store):
        first = alert_store.reconcile(_candidate())
        second = alert_store.reconcile(_candidate(measured=30.0, ts=T0 + timedelta(minutes=5), reading_id="r-2"))

        assert second.id == first.id
        assert second.measured_value == 26.0
        assert second.detected_at == T0
        assert alert_store.count_active() == 1

    def test_outcome_reports_creation(self, alert_store):
        _, created = alert_store.reconcile_with_outcome(_candidate())
        _, created_again = alert_store.reconcile_with_outcome(_candidate())

        assert created is True
        assert created_again is False

    def test_different_direction_is_a_different_key(self, alert_store):
        upper = alert_store.reconcile(_candidate())
        lower = alert_store.reconcile(_candidate(direction=Direction.LOWER, measured=10.0, threshold=18.0))

        assert upper.id != lower.id
        assert alert_store.count_active() == 2

    def test_new_alert_after_dismissal(self, alert_store):
        first = alert_store.reconcile(_candidate())
        alert_store.set_status(first.id, "dismissed")

        second = alert_store.reconcile(_candidate(ts=T0 + timedelta(hours=1)))

        assert second.id != first.id
        assert second.is_active
        assert alert_store.get(first.id).status == AlertStatus.DISMISSED


# =============================================================================
# TEST 2: CICLO DE VIDA
# =============================================================================

class TestStatusLifecycle:
    """dismiss / reactivate conservan identidad del registro."""

    def test_dismiss_then_reactivate(self, alert_store):
        alert = alert_store.reconcile(_candidate())

        dismissed = alert_store.set_status(alert.id, "dismissed")
        assert dismissed.status == AlertStatus.DISMISSED
        assert dismissed.dismissed_at is not None
        assert dismissed.updated_at is not None

        reactivated = alert_store.set_status(alert.id, "active")
        assert reactivated.id == alert.id
        assert reactivated.status == AlertStatus.ACTIVE
        assert reactivated.dismissed_at is None
        assert reactivated.detected_at == alert.detected_at

    def test_repeated_dismiss_keeps_original_dismissed_at(self, seeded_engine):
        times = iter([T0 + timedelta(minutes=i) for i in range(10)])
        store = AlertStore(seeded_engine, clock=lambda: next(times))

        alert = store.reconcile(_candidate())
        first = store.set_status(alert.id, AlertStatus.DISMISSED)
        second = store.set_status(alert.id, "dismissed")

        assert second.dismissed_at == first.dismissed_at
        assert second.updated_at > first.updated_at

    def test_unknown_id_raises_not_found(self, alert_store):
        with pytest.raises(NotFound):
            alert_store.set_status("missing", "dismissed")

    def test_get_unknown_raises_not_found(self, alert_store):
        with pytest.raises(NotFound):
            alert_store.get("missing")

    @pytest.mark.parametrize("value", ["resolved", "", None, 3])
    def test_invalid_status_value(self, alert_store, value):
        alert = alert_store.reconcile(_candidate())
        with pytest.raises(InvalidStatus):
            alert_store.set_status(alert.id, value)
        assert alert_store.get(alert.id).is_active

    def test_reactivation_conflict_is_rejected(self, alert_store):
        old = alert_store.reconcile(_candidate())
        alert_store.set_status(old.id, "dismissed")
        alert_store.reconcile(_candidate(ts=T0 + timedelta(hours=1)))

        with pytest.raises(InvalidStatus) as exc_info:
            alert_store.set_status(old.id, "active")

        assert exc_info.value.reason
        assert alert_store.count_active() == 1
        assert alert_store.get(old.id).status == AlertStatus.DISMISSED

    def test_parse_status_is_case_insensitive(self):
        assert parse_status(" Dismissed ") == AlertStatus.DISMISSED


# =============================================================================
# TEST 3: CONCURRENCIA
# =============================================================================

class TestConcurrentReconcile:
    """N writers simultáneos sobre la misma clave producen una sola alerta."""

    def test_same_key_yields_single_active_alert(self, alert_store):
        n = 8
        with ThreadPoolExecutor(max_workers=n) as pool:
            results = list(pool.map(lambda i: alert_store.reconcile(_candidate(reading_id=f"r-{i}")), range(n)))

        assert len({a.id for a in results}) == 1
        assert alert_store.count_active() == 1

    def test_different_keys_do_not_interfere(self, alert_store):
        candidates = [
            _candidate(quantity=q, direction=d)
            for q in (Quantity.TEMPERATURE, Quantity.HUMIDITY, Quantity.CO2)
            for d in (Direction.UPPER, Direction.LOWER)
        ]
        with ThreadPoolExecutor(max_workers=len(candidates)) as pool:
            results = list(pool.map(alert_store.reconcile, candidates))

        assert len({a.id for a in results}) == len(candidates)
        assert alert_store.count_active() == len(candidates)


# =============================================================================
# TEST 4: CONSULTA Y RESET
# =============================================================================

class TestQuery:
    """Filtros por artefacto/dispositivo/estado/magnitud, más reciente primero."""

    def test_newest_detection_first(self, alert_store):
        a = alert_store.reconcile(_candidate(quantity=Quantity.TEMPERATURE, ts=T0))
        b = alert_store.reconcile(_candidate(quantity=Quantity.HUMIDITY, ts=T0 + timedelta(hours=2)))
        c = alert_store.reconcile(_candidate(quantity=Quantity.CO2, ts=T0 + timedelta(hours=1)))

        assert [x.id for x in alert_store.query()] == [b.id, c.id, a.id]

    def test_filters(self, alert_store):
        temp = alert_store.reconcile(_candidate(quantity=Quantity.TEMPERATURE))
        hum = alert_store.reconcile(_candidate(quantity=Quantity.HUMIDITY, device_id="dev-2"))
        alert_store.reconcile(_candidate(artifact_id="art-2"))
        alert_store.set_status(hum.id, "dismissed")

        by_status = alert_store.query(AlertFilters(artifact_id=ARTIFACT_ID, status=AlertStatus.ACTIVE))
        assert [x.id for x in by_status] == [temp.id]

        by_device = alert_store.query(AlertFilters(device_id="dev-2"))
        assert [x.id for x in by_device] == [hum.id]

        by_quantity = alert_store.query(AlertFilters(quantity=Quantity.TEMPERATURE))
        assert {x.artifact_id for x in by_quantity} == {ARTIFACT_ID, "art-2"}

    def test_limit_caps_results(self, alert_store):
        for q in (Quantity.TEMPERATURE, Quantity.HUMIDITY, Quantity.CO2):
            alert_store.reconcile(_candidate(quantity=q))
        assert len(alert_store.query(AlertFilters(limit=2))) == 2

    def test_purge_all(self, alert_store, pipeline):
        pipeline.ingest({"artifact_id": ARTIFACT_ID, "device_id": DEVICE_ID, "temperature": 26})

        alerts_deleted, readings_deleted = alert_store.purge_all()

        assert (alerts_deleted, readings_deleted) == (1, 1)
        assert alert_store.query() == []


# =============================================================================
# BASE DE DATOS NO DISPONIBLE
# =============================================================================

@pytest.fixture
def down_engine():
    engine = MagicMock()
    engine.connect.side_effect = OperationalError("SELECT 1", {}, Exception("db down"))
    engine.begin.side_effect = OperationalError("SELECT 1", {}, Exception("db down"))
    return engine


class TestStoreUnavailable:
    """Los errores de SQLAlchemy salen como UpstreamError en todas las lecturas."""

    def test_alert_count_active(self, down_engine):
        with pytest.raises(UpstreamError):
            AlertStore(down_engine).count_active(ARTIFACT_ID)

    def test_reading_get(self, down_engine):
        with pytest.raises(UpstreamError):
            ReadingStore(down_engine).get("r-1")

    def test_reading_count(self, down_engine):
        with pytest.raises(UpstreamError):
            ReadingStore(down_engine).count()
