"""Tests de normalización de propiedades y guard rails de validación."""

import math
from datetime import datetime, timezone

import pytest

from monitor_api.domain.quantities import Quantity, resolve_vendor_name
from monitor_api.errors import ValidationError
from monitor_api.ingest.normalizer import map_vendor_properties
from monitor_api.ingest.validation import (
    ARTIFACT_ID_KEYS,
    DEVICE_ID_KEYS,
    coerce_measurement,
    parse_timestamp,
    require_identifier,
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# NORMALIZACIÓN
# =============================================================================

class TestVendorNames:
    """Nombres del proveedor -> magnitud canónica (case-insensitive)."""

    @pytest.mark.parametrize("name,expected", [
        ("temperature", Quantity.TEMPERATURE),
        ("relativeHumidity", Quantity.HUMIDITY),
        ("co2Concentration", Quantity.CO2),
        ("airPressure", Quantity.AIR_PRESSURE),
        ("moldRiskLevel", Quantity.MOLD_RISK),
        ("illuminationLevel", Quantity.ILLUMINANCE),
        ("light", Quantity.ILLUMINANCE),
    ])
    def test_known_aliases(self, name, expected):
        assert resolve_vendor_name(name) == expected

    def test_unknown_name(self):
        assert resolve_vendor_name("batteryLevel") is None


class TestMapVendorProperties:
    """Los tres formatos de payload se normalizan con la misma tabla."""

    def test_flat_payload(self):
        raw = {"artifact_id": "a", "device_id": "d", "temperature": 21.5, "co2Concentration": 800}
        assert map_vendor_properties(raw) == {Quantity.TEMPERATURE: 21.5, Quantity.CO2: 800}

    def test_properties_object(self):
        raw = {"artifact_id": "a", "properties": {"airPressure": 1013.2, "humidity": 45}}
        assert map_vendor_properties(raw) == {Quantity.AIR_PRESSURE: 1013.2, Quantity.HUMIDITY: 45}

    def test_data_list_with_variable_name(self):
        raw = {
            "artifact_id": "a",
            "data": [
                {"variable_name": "moldRiskLevel", "value": 2},
                {"name": "illuminance", "last_value": 120},
                {"variable_name": "firmware", "value": "1.2"},
            ],
        }
        assert map_vendor_properties(raw) == {Quantity.MOLD_RISK: 2, Quantity.ILLUMINANCE: 120}

    def test_unknown_fields_are_dropped(self):
        raw = {"artifact_id": "a", "device_id": "d", "battery": 80, "rssi": -60}
        assert map_vendor_properties(raw) == {}

    def test_first_value_wins(self):
        raw = {"temperature": 20.0, "properties": {"Temperature": 30.0}}
        assert map_vendor_properties(raw) == {Quantity.TEMPERATURE: 20.0}


# =============================================================================
# VALIDACIÓN
# =============================================================================

class TestRequireIdentifier:
    """Ids requeridos: string no vacío; enteros se convierten."""

    def test_missing_raises(self):
        with pytest.raises(ValidationError) as exc_info:
            require_identifier({"device_id": "d"}, ARTIFACT_ID_KEYS, "artifact_id")
        assert exc_info.value.field == "artifact_id"

    def test_blank_raises(self):
        with pytest.raises(ValidationError):
            require_identifier({"device_id": "  "}, DEVICE_ID_KEYS, "device_id")

    def test_painting_id_alias(self):
        assert require_identifier({"painting_id": "p-7"}, ARTIFACT_ID_KEYS, "artifact_id") == "p-7"

    def test_integer_is_converted(self):
        assert require_identifier({"deviceId": 42}, DEVICE_ID_KEYS, "device_id") == "42"

    def test_bool_is_rejected(self):
        with pytest.raises(ValidationError):
            require_identifier({"device_id": True}, DEVICE_ID_KEYS, "device_id")


class TestCoerceMeasurement:
    """Valores medidos: reales finitos; null = ausente."""

    def test_numeric_string(self):
        assert coerce_measurement(Quantity.TEMPERATURE, "21.5") == 21.5

    def test_none_and_blank_are_absent(self):
        assert coerce_measurement(Quantity.TEMPERATURE, None) is None
        assert coerce_measurement(Quantity.TEMPERATURE, "") is None

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf, "abc", True, [1], {"v": 1}])
    def test_invalid_values(self, value):
        with pytest.raises(ValidationError) as exc_info:
            coerce_measurement(Quantity.HUMIDITY, value)
        assert exc_info.value.field == "humidity"


class TestParseTimestamp:
    def test_absent_uses_default(self):
        assert parse_timestamp({}, NOW) == NOW

    def test_iso_with_z(self):
        ts = parse_timestamp({"timestamp": "2024-05-01T10:00:00Z"}, NOW)
        assert ts == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        ts = parse_timestamp({"timestamp": "2024-05-01T10:00:00"}, NOW)
        assert ts.tzinfo is not None
        assert ts.hour == 10

    def test_invalid_raises(self):
        with pytest.raises(ValidationError):
            parse_timestamp({"timestamp": "yesterday"}, NOW)
