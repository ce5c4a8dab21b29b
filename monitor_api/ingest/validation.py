"""Guard rails para rechazo temprano de lecturas inválidas.

Principios:
- Fail fast: rechazar antes de persistir
- Explicitar el campo y la razón del rechazo
- Loggear para auditoría
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from common.timeutils import as_utc

from ..domain.quantities import Quantity
from ..errors import ValidationError

logger = logging.getLogger(__name__)

ARTIFACT_ID_KEYS = ("artifact_id", "artifactId", "painting_id", "paintingId")
DEVICE_ID_KEYS = ("device_id", "deviceId")
TIMESTAMP_KEYS = ("timestamp", "ts")


def _reject(field: str, reason: str, value: Any = None) -> ValidationError:
    logger.warning("GUARD_REJECT field=%s reason=%s value=%r", field, reason, value)
    return ValidationError(f"{field}: {reason}", field=field)


def _first_present(raw: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def require_identifier(raw: Mapping[str, Any], keys: Sequence[str], field: str) -> str:
    """Extrae un id obligatorio como string no vacío."""
    value = _first_present(raw, keys)
    if value is None:
        raise _reject(field, "required field is missing")
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise _reject(field, "must be a string identifier", value)
    text = str(value).strip()
    if not text:
        raise _reject(field, "must not be empty", value)
    return text


def coerce_measurement(quantity: Quantity, value: Any) -> Optional[float]:
    """Convierte un valor medido a float finito; None significa ausente."""
    field = quantity.value
    if value is None:
        return None
    if isinstance(value, bool):
        raise _reject(field, "boolean is not a measurement", value)
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            value = float(value)
        except ValueError:
            raise _reject(field, "not a number", value) from None
    if not isinstance(value, (int, float)):
        raise _reject(field, "not a number", value)

    number = float(value)
    if math.isnan(number):
        raise _reject(field, "value is NaN", value)
    if math.isinf(number):
        raise _reject(field, "value is infinite", value)
    return number


def parse_timestamp(raw: Mapping[str, Any], default: datetime) -> datetime:
    """Timestamp de la lectura en UTC; ausente = momento de ingesta."""
    value = _first_present(raw, TIMESTAMP_KEYS)
    if value is None:
        return as_utc(default)
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, str):
        try:
            return as_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
        except ValueError:
            raise _reject("timestamp", "invalid ISO-8601 timestamp", value) from None
    raise _reject("timestamp", "invalid timestamp type", value)
