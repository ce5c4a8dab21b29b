"""Evaluador de umbrales por material.

Función pura: no toca la BD ni estado compartido, se puede llamar en paralelo
desde varios requests/threads.
"""

from __future__ import annotations

from typing import List, Optional

from ..domain.models import BreachCandidate, Direction, MaterialThresholds, Reading
from ..domain.quantities import QUANTITY_TABLE, QuantitySpec


def _check_quantity(
    spec: QuantitySpec,
    reading: Reading,
    thresholds: MaterialThresholds,
) -> Optional[BreachCandidate]:
    value = spec.reading_value(reading)
    lower = spec.lower_bound(thresholds)
    upper = spec.upper_bound(thresholds)

    if value is None or (lower is None and upper is None):
        return None

    # Desigualdad estricta: un valor exactamente en el límite no es violación.
    if lower is not None and value < lower:
        direction, threshold = Direction.LOWER, lower
    elif upper is not None and value > upper:
        direction, threshold = Direction.UPPER, upper
    else:
        return None

    return BreachCandidate(
        artifact_id=reading.artifact_id,
        device_id=reading.device_id,
        reading_id=reading.id,
        reading_timestamp=reading.timestamp,
        quantity=spec.quantity,
        direction=direction,
        measured_value=float(value),
        threshold_value=float(threshold),
    )


def evaluate_reading(reading: Reading, thresholds: MaterialThresholds) -> List[BreachCandidate]:
    """Devuelve las violaciones de umbral de una lectura.

    A lo sumo un candidato por magnitud, en el orden de ``QUANTITY_TABLE``.
    """
    candidates: List[BreachCandidate] = []
    for spec in QUANTITY_TABLE:
        candidate = _check_quantity(spec, reading, thresholds)
        if candidate is not None:
            candidates.append(candidate)
    return candidates
