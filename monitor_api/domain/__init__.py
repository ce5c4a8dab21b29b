"""Dominio: magnitudes, lecturas, umbrales y alertas."""

from .models import (
    Alert,
    AlertFilters,
    AlertStatus,
    ArtifactContext,
    BreachCandidate,
    Direction,
    IngestOutcome,
    MaterialThresholds,
    Reading,
)
from .quantities import QUANTITY_TABLE, Quantity, QuantitySpec, resolve_vendor_name, spec_for

__all__ = [
    "Alert",
    "AlertFilters",
    "AlertStatus",
    "ArtifactContext",
    "BreachCandidate",
    "Direction",
    "IngestOutcome",
    "MaterialThresholds",
    "Reading",
    "QUANTITY_TABLE",
    "Quantity",
    "QuantitySpec",
    "resolve_vendor_name",
    "spec_for",
]
