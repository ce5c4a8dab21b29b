"""Normalización de nombres de propiedades del proveedor al esquema canónico.

Formatos aceptados en el payload crudo:
- plano:   {"temperature": 21.3, "co2Concentration": 800, ...}
- objeto:  {"properties": {"airPressure": 1013.2, ...}}
- lista:   {"data": [{"variable_name": "moldRiskLevel", "value": 2}, ...]}
           (también "name" en lugar de "variable_name", y "last_value")

Los campos desconocidos se descartan; no se guardan.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Tuple

from ..domain.quantities import Quantity, resolve_vendor_name

logger = logging.getLogger(__name__)

# Claves de control del payload que nunca son magnitudes.
RESERVED_KEYS = frozenset({
    "artifact_id", "artifactId", "painting_id", "paintingId",
    "device_id", "deviceId", "timestamp", "ts", "properties", "data",
})

_NAME_KEYS = ("variable_name", "name")
_VALUE_KEYS = ("value", "last_value")


def _iter_list_items(items: Iterable[Any]) -> Iterable[Tuple[str, Any]]:
    for item in items:
        if not isinstance(item, Mapping):
            continue
        name = next((item[k] for k in _NAME_KEYS if item.get(k)), None)
        if name is None:
            # objeto suelto dentro de la lista: {"temperature": 21.0}
            for key, value in item.items():
                yield str(key), value
            continue
        if not any(k in item for k in _VALUE_KEYS):
            continue
        value = item["value"] if "value" in item else item["last_value"]
        yield str(name), value


def iter_vendor_properties(raw: Mapping[str, Any]) -> Iterable[Tuple[str, Any]]:
    """Recorre todas las parejas (nombre, valor) del payload, en orden."""
    for key, value in raw.items():
        if key not in RESERVED_KEYS:
            yield str(key), value

    properties = raw.get("properties")
    if isinstance(properties, Mapping):
        yield from ((str(k), v) for k, v in properties.items())
    elif isinstance(properties, list):
        yield from _iter_list_items(properties)

    data = raw.get("data")
    if isinstance(data, list):
        yield from _iter_list_items(data)
    elif isinstance(data, Mapping):
        yield from ((str(k), v) for k, v in data.items())


def map_vendor_properties(raw: Mapping[str, Any]) -> Dict[Quantity, Any]:
    """Mapea las propiedades del proveedor a magnitudes canónicas.

    El primer valor encontrado para una magnitud gana; los valores crudos no
    se convierten aquí (eso es trabajo de la validación).
    """
    mapped: Dict[Quantity, Any] = {}
    dropped = []
    for name, value in iter_vendor_properties(raw):
        quantity = resolve_vendor_name(name)
        if quantity is None:
            dropped.append(name)
            continue
        if quantity in mapped and mapped[quantity] is not None:
            continue
        mapped[quantity] = value

    if dropped:
        logger.debug("NORMALIZE dropped_unknown_fields=%s", dropped)
    return mapped
