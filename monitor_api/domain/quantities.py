"""Tabla estática de magnitudes medidas.

Cada fila relaciona una magnitud con su campo en la lectura, sus accesores de
umbral inferior/superior y los nombres con que la publica el proveedor de la
nube. Agregar una magnitud nueva es agregar una fila aquí (más su columna).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from operator import attrgetter
from typing import Callable, Dict, Optional, Tuple


class Quantity(str, Enum):
    """Magnitudes ambientales monitoreadas."""
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    CO2 = "co2"
    AIR_PRESSURE = "air_pressure"
    MOLD_RISK = "mold_risk"
    ILLUMINANCE = "illuminance"


@dataclass(frozen=True)
class QuantitySpec:
    quantity: Quantity
    reading_field: str
    lower_field: str
    upper_field: str
    display_name: str
    unit: str
    vendor_aliases: Tuple[str, ...]

    @property
    def reading_value(self) -> Callable[[object], Optional[float]]:
        return attrgetter(self.reading_field)

    @property
    def lower_bound(self) -> Callable[[object], Optional[float]]:
        return attrgetter(self.lower_field)

    @property
    def upper_bound(self) -> Callable[[object], Optional[float]]:
        return attrgetter(self.upper_field)

    @property
    def threshold_columns(self) -> Tuple[str, str]:
        """Columnas de la tabla materials para (inferior, superior)."""
        return f"threshold_{self.lower_field}", f"threshold_{self.upper_field}"


def _spec(quantity: Quantity, display_name: str, unit: str, *aliases: str) -> QuantitySpec:
    name = quantity.value
    return QuantitySpec(
        quantity=quantity,
        reading_field=name,
        lower_field=f"{name}_lower",
        upper_field=f"{name}_upper",
        display_name=display_name,
        unit=unit,
        vendor_aliases=(name,) + aliases,
    )


QUANTITY_TABLE: Tuple[QuantitySpec, ...] = (
    _spec(Quantity.TEMPERATURE, "Temperature", "°C"),
    _spec(Quantity.HUMIDITY, "Humidity", "%", "relativehumidity"),
    _spec(Quantity.CO2, "CO₂", "ppm", "co2concentration", "carbon_dioxide"),
    _spec(Quantity.AIR_PRESSURE, "Air Pressure", "hPa", "airpressure", "pressure", "atmospheric_pressure"),
    _spec(Quantity.MOLD_RISK, "Mold Risk", "", "moldrisk", "moldrisklevel", "mold_risk_level"),
    _spec(
        Quantity.ILLUMINANCE, "Illuminance", "lux",
        "illumination", "light", "lightlevel", "light_level", "illuminationlevel",
    ),
)

QUANTITIES_BY_NAME: Dict[Quantity, QuantitySpec] = {spec.quantity: spec for spec in QUANTITY_TABLE}

# alias del proveedor (minúsculas) -> magnitud
VENDOR_ALIASES: Dict[str, Quantity] = {
    alias.lower(): spec.quantity
    for spec in QUANTITY_TABLE
    for alias in spec.vendor_aliases
}

READING_FIELDS: Tuple[str, ...] = tuple(spec.reading_field for spec in QUANTITY_TABLE)


def spec_for(quantity: Quantity | str) -> QuantitySpec:
    return QUANTITIES_BY_NAME[Quantity(quantity)]


def resolve_vendor_name(name: str) -> Optional[Quantity]:
    """Resuelve un nombre de propiedad del proveedor (case-insensitive)."""
    if not name:
        return None
    return VENDOR_ALIASES.get(name.strip().lower())
