"""Modelos del dominio de alertas ambientales."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from .quantities import Quantity


class Direction(str, Enum):
    """Sentido en que se violó el umbral."""
    UPPER = "upper"
    LOWER = "lower"


class AlertStatus(str, Enum):
    """Estados de ciclo de vida de una alerta."""
    ACTIVE = "active"
    DISMISSED = "dismissed"


@dataclass(frozen=True)
class Reading:
    """Muestra de sensores de un dispositivo para un artefacto (inmutable)."""
    id: str
    artifact_id: str
    device_id: str
    timestamp: datetime
    created_at: datetime
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    co2: Optional[float] = None
    air_pressure: Optional[float] = None
    mold_risk: Optional[float] = None
    illuminance: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MaterialThresholds:
    """Umbrales del material asociado al artefacto.

    ``None`` en cualquier límite significa "sin límite en ese sentido".
    """
    material_id: Optional[str] = None
    temperature_lower: Optional[float] = None
    temperature_upper: Optional[float] = None
    humidity_lower: Optional[float] = None
    humidity_upper: Optional[float] = None
    co2_lower: Optional[float] = None
    co2_upper: Optional[float] = None
    air_pressure_lower: Optional[float] = None
    air_pressure_upper: Optional[float] = None
    mold_risk_lower: Optional[float] = None
    mold_risk_upper: Optional[float] = None
    illuminance_lower: Optional[float] = None
    illuminance_upper: Optional[float] = None


@dataclass(frozen=True)
class BreachCandidate:
    """Violación detectada por el evaluador; se consume de inmediato."""
    artifact_id: str
    device_id: str
    reading_id: str
    reading_timestamp: datetime
    quantity: Quantity
    direction: Direction
    measured_value: float
    threshold_value: float

    @property
    def key(self) -> tuple[str, str, str]:
        """Clave de deduplicación (artefacto, magnitud, sentido)."""
        return self.artifact_id, self.quantity.value, self.direction.value


@dataclass(frozen=True)
class Alert:
    id: str
    artifact_id: str
    device_id: str
    reading_id: Optional[str]
    quantity: Quantity
    direction: Direction
    measured_value: float
    threshold_value: float
    status: AlertStatus
    detected_at: datetime
    created_at: datetime
    updated_at: Optional[datetime] = None
    dismissed_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == AlertStatus.ACTIVE


@dataclass(frozen=True)
class AlertFilters:
    """Filtros de consulta de alertas (todos opcionales)."""
    artifact_id: Optional[str] = None
    device_id: Optional[str] = None
    status: Optional[AlertStatus] = None
    quantity: Optional[Quantity] = None
    limit: Optional[int] = None


@dataclass(frozen=True)
class ArtifactContext:
    """Datos del artefacto que acompañan a una notificación."""
    id: str
    name: str
    artist: Optional[str] = None
    location: Optional[str] = None


@dataclass
class IngestOutcome:
    """Resultado de ``IngestPipeline.ingest``."""
    reading: Reading
    alerts: list[Alert] = field(default_factory=list)
    created_alert_ids: list[str] = field(default_factory=list)
