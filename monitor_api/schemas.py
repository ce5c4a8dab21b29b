from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .collector.models import CollectorStatus, CycleSummary
from .domain.models import Alert, Reading


class ReadingOut(BaseModel):
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

    @classmethod
    def from_domain(cls, reading: Reading) -> "ReadingOut":
        return cls(**reading.to_dict())


class AlertOut(BaseModel):
    id: str
    artifact_id: str
    device_id: str
    reading_id: Optional[str] = None
    quantity: str
    direction: str
    measured_value: float
    threshold_value: float
    status: str
    detected_at: datetime
    created_at: datetime
    updated_at: Optional[datetime] = None
    dismissed_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, alert: Alert) -> "AlertOut":
        return cls(
            id=alert.id,
            artifact_id=alert.artifact_id,
            device_id=alert.device_id,
            reading_id=alert.reading_id,
            quantity=alert.quantity.value,
            direction=alert.direction.value,
            measured_value=alert.measured_value,
            threshold_value=alert.threshold_value,
            status=alert.status.value,
            detected_at=alert.detected_at,
            created_at=alert.created_at,
            updated_at=alert.updated_at,
            dismissed_at=alert.dismissed_at,
        )


class IngestResponse(BaseModel):
    reading: ReadingOut
    alerts: List[AlertOut] = Field(default_factory=list)
    created_alert_ids: List[str] = Field(default_factory=list)


class AlertStatusIn(BaseModel):
    # str y no Enum: un valor desconocido se responde con 400, no con 422.
    status: str


class CollectorStartIn(BaseModel):
    duration_minutes: Optional[float] = None
    interval_seconds: Optional[float] = None


class CycleSummaryOut(BaseModel):
    started_at: datetime
    finished_at: datetime
    success: bool
    readings_ingested: int
    alerts_raised: int
    message: str

    @classmethod
    def from_domain(cls, cycle: CycleSummary) -> "CycleSummaryOut":
        return cls(
            started_at=cycle.started_at,
            finished_at=cycle.finished_at,
            success=cycle.success,
            readings_ingested=cycle.readings_ingested,
            alerts_raised=cycle.alerts_raised,
            message=cycle.message,
        )


class CollectorStatusOut(BaseModel):
    state: str
    run_id: Optional[str] = None
    duration_minutes: Optional[float] = None
    interval_seconds: Optional[float] = None
    started_at: Optional[datetime] = None
    elapsed_seconds: float = 0.0
    remaining_seconds: float = 0.0
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    alerts_raised: int = 0
    last_fetch_at: Optional[datetime] = None
    next_fetch_at: Optional[datetime] = None
    status_message: str = "idle"
    recent: List[CycleSummaryOut] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, status: CollectorStatus) -> "CollectorStatusOut":
        return cls(
            state=status.state.value,
            run_id=status.run_id,
            duration_minutes=status.duration_minutes,
            interval_seconds=status.interval_seconds,
            started_at=status.started_at,
            elapsed_seconds=status.elapsed_seconds,
            remaining_seconds=status.remaining_seconds,
            attempted=status.attempted,
            succeeded=status.succeeded,
            failed=status.failed,
            alerts_raised=status.alerts_raised,
            last_fetch_at=status.last_fetch_at,
            next_fetch_at=status.next_fetch_at,
            status_message=status.status_message,
            recent=[CycleSummaryOut.from_domain(c) for c in status.recent],
        )


class DeviceStatusOut(BaseModel):
    device_id: str
    name: str
    artifact_id: Optional[str] = None
    status: str
    last_measurement: Optional[datetime] = None


class ResetResult(BaseModel):
    alerts_deleted: int
    readings_deleted: int


class ErrorOut(BaseModel):
    error: str
    detail: str
