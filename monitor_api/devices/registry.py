"""Registro de dispositivos y política de estado.

El estado se calcula con el tiempo desde la última medición; los umbrales
vienen de DEVICE_ONLINE_WITHIN_MINUTES y DEVICE_OFFLINE_AFTER_MINUTES.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, List, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from common.timeutils import as_utc, utc_now

from ..errors import NotFound, UpstreamError
from ..infrastructure.persistence import device_repository as repo
from ..infrastructure.persistence.device_repository import DeviceRecord

logger = logging.getLogger(__name__)


class DeviceStatus(str, Enum):
    ONLINE = "online"
    INACTIVE = "inactive"
    OFFLINE = "offline"
    MAINTENANCE = "maintenance"


@dataclass(frozen=True)
class DeviceStatusPolicy:
    online_within: timedelta = timedelta(hours=1)
    offline_after: timedelta = timedelta(hours=24)

    @classmethod
    def from_minutes(cls, online_within_minutes: float, offline_after_minutes: float) -> "DeviceStatusPolicy":
        return cls(
            online_within=timedelta(minutes=online_within_minutes),
            offline_after=timedelta(minutes=offline_after_minutes),
        )

    def classify(
        self,
        last_measurement: Optional[datetime],
        now: datetime,
        registry_status: Optional[str] = None,
    ) -> DeviceStatus:
        """online: medición reciente; inactive: entre ambos umbrales; offline: sin datos."""
        if registry_status == DeviceStatus.MAINTENANCE.value:
            return DeviceStatus.MAINTENANCE
        if last_measurement is None:
            return DeviceStatus.OFFLINE

        elapsed = as_utc(now) - as_utc(last_measurement)
        if elapsed <= self.online_within:
            return DeviceStatus.ONLINE
        if elapsed <= self.offline_after:
            return DeviceStatus.INACTIVE
        return DeviceStatus.OFFLINE


class DeviceRegistry:
    def __init__(
        self,
        engine: Engine,
        policy: Optional[DeviceStatusPolicy] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._engine = engine
        self._policy = policy or DeviceStatusPolicy()
        self._clock = clock

    def touch(self, device_id: str, seen_at: datetime) -> bool:
        """Actualiza el last-seen. Devuelve False si el dispositivo no existe."""
        try:
            with self._engine.begin() as conn:
                affected = repo.touch_last_measurement(conn, device_id, as_utc(seen_at), self._clock())
        except SQLAlchemyError as e:
            raise UpstreamError(f"Device update failed: {type(e).__name__}") from e
        return affected > 0

    def get(self, device_id: str) -> DeviceRecord:
        try:
            with self._engine.connect() as conn:
                device = repo.get_device(conn, device_id)
        except SQLAlchemyError as e:
            raise UpstreamError(f"Device lookup failed: {type(e).__name__}") from e
        if device is None:
            raise NotFound("device", device_id)
        return device

    def status_of(self, device_id: str) -> DeviceStatus:
        device = self.get(device_id)
        return self._policy.classify(device.last_measurement, self._clock(), device.status)

    def cloud_bound_devices(self) -> List[DeviceRecord]:
        try:
            with self._engine.connect() as conn:
                return repo.list_cloud_bound_devices(conn)
        except SQLAlchemyError as e:
            raise UpstreamError(f"Device listing failed: {type(e).__name__}") from e
