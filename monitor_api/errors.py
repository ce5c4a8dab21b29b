"""Taxonomía de errores del núcleo de monitoreo.

Cada error lleva un ``code`` estable que la capa HTTP usa para construir la
respuesta estructurada ``{"error": code, "detail": mensaje}``.
"""

from __future__ import annotations

from typing import Optional


class MonitorError(Exception):
    """Base de todos los errores del núcleo."""

    code = "monitor_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(MonitorError):
    """Campos requeridos ausentes o mal formados (se rechaza antes de persistir)."""

    code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class NotFound(MonitorError):
    """Operación sobre un id de alerta/artefacto/dispositivo desconocido."""

    code = "not_found"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} '{entity_id}' not found")


class InvalidStatus(MonitorError):
    """Transición de estado fuera de {active, dismissed} o que rompería el invariante."""

    code = "invalid_status"

    def __init__(self, status: object, reason: Optional[str] = None):
        self.status = status
        self.reason = reason
        message = f"Invalid alert status: {status!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class UpstreamError(MonitorError):
    """Fallo del store, catálogo o registro de dispositivos durante la ingesta."""

    code = "upstream_error"


class FetchError(MonitorError):
    """Fallo de la nube de dispositivos durante un ciclo del scheduler."""

    code = "fetch_error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class SchedulerStateError(MonitorError):
    """Operación del scheduler no permitida en el estado actual."""

    code = "scheduler_state"


class DeviceNotLinked(MonitorError):
    """El dispositivo existe pero no puede leerse desde la nube."""

    code = "device_not_linked"

    def __init__(self, device_id: str, reason: str):
        self.device_id = device_id
        self.reason = reason
        super().__init__(f"Device '{device_id}' {reason}")
