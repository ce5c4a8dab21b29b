"""Notificaciones de alertas nuevas.

Best-effort: un fallo del notificador nunca cambia el estado de la alerta ni
hace fallar la ingesta. El llamador loguea y sigue.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Optional, Protocol

import requests

from ..domain.models import Alert, ArtifactContext, Direction
from ..domain.quantities import spec_for

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(self, alert: Alert, artifact: Optional[ArtifactContext]) -> bool:
        ...


def format_alert_message(alert: Alert, artifact: Optional[ArtifactContext]) -> tuple[str, str]:
    """Arma (asunto, cuerpo) legibles para una alerta."""
    spec = spec_for(alert.quantity)
    artifact_name = artifact.name if artifact else alert.artifact_id
    level = "HIGH" if alert.direction == Direction.UPPER else "LOW"
    relation = "above" if alert.direction == Direction.UPPER else "below"
    unit = f" {spec.unit}" if spec.unit else ""

    subject = f'ALERT: {level} {spec.display_name} for "{artifact_name}"'
    lines = [
        f"{spec.display_name} measured {alert.measured_value:g}{unit}, "
        f"{relation} the threshold of {alert.threshold_value:g}{unit}.",
        f"Artifact: {artifact_name}",
    ]
    if artifact and artifact.artist:
        lines.append(f"Artist: {artifact.artist}")
    if artifact and artifact.location:
        lines.append(f"Location: {artifact.location}")
    lines.append(f"Device: {alert.device_id}")
    lines.append(f"Detected at: {alert.detected_at.isoformat()}")
    return subject, "\n".join(lines)


class RateLimitedNotifier:
    """Evita ráfagas: como máximo una notificación por artefacto cada N minutos."""

    def __init__(
        self,
        inner: Notifier,
        *,
        min_interval_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._inner = inner
        self._min_interval_seconds = float(min_interval_seconds)
        self._clock = clock
        self._last_sent_by_artifact: Dict[str, float] = {}
        self._lock = threading.Lock()

    def notify(self, alert: Alert, artifact: Optional[ArtifactContext]) -> bool:
        now = self._clock()
        with self._lock:
            last = self._last_sent_by_artifact.get(alert.artifact_id)
            if last is not None and (now - last) < self._min_interval_seconds:
                logger.info(
                    "[NOTIFY] rate_limited artifact=%s alert=%s since_last=%.1fs",
                    alert.artifact_id, alert.id, now - last,
                )
                return False

        delivered = self._inner.notify(alert, artifact)
        if delivered:
            # Sólo un envío exitoso abre la ventana; un fallo deja reintentar.
            with self._lock:
                self._last_sent_by_artifact[alert.artifact_id] = now
        return delivered


class LoggingNotifier:
    """Notificador por defecto cuando no hay webhook configurado."""

    def notify(self, alert: Alert, artifact: Optional[ArtifactContext]) -> bool:
        subject, _ = format_alert_message(alert, artifact)
        logger.warning("[NOTIFY] %s (alert=%s)", subject, alert.id)
        return True


class WebhookNotifier:
    """Entrega la alerta a un webhook HTTP (p. ej. el servicio de email)."""

    def __init__(
        self,
        url: str,
        *,
        timeout_seconds: float = 5.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._url = url
        self._timeout = timeout_seconds
        self._session = session or requests.Session()

    def notify(self, alert: Alert, artifact: Optional[ArtifactContext]) -> bool:
        subject, body = format_alert_message(alert, artifact)
        payload = {
            "type": "alert",
            "alertId": alert.id,
            "artifactId": alert.artifact_id,
            "quantity": alert.quantity.value,
            "direction": alert.direction.value,
            "measuredValue": alert.measured_value,
            "thresholdValue": alert.threshold_value,
            "detectedAt": alert.detected_at.isoformat(),
            "subject": subject,
            "message": body,
        }
        try:
            response = self._session.post(self._url, json=payload, timeout=self._timeout)
        except requests.RequestException as e:
            logger.error("[NOTIFY] webhook error alert=%s err=%s", alert.id, e)
            return False

        if not response.ok:
            logger.warning(
                "[NOTIFY] webhook rejected alert=%s status=%s body=%s",
                alert.id, response.status_code, response.text[:200],
            )
            return False

        logger.info("[NOTIFY] webhook delivered alert=%s", alert.id)
        return True


def build_notifier(
    webhook_url: Optional[str],
    *,
    timeout_seconds: float,
    min_interval_minutes: float,
) -> Notifier:
    inner: Notifier
    if webhook_url:
        inner = WebhookNotifier(webhook_url, timeout_seconds=timeout_seconds)
    else:
        inner = LoggingNotifier()
    if min_interval_minutes <= 0:
        return inner
    return RateLimitedNotifier(inner, min_interval_seconds=min_interval_minutes * 60.0)
