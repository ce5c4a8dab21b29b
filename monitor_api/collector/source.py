"""Fuente de lecturas del colector: dispositivos vinculados a la nube."""

from __future__ import annotations

import logging
from typing import Any, Dict, Protocol

from ..cloud.client import DeviceCloudClient
from ..devices.registry import DeviceRegistry
from ..errors import DeviceNotLinked, FetchError, NotFound, UpstreamError
from .models import FetchBatch

logger = logging.getLogger(__name__)


class ReadingSource(Protocol):
    def fetch_batch(self) -> FetchBatch:
        ...


class DeviceReadingSource(ReadingSource, Protocol):
    def fetch_device(self, device_id: str) -> Dict[str, Any]:
        ...


def _to_raw_reading(artifact_id: str, device_id: str, properties) -> Dict[str, Any]:
    """Arma el payload crudo en el formato lista que acepta la ingesta."""
    items = []
    for prop in properties:
        name = prop.get("variable_name") or prop.get("name")
        if not name:
            continue
        value = prop.get("last_value", prop.get("value"))
        items.append({"variable_name": name, "value": value})
    return {"artifact_id": artifact_id, "device_id": device_id, "properties": items}


class CloudReadingSource:
    """Una lectura por dispositivo con ``cloud_thing_id`` y artefacto asignado.

    Un fallo en un dispositivo no corta el lote: queda en ``errors`` y el ciclo
    se cuenta como fallido. Si no hay credenciales o falla la auth, el ciclo
    entero falla con FetchError.

    No se manda timestamp: la lectura toma el momento de ingesta.
    """

    def __init__(self, client: DeviceCloudClient, registry: DeviceRegistry) -> None:
        self._client = client
        self._registry = registry

    def fetch_batch(self) -> FetchBatch:
        if not self._client.configured:
            raise FetchError("Device cloud credentials are not configured")

        try:
            devices = self._registry.cloud_bound_devices()
        except UpstreamError as e:
            raise FetchError(f"Device registry unavailable: {e.message}") from e

        readings = []
        errors = []
        for device in devices:
            try:
                properties = self._client.get_properties(device.cloud_thing_id)
            except FetchError as e:
                if e.status_code in (401, 403):
                    # auth rechazada: el resto fallaría igual
                    raise
                logger.warning(
                    "[CLOUD] fetch failed device=%s thing=%s err=%s",
                    device.id, device.cloud_thing_id, e.message,
                )
                errors.append(f"{device.id}: {e.message}")
                continue

            readings.append(_to_raw_reading(device.artifact_id, device.id, properties))

        logger.info("[CLOUD] batch devices=%d readings=%d errors=%d", len(devices), len(readings), len(errors))
        return FetchBatch(readings=readings, errors=errors)

    def fetch_device(self, device_id: str) -> Dict[str, Any]:
        """Lectura a demanda de un solo dispositivo (fetch manual).

        Pasos:
        1. El dispositivo debe existir (NotFound) y tener thing y artefacto
           asignados (DeviceNotLinked).
        2. El thing debe seguir existiendo en la nube (NotFound).
        3. Propiedades actuales del thing -> payload crudo para la ingesta.
        """
        device = self._registry.get(device_id)
        if not device.cloud_thing_id:
            raise DeviceNotLinked(device_id, "has no cloud thing associated")
        if not device.artifact_id:
            raise DeviceNotLinked(device_id, "is not assigned to an artifact")
        if not self._client.configured:
            raise FetchError("Device cloud credentials are not configured")

        thing_ids = {thing.id for thing in self._client.list_things()}
        if device.cloud_thing_id not in thing_ids:
            raise NotFound("cloud thing", device.cloud_thing_id)

        properties = self._client.get_properties(device.cloud_thing_id)
        logger.info(
            "[CLOUD] manual fetch device=%s thing=%s properties=%d",
            device_id, device.cloud_thing_id, len(properties),
        )
        return _to_raw_reading(device.artifact_id, device.id, properties)
