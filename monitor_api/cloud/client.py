"""Cliente HTTP de la nube de dispositivos (Arduino IoT Cloud v1).

Auth: OAuth2 client-credentials; el token se cachea hasta poco antes de su
expiración. Todas las llamadas tienen timeout; cualquier fallo se traduce a
``FetchError`` para que el scheduler lo cuente como ciclo fallido.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests

from ..errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api2.arduino.cc/iot"
TOKEN_AUDIENCE = "https://api2.arduino.cc/iot"

# Margen para no usar un token a punto de vencer.
TOKEN_EXPIRY_SKEW_SECONDS = 30.0


@dataclass(frozen=True)
class CloudThing:
    id: str
    name: str
    device_id: Optional[str] = None


class DeviceCloudClient:
    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._clock = clock

        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self._lock = threading.Lock()

    @property
    def configured(self) -> bool:
        return bool(self._client_id and self._client_secret)

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def _get_token(self) -> str:
        with self._lock:
            now = self._clock()
            if self._token and now < self._token_expires_at:
                return self._token

            if not self.configured:
                raise FetchError("Device cloud credentials are not configured")

            try:
                response = self._session.post(
                    f"{self._base_url}/v1/clients/token",
                    data={
                        "grant_type": "client_credentials",
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "audience": TOKEN_AUDIENCE,
                    },
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                    timeout=self._timeout,
                )
            except requests.RequestException as e:
                raise FetchError(f"Token request failed: {e}") from e

            if not response.ok:
                raise FetchError(
                    f"Token request rejected: {response.status_code}",
                    status_code=response.status_code,
                )

            try:
                payload = response.json()
                token = payload["access_token"]
            except (ValueError, KeyError, TypeError) as e:
                raise FetchError("Token response is malformed") from e

            expires_in = float(payload.get("expires_in") or 0)
            self._token = token
            self._token_expires_at = now + max(expires_in - TOKEN_EXPIRY_SKEW_SECONDS, 0.0)
            logger.info("[CLOUD] token refreshed expires_in=%ss", int(expires_in))
            return token

    def _request(self, path: str) -> Any:
        token = self._get_token()
        url = f"{self._base_url}{path}"
        try:
            response = self._session.get(
                url,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise FetchError(f"Device cloud request failed: {e}") from e

        if response.status_code == 401:
            # Token revocado: forzar refresh en la próxima llamada.
            with self._lock:
                self._token = None
        if not response.ok:
            raise FetchError(
                f"Device cloud error {response.status_code} for {path}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise FetchError(f"Device cloud returned invalid JSON for {path}") from e

    # ------------------------------------------------------------------
    # API
    # ------------------------------------------------------------------

    def list_things(self) -> List[CloudThing]:
        body = self._request("/v1/things")
        if not isinstance(body, list):
            raise FetchError("Unexpected things response shape")

        things = []
        for item in body:
            if not isinstance(item, dict) or not item.get("id"):
                continue
            things.append(
                CloudThing(
                    id=str(item["id"]),
                    name=item.get("device_name") or item.get("name") or "Unknown Device",
                    device_id=item.get("device_id") or None,
                )
            )
        logger.debug("[CLOUD] things=%d", len(things))
        return things

    def get_properties(self, thing_id: str) -> List[Dict[str, Any]]:
        """Propiedades crudas de un thing (``variable_name``, ``last_value``, ...)."""
        body = self._request(f"/v1/things/{thing_id}/properties")
        if not isinstance(body, list):
            raise FetchError(f"Unexpected properties response shape for thing={thing_id}")
        return [p for p in body if isinstance(p, dict)]
