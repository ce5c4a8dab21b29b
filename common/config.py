from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _default_env_file() -> str:
    # .env junto al directorio de trabajo del servicio.
    return str(Path.cwd() / ".env")


def _optional(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


@dataclass(frozen=True)
class Settings:
    database_url: str
    db_timeout_seconds: float

    cloud_base_url: str
    cloud_client_id: Optional[str]
    cloud_client_secret: Optional[str]
    cloud_timeout_seconds: float

    collector_default_duration_minutes: float
    collector_default_interval_seconds: float

    device_online_within_minutes: float
    device_offline_after_minutes: float

    alert_webhook_url: Optional[str]
    alert_webhook_timeout_seconds: float
    alert_notify_min_interval_minutes: float

    api_key: Optional[str]


def get_settings() -> Settings:
    # Carga el .env (si existe) sin pisar variables reales del entorno.
    env_file = os.getenv("MONITOR_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./museum_monitor.db"),
        db_timeout_seconds=float(os.getenv("DB_TIMEOUT_SECONDS", "10")),
        cloud_base_url=os.getenv("CLOUD_BASE_URL", "https://api2.arduino.cc/iot").rstrip("/"),
        cloud_client_id=_optional("CLOUD_CLIENT_ID"),
        cloud_client_secret=_optional("CLOUD_CLIENT_SECRET"),
        cloud_timeout_seconds=float(os.getenv("CLOUD_TIMEOUT_SECONDS", "10")),
        collector_default_duration_minutes=float(os.getenv("COLLECTOR_DEFAULT_DURATION_MINUTES", "5")),
        collector_default_interval_seconds=float(os.getenv("COLLECTOR_DEFAULT_INTERVAL_SECONDS", "5")),
        device_online_within_minutes=float(os.getenv("DEVICE_ONLINE_WITHIN_MINUTES", "60")),
        device_offline_after_minutes=float(os.getenv("DEVICE_OFFLINE_AFTER_MINUTES", "1440")),
        alert_webhook_url=_optional("ALERT_WEBHOOK_URL"),
        alert_webhook_timeout_seconds=float(os.getenv("ALERT_WEBHOOK_TIMEOUT_SECONDS", "5")),
        alert_notify_min_interval_minutes=float(os.getenv("ALERT_NOTIFY_MIN_INTERVAL_MINUTES", "30")),
        api_key=_optional("MONITOR_API_KEY"),
    )
