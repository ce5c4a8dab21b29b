from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url

from .config import Settings, get_settings


logger = logging.getLogger(__name__)


def build_engine(database_url: str, *, timeout_seconds: float = 10.0) -> Engine:
    """Crea el engine con límites de espera acotados.

    SQLite necesita ``check_same_thread=False`` porque el scheduler y los
    requests HTTP comparten el engine desde threads distintos; el ``timeout``
    es el busy-timeout del lock de escritura.
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        connect_args = {"check_same_thread": False, "timeout": timeout_seconds}
        return create_engine(url, connect_args=connect_args, future=True)

    connect_args = {}
    if url.get_backend_name() == "postgresql":
        connect_args["connect_timeout"] = int(timeout_seconds)
        # statement_timeout acota también las esperas de lock (índice parcial de alertas)
        connect_args["options"] = f"-c statement_timeout={int(timeout_seconds * 1000)}"

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_recycle=300,
        pool_timeout=timeout_seconds,
        connect_args=connect_args,
        future=True,
    )


def get_engine(settings: Optional[Settings] = None) -> Engine:
    settings = settings or get_settings()
    url = make_url(settings.database_url)

    # Log básico de parámetros de conexión (sin contraseña)
    logger.info(
        "[DB] Crear engine backend=%s host=%s db=%s",
        url.get_backend_name(),
        url.host,
        url.database,
    )

    engine = build_engine(settings.database_url, timeout_seconds=settings.db_timeout_seconds)

    # Test de conexión: ayuda a ver en logs si el servicio realmente llega a la BD
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("[DB] Test de conexión OK")
    except Exception:
        logger.exception("[DB] Test de conexión FALLÓ")

    return engine


def ping(engine: Engine) -> None:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
