"""Persistencia relacional (SQLAlchemy Core)."""

from .tables import ensure_schema, metadata

__all__ = ["ensure_schema", "metadata"]
