"""Ingesta de lecturas: validación, normalización, persistencia y alertas."""

from .pipeline import IngestPipeline
from .reading_store import ReadingStore

__all__ = ["IngestPipeline", "ReadingStore"]
