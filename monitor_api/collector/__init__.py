"""Colección periódica desde la nube de dispositivos."""

from .models import CollectorState, CollectorStatus, CycleSummary, FetchBatch
from .scheduler import CollectionScheduler
from .source import CloudReadingSource, ReadingSource

__all__ = [
    "CollectionScheduler",
    "CollectorState",
    "CollectorStatus",
    "CycleSummary",
    "FetchBatch",
    "CloudReadingSource",
    "ReadingSource",
]
