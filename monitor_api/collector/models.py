"""Estado del colector periódico."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Deque, List, Mapping, Optional

RECENT_CYCLES = 10


class CollectorState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass(frozen=True)
class FetchBatch:
    """Lote crudo de un ciclo; ``errors`` son fallos parciales por dispositivo."""
    readings: List[Mapping[str, Any]] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class CycleSummary:
    started_at: datetime
    finished_at: datetime
    success: bool
    readings_ingested: int
    alerts_raised: int
    message: str


@dataclass
class CollectionRun:
    """Estado mutable de una corrida; se descarta completo en ``stop``.

    Los tiempos ``*_mono`` son del reloj monotónico; sólo se acumula tiempo
    transcurrido mientras la corrida está en RUNNING.
    """
    id: str
    duration_seconds: float
    interval_seconds: float
    started_at: datetime
    state: CollectorState = CollectorState.RUNNING
    wake: threading.Event = field(default_factory=threading.Event)

    elapsed_accum: float = 0.0
    running_since_mono: Optional[float] = None
    next_fetch_mono: Optional[float] = None
    paused_fetch_in: Optional[float] = None

    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    alerts_raised: int = 0
    last_fetch_at: Optional[datetime] = None
    status_message: str = "starting"
    recent: Deque[CycleSummary] = field(default_factory=lambda: deque(maxlen=RECENT_CYCLES))

    def elapsed(self, now_mono: float) -> float:
        elapsed = self.elapsed_accum
        if self.state == CollectorState.RUNNING and self.running_since_mono is not None:
            elapsed += now_mono - self.running_since_mono
        return min(elapsed, self.duration_seconds)


@dataclass(frozen=True)
class CollectorStatus:
    """Snapshot inmutable para la API/CLI."""
    state: CollectorState
    run_id: Optional[str] = None
    duration_minutes: Optional[float] = None
    interval_seconds: Optional[float] = None
    started_at: Optional[datetime] = None
    elapsed_seconds: float = 0.0
    remaining_seconds: float = 0.0
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    alerts_raised: int = 0
    last_fetch_at: Optional[datetime] = None
    next_fetch_at: Optional[datetime] = None
    status_message: str = "idle"
    recent: List[CycleSummary] = field(default_factory=list)
