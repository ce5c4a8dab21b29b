"""Scheduler de colección periódica (fetch de la nube + ingesta).

Máquina de estados: STOPPED -> RUNNING -> {PAUSED -> RUNNING, STOPPED}.

- Un solo worker thread por corrida, que espera en el Event de la corrida
  hasta el próximo fetch o el fin de la duración (lo que llegue antes).
- El tiempo transcurrido sólo avanza en RUNNING; en PAUSED el worker espera
  sin timeout y no hace fetch.
- ``stop`` descarta la corrida; un ciclo en vuelo termina pero su resultado se
  ignora porque su corrida ya no es la actual.
"""

from __future__ import annotations

import logging
import math
import threading
import time
import uuid
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from common.timeutils import utc_now

from ..errors import FetchError, MonitorError, SchedulerStateError, ValidationError
from ..ingest.pipeline import IngestPipeline
from .models import CollectionRun, CollectorState, CollectorStatus, CycleSummary
from .source import ReadingSource

logger = logging.getLogger(__name__)


def _validate_positive(value, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{field}: must be a number", field=field)
    number = float(value)
    if not math.isfinite(number) or number <= 0:
        raise ValidationError(f"{field}: must be greater than 0", field=field)
    return number


class CollectionScheduler:
    DEFAULT_DURATION_MINUTES = 5.0
    DEFAULT_INTERVAL_SECONDS = 5.0

    def __init__(
        self,
        source: ReadingSource,
        pipeline: IngestPipeline,
        *,
        default_duration_minutes: float = DEFAULT_DURATION_MINUTES,
        default_interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        monotonic: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = utc_now,
    ):
        self._source = source
        self._pipeline = pipeline
        self._default_duration_minutes = default_duration_minutes
        self._default_interval_seconds = default_interval_seconds
        self._monotonic = monotonic
        self._wall_clock = wall_clock

        self._lock = threading.Lock()
        self._run: Optional[CollectionRun] = None
        self._thread: Optional[threading.Thread] = None
        self._workers: List[threading.Thread] = []

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def start(
        self,
        duration_minutes: Optional[float] = None,
        interval_seconds: Optional[float] = None,
    ) -> CollectorStatus:
        """Arranca una corrida nueva y ejecuta el primer ciclo en el llamador."""
        if duration_minutes is None:
            duration_minutes = self._default_duration_minutes
        if interval_seconds is None:
            interval_seconds = self._default_interval_seconds
        duration_minutes = _validate_positive(duration_minutes, "duration_minutes")
        interval_seconds = _validate_positive(interval_seconds, "interval_seconds")

        with self._lock:
            if self._run is not None and self._run.state != CollectorState.STOPPED:
                raise SchedulerStateError(f"Collector is already {self._run.state.value}")

            run = CollectionRun(
                id=str(uuid.uuid4()),
                duration_seconds=duration_minutes * 60.0,
                interval_seconds=interval_seconds,
                started_at=self._wall_clock(),
                running_since_mono=self._monotonic(),
            )
            self._run = run

        logger.info(
            "[COLLECTOR] start run=%s duration_min=%s interval_s=%s",
            run.id, duration_minutes, interval_seconds,
        )

        self._run_cycle(run)

        with self._lock:
            if self._run is run and run.state != CollectorState.STOPPED:
                self._thread = threading.Thread(
                    target=self._loop,
                    args=(run,),
                    name=f"collector-{run.id[:8]}",
                    daemon=True,
                )
                self._thread.start()
                self._workers = [t for t in self._workers if t.is_alive()]
                self._workers.append(self._thread)

        return self.status()

    def pause(self) -> CollectorStatus:
        with self._lock:
            run = self._run
            if run is None or run.state != CollectorState.RUNNING:
                raise SchedulerStateError("Collector is not running")

            now = self._monotonic()
            run.elapsed_accum = run.elapsed(now)
            run.running_since_mono = None
            if run.next_fetch_mono is not None:
                run.paused_fetch_in = max(run.next_fetch_mono - now, 0.0)
            else:
                run.paused_fetch_in = run.interval_seconds
            run.next_fetch_mono = None
            run.state = CollectorState.PAUSED
            run.status_message = "paused"
            run.wake.set()

        logger.info("[COLLECTOR] pause run=%s elapsed_s=%.1f", run.id, run.elapsed_accum)
        return self.status()

    def resume(self) -> CollectorStatus:
        with self._lock:
            run = self._run
            if run is None or run.state != CollectorState.PAUSED:
                raise SchedulerStateError("Collector is not paused")

            now = self._monotonic()
            run.running_since_mono = now
            run.next_fetch_mono = now + (run.paused_fetch_in or 0.0)
            run.paused_fetch_in = None
            run.state = CollectorState.RUNNING
            run.status_message = "resumed"
            run.wake.set()

        logger.info("[COLLECTOR] resume run=%s", run.id)
        return self.status()

    def stop(self) -> CollectorStatus:
        """Cancela la espera pendiente y descarta la corrida. Idempotente."""
        with self._lock:
            run = self._run
            if run is None:
                return CollectorStatus(state=CollectorState.STOPPED)
            was_active = run.state != CollectorState.STOPPED
            run.state = CollectorState.STOPPED
            run.wake.set()
            self._run = None

        if was_active:
            logger.info(
                "[COLLECTOR] stop run=%s attempted=%d succeeded=%d failed=%d",
                run.id, run.attempted, run.succeeded, run.failed,
            )
        return CollectorStatus(state=CollectorState.STOPPED)

    def shutdown(self, timeout: float = 5.0) -> None:
        """Stop + join de los workers (lifespan de la app y CLI).

        Incluye workers de corridas anteriores que sigan terminando un ciclo.
        """
        with self._lock:
            workers = list(self._workers)
        self.stop()

        deadline = time.monotonic() + timeout
        current = threading.current_thread()
        for thread in workers:
            if thread is current or not thread.is_alive():
                continue
            thread.join(timeout=max(deadline - time.monotonic(), 0.0))
            if thread.is_alive():
                logger.warning("[COLLECTOR] worker %s did not exit within %.1fs", thread.name, timeout)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Espera a que el worker termine; True si terminó."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout=timeout)
        return not thread.is_alive()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> CollectorStatus:
        with self._lock:
            run = self._run
            if run is None:
                return CollectorStatus(state=CollectorState.STOPPED)

            now_mono = self._monotonic()
            now_wall = self._wall_clock()
            elapsed = run.elapsed(now_mono)

            next_fetch_at = None
            if run.state == CollectorState.RUNNING and run.next_fetch_mono is not None:
                next_fetch_at = now_wall + timedelta(seconds=max(run.next_fetch_mono - now_mono, 0.0))

            return CollectorStatus(
                state=run.state,
                run_id=run.id,
                duration_minutes=run.duration_seconds / 60.0,
                interval_seconds=run.interval_seconds,
                started_at=run.started_at,
                elapsed_seconds=elapsed,
                remaining_seconds=max(run.duration_seconds - elapsed, 0.0),
                attempted=run.attempted,
                succeeded=run.succeeded,
                failed=run.failed,
                alerts_raised=run.alerts_raised,
                last_fetch_at=run.last_fetch_at,
                next_fetch_at=next_fetch_at,
                status_message=run.status_message,
                recent=list(run.recent),
            )

    @property
    def state(self) -> CollectorState:
        with self._lock:
            return self._run.state if self._run is not None else CollectorState.STOPPED

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _loop(self, run: CollectionRun) -> None:
        logger.debug("[COLLECTOR] worker started run=%s", run.id)
        while True:
            due = False
            timeout: Optional[float] = None

            with self._lock:
                if self._run is not run or run.state == CollectorState.STOPPED:
                    break

                if run.state == CollectorState.RUNNING:
                    now = self._monotonic()
                    remaining = run.duration_seconds - run.elapsed(now)
                    if remaining <= 0:
                        self._complete_locked(run)
                        break

                    fetch_in = (run.next_fetch_mono or now) - now
                    if fetch_in <= 0:
                        due = True
                    else:
                        timeout = min(fetch_in, remaining)
                run.wake.clear()

            if due:
                self._run_cycle(run)
            else:
                run.wake.wait(timeout)

        logger.debug("[COLLECTOR] worker exited run=%s", run.id)

    def _complete_locked(self, run: CollectionRun) -> None:
        run.elapsed_accum = run.duration_seconds
        run.running_since_mono = None
        run.next_fetch_mono = None
        run.state = CollectorState.STOPPED
        run.status_message = "completed"
        logger.info(
            "[COLLECTOR] completed run=%s attempted=%d succeeded=%d failed=%d alerts=%d",
            run.id, run.attempted, run.succeeded, run.failed, run.alerts_raised,
        )

    def _run_cycle(self, run: CollectionRun) -> None:
        started_at = self._wall_clock()
        ingested = 0
        alerts_raised = 0
        errors = []
        readings = []

        try:
            batch = self._source.fetch_batch()
            readings = list(batch.readings)
            errors.extend(batch.errors)
        except FetchError as e:
            errors.append(f"fetch failed: {e.message}")
        except Exception as e:
            logger.exception("[COLLECTOR] unexpected fetch error run=%s", run.id)
            errors.append(f"fetch failed: {type(e).__name__}")

        for raw in readings:
            try:
                outcome = self._pipeline.ingest(raw)
            except MonitorError as e:
                logger.warning("[COLLECTOR] ingest failed run=%s err=%s", run.id, e.message)
                errors.append(f"ingest failed: {e.message}")
                continue
            except Exception as e:
                logger.exception("[COLLECTOR] unexpected ingest error run=%s", run.id)
                errors.append(f"ingest failed: {type(e).__name__}")
                continue
            ingested += 1
            alerts_raised += len(outcome.created_alert_ids)

        success = not errors
        if not success:
            message = "; ".join(errors)
        elif not readings:
            message = "no readings"
        else:
            message = f"ingested {ingested} readings"

        summary = CycleSummary(
            started_at=started_at,
            finished_at=self._wall_clock(),
            success=success,
            readings_ingested=ingested,
            alerts_raised=alerts_raised,
            message=message,
        )

        with self._lock:
            if self._run is not run or run.state == CollectorState.STOPPED:
                logger.info("[COLLECTOR] run superseded, dropping cycle result run=%s", run.id)
                return

            run.attempted += 1
            if success:
                run.succeeded += 1
            else:
                run.failed += 1
            run.alerts_raised += alerts_raised
            run.last_fetch_at = summary.finished_at
            run.status_message = message
            run.recent.append(summary)

            if run.state == CollectorState.PAUSED:
                run.paused_fetch_in = run.interval_seconds
            else:
                run.next_fetch_mono = self._monotonic() + run.interval_seconds

        log = logger.info if success else logger.warning
        log(
            "[COLLECTOR] cycle run=%s success=%s ingested=%d alerts=%d msg=%s",
            run.id, success, ingested, alerts_raised, message,
        )
