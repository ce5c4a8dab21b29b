"""CLI entry point for the cloud collector."""

from __future__ import annotations

import argparse
import logging

from common.config import get_settings
from monitor_api.dependencies import build_services
from monitor_api.infrastructure.persistence.tables import ensure_schema

logger = logging.getLogger(__name__)


def _log_status(status) -> None:
    logger.info(
        "Estado: state=%s attempted=%d succeeded=%d failed=%d alerts=%d remaining=%.0fs msg=%s",
        status.state.value,
        status.attempted,
        status.succeeded,
        status.failed,
        status.alerts_raised,
        status.remaining_seconds,
        status.status_message,
    )


def main(argv=None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    settings = get_settings()

    p = argparse.ArgumentParser(description="Collector: fetch device cloud readings and raise alerts")
    p.add_argument("--duration-minutes", type=float, default=settings.collector_default_duration_minutes)
    p.add_argument("--interval-seconds", type=float, default=settings.collector_default_interval_seconds)
    p.add_argument("--status-every", type=float, default=30.0, help="seconds between status log lines")
    p.add_argument("--once", action="store_true", help="run a single cycle and exit")
    args = p.parse_args(argv)

    services = build_services(settings)
    ensure_schema(services.engine)
    scheduler = services.scheduler

    logger.info(
        "Collector started duration=%.2fmin interval=%.1fs",
        args.duration_minutes,
        args.interval_seconds,
    )

    status = scheduler.start(args.duration_minutes, args.interval_seconds)
    _log_status(status)
    if args.once:
        scheduler.shutdown()
        return 0 if status.failed == 0 else 1

    try:
        while not scheduler.wait(timeout=args.status_every):
            _log_status(scheduler.status())
    except KeyboardInterrupt:
        logger.info("Interrumpido, deteniendo colector...")
    finally:
        final = scheduler.status()
        _log_status(final)
        scheduler.shutdown()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
