"""Periodic official-result check of every saved set.

Usage:
  python scripts/auto_check.py --once
  python scripts/auto_check.py --interval 1800

Complements the on-view check done by `GET /history/<id>`: unavailable
results are simply tried again on the next pass.
"""

from __future__ import annotations

import argparse
import logging
import time
from collections.abc import Callable, Sequence

from flask import Flask

from loteria.services.conference_service import AutoCheckReport, ConferenceService


logger = logging.getLogger(__name__)


def run_auto_check(app: Flask, service: ConferenceService | None = None) -> AutoCheckReport:
    """One pass over the history store, committed as a single transaction."""

    service = service or ConferenceService(lookup=app.extensions["draw_results"])
    workers = int(app.config.get("AUTO_CHECK_WORKERS", 4))

    with app.app_context():
        if app.config.get("DB_BACKEND") == "mongo":
            return service.auto_check_all(None, max_workers=workers)

        session = app.extensions["session_factory"]()
        try:
            report = service.auto_check_all(session, max_workers=workers)
            session.commit()
            return report
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


def run_forever(
    app: Flask,
    interval_seconds: float,
    *,
    sleep: Callable[[float], None] = time.sleep,
    max_passes: int | None = None,
) -> int:
    """Repeat `run_auto_check` every `interval_seconds`; a failed pass is logged and retried later."""

    passes = 0
    while max_passes is None or passes < max_passes:
        try:
            report = run_auto_check(app)
            logger.info("Pass done: %d examined, %d updated", report.examined, report.updated)
        except Exception:
            logger.exception("Auto-check pass failed")
        passes += 1
        if max_passes is not None and passes >= max_passes:
            break
        sleep(interval_seconds)
    return passes


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Check saved sets against official lottery results")
    parser.add_argument("--once", action="store_true", help="Run a single pass and exit")
    parser.add_argument(
        "--interval",
        dest="interval_seconds",
        type=float,
        default=None,
        help="Seconds between passes (default: AUTO_CHECK_INTERVAL_SECONDS)",
    )
    args = parser.parse_args(argv)
    if args.interval_seconds is not None and args.interval_seconds <= 0:
        parser.error("--interval must be > 0")

    from loteria import create_app

    app = create_app()

    if args.once:
        report = run_auto_check(app)
        logger.info("Examined %d saved set(s), updated %d", report.examined, report.updated)
        return 0

    interval = args.interval_seconds
    if interval is None:
        interval = float(app.config.get("AUTO_CHECK_INTERVAL_SECONDS", 1800))
    if interval <= 0:
        raise SystemExit("AUTO_CHECK_INTERVAL_SECONDS must be > 0")

    logger.info("Checking official results every %ss", interval)
    run_forever(app, interval)
    return 0
