"""Background schedule for the missed check-in scanner."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from heykin.core.config import settings
from heykin.services.scanner_service import MissedCheckinScanner

logger = logging.getLogger(__name__)

SCAN_JOB_ID = "missed_checkin_scan"

_scheduler: BackgroundScheduler | None = None


def start_scanner(scanner: MissedCheckinScanner | None = None, interval_minutes: int | None = None) -> BackgroundScheduler:
    """Start the interval job. Overlapping passes are skipped, missed runs coalesced."""
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        return _scheduler

    minutes = interval_minutes or settings.scan_interval_minutes
    scheduler = BackgroundScheduler(timezone=timezone.utc)
    scheduler.add_job(
        (scanner or MissedCheckinScanner()).run_once,
        trigger=IntervalTrigger(minutes=minutes),
        id=SCAN_JOB_ID,
        name="Missed check-in scan",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
        next_run_time=datetime.now(timezone.utc),
    )
    scheduler.start()
    _scheduler = scheduler
    logger.info("Missed check-in scanner started (every %s min)", minutes)
    return scheduler


def shutdown_scanner() -> None:
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Missed check-in scanner stopped")
    _scheduler = None


def scanner_running() -> bool:
    return _scheduler is not None and _scheduler.running
