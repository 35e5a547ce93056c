"""
Celery tasks for ShiftGuard workforce tracking.

Tasks:
  detect_no_shows: runs every 15 minutes; raises no show exceptions for
                    published shifts whose grace period has passed without
                    a clock-in.

Registered in CELERY_BEAT_SCHEDULE (see settings/base.py). Idempotent: an
employee gets at most one no show per shift however often this runs.
"""

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(name="workforce.detect_no_shows")
def detect_no_shows() -> dict:
    """
    Scan recent published shifts for missing clock-ins.

    Returns:
        Dict with the number of new exceptions raised.
    """
    from apps.workforce.services import detect_no_shows as detect

    created = detect()
    if created:
        logger.info("No show scan raised %d exception(s).", len(created))
    return {"no_shows": len(created)}
