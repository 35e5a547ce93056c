"""
Celery tasks for ShiftGuard scheduling.

Tasks:
  auto_lock_periods: runs hourly; locks published schedule periods whose
                      auto_lock_at deadline has passed.

Registered in CELERY_BEAT_SCHEDULE (see settings/base.py).

Design notes:
  - Idempotent: a period that is already locked is simply not selected again.
  - Locks are taken per period, so one failure does not stop the batch.
"""

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(name="scheduling.auto_lock_periods")
def auto_lock_periods() -> dict:
    """
    Lock every published period past its auto_lock_at.

    Returns:
        Dict with the ids of the periods locked.
    """
    from apps.scheduling.governance import SchedulePeriodService

    locked = SchedulePeriodService.auto_lock_due_periods()
    if locked:
        logger.info("Auto-locked period(s): %s", locked)
    return {"locked": locked}
