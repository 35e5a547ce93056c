"""
Attendance rules for ShiftGuard.

  effective_policy       → the attendance rules that apply at a location
  clock_in / clock_out   → record attendance, matching it to a scheduled shift
  detect_for_attendance  → late start, early leave, shift extended, overtime,
                           unscheduled shift exceptions for one attendance log
  detect_no_shows        → no show exceptions for shifts nobody turned up to

Detection is idempotent: at most one exception per (employee, shift, type)
(per attendance log for unscheduled shifts, per day for overtime), so the
periodic task can run as often as it likes.
"""

import datetime
import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.scheduling.exceptions import ShiftValidationError
from apps.scheduling.models import Shift, ShiftAssignment
from apps.workforce.models import AttendanceLog, WorkforceException, WorkforcePolicy

logger = logging.getLogger(__name__)

# How early before a shift a clock-in still counts toward it
CLOCK_IN_WINDOW = datetime.timedelta(hours=1)


@dataclass
class EffectivePolicy:
    """The resolved attendance rules for one location."""

    unscheduled_clock_in_policy: str
    grace_minutes: int
    late_threshold_minutes: int
    early_leave_threshold_minutes: int
    require_reason_on_locked_edits: bool

    @classmethod
    def from_settings(cls) -> "EffectivePolicy":
        config = settings.SHIFTGUARD
        return cls(
            unscheduled_clock_in_policy=config["DEFAULT_UNSCHEDULED_CLOCK_IN_POLICY"],
            grace_minutes=config["DEFAULT_GRACE_MINUTES"],
            late_threshold_minutes=config["DEFAULT_LATE_THRESHOLD_MINUTES"],
            early_leave_threshold_minutes=config["DEFAULT_EARLY_LEAVE_THRESHOLD_MINUTES"],
            require_reason_on_locked_edits=config["DEFAULT_REQUIRE_REASON_ON_LOCKED_EDITS"],
        )

    @classmethod
    def from_row(cls, row: WorkforcePolicy) -> "EffectivePolicy":
        return cls(
            unscheduled_clock_in_policy=row.unscheduled_clock_in_policy,
            grace_minutes=row.grace_minutes,
            late_threshold_minutes=row.late_threshold_minutes,
            early_leave_threshold_minutes=row.early_leave_threshold_minutes,
            require_reason_on_locked_edits=row.require_reason_on_locked_edits,
        )


def effective_policy(company, location=None) -> EffectivePolicy:
    """
    Resolve the attendance rules for a location.

    The location's own policy wins over the company default; with neither,
    the SHIFTGUARD settings defaults apply.
    """
    rows = {p.location_id: p for p in WorkforcePolicy.objects.filter(company=company)}
    if location is not None and location.pk in rows:
        return EffectivePolicy.from_row(rows[location.pk])
    if None in rows:
        return EffectivePolicy.from_row(rows[None])
    return EffectivePolicy.from_settings()


def _minutes(delta: datetime.timedelta) -> int:
    return int(delta.total_seconds() // 60)


def _raise(employee, location, exception_type: str, day: datetime.date, *, shift=None, log=None, metadata=None, **lookup):
    """Create an exception unless an equivalent one already exists."""
    exception, created = WorkforceException.objects.get_or_create(
        employee=employee,
        exception_type=exception_type,
        **lookup,
        defaults={
            "company": location.company,
            "location": location,
            "shift": shift,
            "attendance_log": log,
            "shift_date": day,
            "metadata": metadata or {},
        },
    )
    if created:
        logger.info(
            "Workforce exception %s raised for user %d on %s.", exception_type, employee.pk, day
        )
    return exception if created else None


# ---------------------------------------------------------------------------
# Clocking in and out
# ---------------------------------------------------------------------------


def matching_shift(employee, location, at: datetime.datetime) -> Optional[Shift]:
    """Find the approved shift this clock-in belongs to, if any."""
    local = at.astimezone(location.get_zoneinfo())
    candidates = Shift.objects.filter(
        location=location,
        shift_date__in=[local.date(), local.date() - datetime.timedelta(days=1)],
        assignments__employee=employee,
        assignments__approval_status=ShiftAssignment.Status.APPROVED,
    ).select_related("location")
    for shift in candidates:
        if shift.start_datetime() - CLOCK_IN_WINDOW <= at <= shift.end_datetime():
            return shift
    return None


@transaction.atomic
def clock_in(employee, location, at: Optional[datetime.datetime] = None) -> AttendanceLog:
    """
    Record a clock-in.

    Raises:
        ShiftValidationError: No matching shift and the policy blocks
            unscheduled clock-ins.
    """
    at = at or timezone.now()
    shift = matching_shift(employee, location, at)
    policy = effective_policy(location.company, location)

    if shift is None and policy.unscheduled_clock_in_policy == WorkforcePolicy.UnscheduledClockIn.BLOCK:
        logger.warning("Blocked unscheduled clock-in by user %d at %s.", employee.pk, location.name)
        raise ShiftValidationError("You are not scheduled to work now.", field="shift")

    log = AttendanceLog.objects.create(employee=employee, location=location, shift=shift, check_in_at=at)

    if shift is not None:
        # A late arrival clears a no show raised before they turned up
        WorkforceException.objects.filter(
            employee=employee,
            shift=shift,
            exception_type=WorkforceException.Type.NO_SHOW,
            status=WorkforceException.Status.PENDING,
        ).update(status=WorkforceException.Status.AUTO_RESOLVED, resolved_at=at, attendance_log=log)

    detect_for_attendance(log, policy=policy)
    return log


@transaction.atomic
def clock_out(log: AttendanceLog, at: Optional[datetime.datetime] = None) -> AttendanceLog:
    at = at or timezone.now()
    if log.check_out_at is not None:
        raise ShiftValidationError("Already clocked out.", field="check_out_at")
    if at <= log.check_in_at:
        raise ShiftValidationError("Clock-out must be after clock-in.", field="check_out_at")
    log.check_out_at = at
    log.save(update_fields=["check_out_at"])
    detect_for_attendance(log)
    return log


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def detect_for_attendance(log: AttendanceLog, policy: Optional[EffectivePolicy] = None) -> list[WorkforceException]:
    """
    Raise the exceptions one attendance log calls for.

    Returns:
        The newly created exceptions (already existing ones are not repeated).
    """
    location = log.location
    policy = policy or effective_policy(location.company, location)
    local_day = log.check_in_at.astimezone(location.get_zoneinfo()).date()
    created = []

    if log.shift_id is None:
        if policy.unscheduled_clock_in_policy != WorkforcePolicy.UnscheduledClockIn.ALLOW:
            created.append(
                _raise(log.employee, location, WorkforceException.Type.UNSCHEDULED_SHIFT, local_day, log=log, attendance_log=log)
            )
    else:
        shift = log.shift
        minutes_late = _minutes(log.check_in_at - shift.start_datetime())
        if minutes_late > policy.late_threshold_minutes:
            created.append(
                _raise(
                    log.employee, location, WorkforceException.Type.LATE_START, shift.shift_date,
                    shift=shift, log=log, metadata={"minutes_late": minutes_late}, shift_id=shift.pk,
                )
            )
        if log.check_out_at is not None:
            end = shift.end_datetime()
            minutes_early = _minutes(end - log.check_out_at)
            minutes_over = _minutes(log.check_out_at - end)
            if minutes_early > policy.early_leave_threshold_minutes:
                created.append(
                    _raise(
                        log.employee, location, WorkforceException.Type.EARLY_LEAVE, shift.shift_date,
                        shift=shift, log=log, metadata={"minutes_early": minutes_early}, shift_id=shift.pk,
                    )
                )
            elif minutes_over > policy.early_leave_threshold_minutes:
                created.append(
                    _raise(
                        log.employee, location, WorkforceException.Type.SHIFT_EXTENDED, shift.shift_date,
                        shift=shift, log=log, metadata={"minutes_over": minutes_over}, shift_id=shift.pk,
                    )
                )

    if log.check_out_at is not None:
        # the location's calendar day, not the UTC one
        day_start = location.localize(local_day, datetime.time.min)
        day_end = location.localize(local_day + datetime.timedelta(days=1), datetime.time.min)
        worked = sum(
            entry.worked_hours
            for entry in AttendanceLog.objects.filter(
                employee=log.employee,
                check_in_at__gte=day_start,
                check_in_at__lt=day_end,
                check_out_at__isnull=False,
            )
        )
        limit = settings.SHIFTGUARD["OVERTIME_DAILY_HOURS"]
        if worked > limit:
            created.append(
                _raise(
                    log.employee, location, WorkforceException.Type.OVERTIME, local_day,
                    shift=log.shift, log=log, metadata={"hours_worked": round(worked, 2), "limit": limit},
                    shift_date=local_day,
                )
            )

    return [e for e in created if e is not None]


def detect_no_shows(now: Optional[datetime.datetime] = None) -> list[WorkforceException]:
    """
    Raise no show exceptions for published shifts whose start plus the grace
    period has passed without the assigned employee clocking in.

    Looks at shifts dated yesterday and today (server date) so overnight
    shifts are covered. Safe to run repeatedly.
    """
    now = now or timezone.now()
    today = now.date()
    assignments = ShiftAssignment.objects.filter(
        approval_status=ShiftAssignment.Status.APPROVED,
        shift__is_published=True,
        shift__shift_date__range=(today - datetime.timedelta(days=1), today),
    ).select_related("shift__location__company", "employee")

    policies = {}
    created = []
    for assignment in assignments:
        shift = assignment.shift
        location = shift.location
        if location.pk not in policies:
            policies[location.pk] = effective_policy(location.company, location)
        grace = datetime.timedelta(minutes=policies[location.pk].grace_minutes)

        if shift.start_datetime() + grace > now:
            continue
        if AttendanceLog.objects.filter(employee=assignment.employee, shift=shift).exists():
            continue

        exception = _raise(
            assignment.employee, location, WorkforceException.Type.NO_SHOW, shift.shift_date,
            shift=shift, metadata={"grace_minutes": policies[location.pk].grace_minutes}, shift_id=shift.pk,
        )
        if exception is not None:
            created.append(exception)

    if created:
        logger.info("Detected %d no show(s).", len(created))
    return created
