"""
Read-side helpers for schedule views.

  shifts_for_week       → a week's shifts, narrowed by location and type filter
  shift_display_status  → the badge shown on a shift card
  visible_assignments   → assignees minus those on approved time off
  serialize_*           → JSON shapes used by the schedule endpoints
"""

import datetime
from typing import Optional

from django.db.models import Count, F, Q
from django.utils import timezone

from apps.scheduling.exceptions import ShiftValidationError
from apps.scheduling.models import Shift, ShiftAssignment

SHIFT_TYPE_FILTERS = ("all", "open", "unfilled", "unpublished", "published")


def shifts_for_week(week_start: datetime.date, *, locations=None, shift_type: str = "all"):
    """
    Shifts from week_start through the following six days.

    shift_type:
        all          every shift
        open         open shifts (claimable)
        unfilled     fewer approved assignees than required
        unpublished  not yet visible to staff
        published    visible to staff
    """
    if shift_type not in SHIFT_TYPE_FILTERS:
        raise ShiftValidationError(f"Unknown shift type filter '{shift_type}'.", field="type")

    shifts = Shift.objects.filter(
        shift_date__range=(week_start, week_start + datetime.timedelta(days=6))
    ).select_related("location")
    if locations is not None:
        shifts = shifts.filter(location__in=locations)

    if shift_type == "open":
        shifts = shifts.filter(is_open_shift=True)
    elif shift_type == "unfilled":
        shifts = shifts.annotate(
            approved=Count("assignments", filter=Q(assignments__approval_status=ShiftAssignment.Status.APPROVED))
        ).filter(approved__lt=F("required_count"))
    elif shift_type == "unpublished":
        shifts = shifts.filter(is_published=False)
    elif shift_type == "published":
        shifts = shifts.filter(is_published=True)

    return shifts.order_by("shift_date", "start_time")


def shift_display_status(shift: Shift, now: Optional[datetime.datetime] = None) -> str:
    """
    Classify a shift for display.

    Returns one of:
        unpublished  not yet published
        pending      has a claim awaiting approval
        missing      ended, has approved assignees, nobody clocked in
        completed    ended otherwise
        scheduled    still upcoming or in progress
    """
    from apps.workforce.models import AttendanceLog

    now = now or timezone.now()
    if not shift.is_published:
        return "unpublished"
    if shift.assignments.filter(approval_status=ShiftAssignment.Status.PENDING).exists():
        return "pending"
    if shift.end_datetime() <= now:
        has_assignees = shift.assignments.filter(approval_status=ShiftAssignment.Status.APPROVED).exists()
        if has_assignees and not AttendanceLog.objects.filter(shift=shift).exists():
            return "missing"
        return "completed"
    return "scheduled"


def visible_assignments(shift: Shift):
    """Non-rejected assignments, hiding employees on approved time off that day."""
    from apps.accounts.models import TimeOffRequest

    on_leave = TimeOffRequest.objects.filter(
        status=TimeOffRequest.Status.APPROVED,
        start_date__lte=shift.shift_date,
        end_date__gte=shift.shift_date,
    ).values_list("employee_id", flat=True)
    return (
        shift.assignments.exclude(approval_status=ShiftAssignment.Status.REJECTED)
        .exclude(employee_id__in=on_leave)
        .select_related("employee")
    )


def serialize_assignment(assignment: ShiftAssignment) -> dict:
    return {
        "id": assignment.pk,
        "shift_id": assignment.shift_id,
        "employee_id": assignment.employee_id,
        "employee": assignment.employee.get_full_name(),
        "approval_status": assignment.approval_status,
        "approved_at": assignment.approved_at.isoformat() if assignment.approved_at else None,
    }


def serialize_shift(shift: Shift, now: Optional[datetime.datetime] = None) -> dict:
    data = shift.snapshot()
    data.update({
        "id": shift.pk,
        "location": shift.location.name,
        "is_published": shift.is_published,
        "revision": shift.revision,
        "status": shift_display_status(shift, now),
        "assignments": [serialize_assignment(a) for a in visible_assignments(shift)],
    })
    return data


def serialize_period(period) -> dict:
    return {
        "id": period.pk,
        "location_id": period.location_id,
        "location": period.location.name,
        "week_start_date": period.week_start_date.isoformat(),
        "state": period.state,
        "revision": period.revision,
        "published_at": period.published_at.isoformat() if period.published_at else None,
        "locked_at": period.locked_at.isoformat() if period.locked_at else None,
        "auto_lock_at": period.auto_lock_at.isoformat() if period.auto_lock_at else None,
    }


def serialize_change_request(request) -> dict:
    return {
        "id": request.pk,
        "location_id": request.location_id,
        "period_id": request.period_id,
        "change_type": request.change_type,
        "target_shift_id": request.target_shift_id,
        "payload_before": request.payload_before,
        "payload_after": request.payload_after,
        "reason_code": request.reason_code,
        "note": request.note,
        "status": request.status,
        "requested_by": request.requested_by.get_full_name() if request.requested_by else None,
        "requested_at": request.requested_at.isoformat(),
        "applied_shift_id": request.applied_shift_id,
    }
