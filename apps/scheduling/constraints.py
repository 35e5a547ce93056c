"""
Scheduling constraint checks for ShiftGuard.

Pure(ish) rule functions used by the service layer before anything is written:

  validate_operating_hours  → is the shift inside the location's opening hours?
  validate_breaks           → are the break intervals well formed and inside the shift?
  find_conflicts            → what else is this employee working that day?
  find_time_off             → is this employee on approved time off that day?
  eligible_employees        → who could be assigned to this shift?

Operating hours are a hard rule (ShiftValidationError). Conflicts and time
off are advisory only: they are reported to the manager as warnings and never
block an assignment.

Times are compared as seconds since midnight after normalising to HH:MM:SS.
A close time of 00:00 means midnight (24:00). A shift or schedule whose end is
at or before its start wraps past midnight.
"""

import datetime
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from apps.scheduling.exceptions import ShiftValidationError

if TYPE_CHECKING:
    from apps.accounts.models import User
    from apps.locations.models import Location, LocationOperatingSchedule
    from apps.scheduling.models import Shift, ShiftAssignment

logger = logging.getLogger(__name__)

MIDNIGHT = datetime.time(0, 0)
DAY_SECONDS = 24 * 3600


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------


def parse_time(value, field_name: str = "time") -> datetime.time:
    """
    Normalise a time value to a datetime.time (seconds precision).

    Accepts datetime.time, "HH:MM" and "HH:MM:SS".

    Raises:
        ShiftValidationError: If the value is missing or malformed.
    """
    if isinstance(value, datetime.time):
        return value.replace(microsecond=0, tzinfo=None)
    if not value or not isinstance(value, str):
        raise ShiftValidationError(f"{field_name} is required.", field=field_name)
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.datetime.strptime(value.strip(), fmt).time()
        except ValueError:
            continue
    raise ShiftValidationError(f"'{value}' is not a valid time (HH:MM).", field=field_name)


def normalize_time(value, field_name: str = "time") -> str:
    """Return the value as an HH:MM:SS string."""
    return parse_time(value, field_name).strftime("%H:%M:%S")


def _seconds(value: datetime.time) -> int:
    return value.hour * 3600 + value.minute * 60 + value.second


def _span(start: datetime.time, end: datetime.time) -> tuple[int, int]:
    """Return (start, end) in seconds, pushing an end at or before start into the next day."""
    s, e = _seconds(start), _seconds(end)
    if e <= s:
        e += DAY_SECONDS
    return s, e


def intervals_overlap(s1: int, e1: int, s2: int, e2: int) -> bool:
    """Closed-open interval overlap: [s1, e1) and [s2, e2) share at least one instant."""
    return s1 < e2 and s2 < e1


# ---------------------------------------------------------------------------
# Operating hours
# ---------------------------------------------------------------------------


@dataclass
class HoursCheck:
    """
    Result of checking a shift against a location's operating hours.

    Attributes:
        ok: True if the shift fits inside the opening hours.
        reason: Human-readable explanation when ok is False.
    """

    ok: bool
    reason: str = ""

    @classmethod
    def success(cls) -> "HoursCheck":
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: str) -> "HoursCheck":
        return cls(ok=False, reason=reason)


def schedule_for(location: "Location", shift_date: datetime.date) -> Optional["LocationOperatingSchedule"]:
    """Return the operating schedule row for the shift date's weekday, or None (open 24h)."""
    from apps.locations.models import LocationOperatingSchedule

    return LocationOperatingSchedule.objects.filter(
        location=location, weekday=shift_date.weekday()
    ).first()


def validate_operating_hours(
    schedule: Optional["LocationOperatingSchedule"],
    shift_date: datetime.date,
    start,
    end,
) -> HoursCheck:
    """
    Check a proposed shift window against one weekday's operating hours.

    Rules:
      - No schedule row → open 24 hours, always ok.
      - is_closed → never ok.
      - Same-day hours: ok iff start >= open and end <= close (close 00:00 = 24:00),
        comparing wall-clock values as given. A 24-hour location (00:00–00:00)
        therefore accepts night shifts such as 22:00–06:00.
      - Overnight hours (close < open, close != 00:00): ok iff start >= open
        or end <= close. This accepts some shifts that straddle the closed
        gap (e.g. 10:00–01:00 at an 18:00–02:00 location).

    Args:
        schedule: LocationOperatingSchedule for the weekday, or None.
        shift_date: The shift's date (used in messages only).
        start: Shift start (time or "HH:MM[:SS]").
        end: Shift end (time or "HH:MM[:SS]").

    Returns:
        HoursCheck.
    """
    start_t = parse_time(start, "start_time")
    end_t = parse_time(end, "end_time")

    if schedule is None:
        return HoursCheck.success()

    if schedule.is_closed:
        return HoursCheck.failure(f"Location is closed on {shift_date:%A}s.")

    if schedule.open_time is None or schedule.close_time is None:
        return HoursCheck.success()

    open_t = parse_time(schedule.open_time)
    close_t = parse_time(schedule.close_time)
    hours_label = f"{open_t:%H:%M}–{close_t:%H:%M}"

    overnight = close_t < open_t and close_t != MIDNIGHT
    if overnight:
        if start_t >= open_t or end_t <= close_t:
            return HoursCheck.success()
        return HoursCheck.failure(
            f"Shift {start_t:%H:%M}–{end_t:%H:%M} is outside operating hours ({hours_label})."
        )

    effective_close = DAY_SECONDS if close_t == MIDNIGHT else _seconds(close_t)
    if _seconds(start_t) >= _seconds(open_t) and _seconds(end_t) <= effective_close:
        return HoursCheck.success()

    return HoursCheck.failure(
        f"Shift {start_t:%H:%M}–{end_t:%H:%M} is outside operating hours ({hours_label})."
    )


# ---------------------------------------------------------------------------
# Breaks
# ---------------------------------------------------------------------------


def validate_breaks(breaks, start, end) -> list[dict]:
    """
    Validate and normalise a shift's ordered break list.

    Each break is {"start": "HH:MM", "end": "HH:MM"}, must have a non-zero
    length, fall inside the shift window and not overlap the previous break.

    Returns:
        The breaks with times normalised to HH:MM.

    Raises:
        ShiftValidationError: On the first malformed break.
    """
    if not breaks:
        return []
    if not isinstance(breaks, list):
        raise ShiftValidationError("Breaks must be a list.", field="breaks")

    shift_start, shift_end = _span(parse_time(start, "start_time"), parse_time(end, "end_time"))
    normalised = []
    previous_end = None

    for index, item in enumerate(breaks):
        if not isinstance(item, dict) or set(item) != {"start", "end"}:
            raise ShiftValidationError(f"Break {index + 1} must have exactly 'start' and 'end'.", field="breaks")
        b_start = parse_time(item["start"], "breaks")
        b_end = parse_time(item["end"], "breaks")
        if b_start == b_end:
            raise ShiftValidationError(f"Break {index + 1} has no length.", field="breaks")

        s, e = _span(b_start, b_end)
        # Breaks after midnight on an overnight shift live on the next day
        if s < shift_start:
            s, e = s + DAY_SECONDS, e + DAY_SECONDS
        if s < shift_start or e > shift_end:
            raise ShiftValidationError(f"Break {index + 1} is outside the shift.", field="breaks")
        if previous_end is not None and s < previous_end:
            raise ShiftValidationError(f"Break {index + 1} overlaps the previous break.", field="breaks")

        previous_end = e
        normalised.append({"start": b_start.strftime("%H:%M"), "end": b_end.strftime("%H:%M")})

    return normalised


# ---------------------------------------------------------------------------
# Conflicts & time off (advisory)
# ---------------------------------------------------------------------------


@dataclass
class ShiftConflict:
    """
    Another shift the employee holds on the same date.

    has_overlap is only ever True when proposed times were supplied and the
    two time windows intersect.
    """

    shift: "Shift"
    assignment: "ShiftAssignment"
    has_overlap: bool = False

    def as_dict(self) -> dict:
        return {
            "shift_id": self.shift.pk,
            "location": self.shift.location.name,
            "start_time": self.shift.start_time.strftime("%H:%M"),
            "end_time": self.shift.end_time.strftime("%H:%M"),
            "approval_status": self.assignment.approval_status,
            "has_overlap": self.has_overlap,
        }


def find_conflicts(
    employee: "User",
    shift_date: datetime.date,
    proposed_start=None,
    proposed_end=None,
    exclude_shift: Optional["Shift"] = None,
) -> list[ShiftConflict]:
    """
    Return the employee's other (approved or pending) shifts on a date.

    Every entry means "already has a shift that day". With proposed times
    each entry also reports whether the windows overlap. Rejected assignments
    and the shift being edited are ignored. Never raises for a conflict.
    """
    from apps.scheduling.models import ShiftAssignment

    assignments = (
        ShiftAssignment.objects.filter(
            employee=employee,
            shift__shift_date=shift_date,
            approval_status__in=[ShiftAssignment.Status.APPROVED, ShiftAssignment.Status.PENDING],
        )
        .select_related("shift__location")
        .order_by("shift__start_time")
    )
    if exclude_shift is not None and exclude_shift.pk:
        assignments = assignments.exclude(shift=exclude_shift)

    proposed = None
    if proposed_start is not None and proposed_end is not None:
        proposed = _span(parse_time(proposed_start, "start_time"), parse_time(proposed_end, "end_time"))

    conflicts = []
    for assignment in assignments:
        has_overlap = False
        if proposed is not None:
            existing = _span(assignment.shift.start_time, assignment.shift.end_time)
            has_overlap = intervals_overlap(proposed[0], proposed[1], existing[0], existing[1])
        conflicts.append(ShiftConflict(shift=assignment.shift, assignment=assignment, has_overlap=has_overlap))

    if conflicts:
        logger.debug(
            "Employee %d has %d other shift(s) on %s.", employee.pk, len(conflicts), shift_date
        )
    return conflicts


def find_time_off(employee: "User", shift_date: datetime.date):
    """Return the employee's approved time off requests covering the date."""
    from apps.accounts.models import TimeOffRequest

    return TimeOffRequest.objects.filter(
        employee=employee,
        status=TimeOffRequest.Status.APPROVED,
        start_date__lte=shift_date,
        end_date__gte=shift_date,
    )


# ---------------------------------------------------------------------------
# Eligible employees
# ---------------------------------------------------------------------------


@dataclass
class EligibleEmployee:
    """A candidate for a shift, annotated with the advisory checks."""

    user_id: int
    full_name: str
    job_role: str
    conflicts: list[ShiftConflict] = field(default_factory=list)
    on_time_off: bool = False

    def as_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "full_name": self.full_name,
            "job_role": self.job_role,
            "has_conflict": bool(self.conflicts),
            "has_overlap": any(c.has_overlap for c in self.conflicts),
            "on_time_off": self.on_time_off,
        }


def eligible_employees(shift: "Shift", include_all_locations: bool = False) -> list[EligibleEmployee]:
    """
    List active employees who could be assigned to a shift.

    Candidates match the shift's role (case-insensitive) and, unless
    include_all_locations is set, have the shift's location as their home
    location. Employees already holding a non-rejected assignment on the
    shift are left out. Conflicts and time off are annotated, not filtered.
    """
    from apps.accounts.models import User
    from apps.scheduling.models import ShiftAssignment

    candidates = User.objects.filter(is_active=True, job_role__iexact=shift.role)
    if not include_all_locations:
        candidates = candidates.filter(home_location=shift.location)

    taken = ShiftAssignment.objects.filter(shift=shift).exclude(
        approval_status=ShiftAssignment.Status.REJECTED
    ).values_list("employee_id", flat=True)
    candidates = candidates.exclude(pk__in=taken)

    results = []
    for user in candidates:
        results.append(
            EligibleEmployee(
                user_id=user.pk,
                full_name=user.get_full_name(),
                job_role=user.job_role,
                conflicts=find_conflicts(
                    user, shift.shift_date, shift.start_time, shift.end_time, exclude_shift=shift
                ),
                on_time_off=find_time_off(user, shift.shift_date).exists(),
            )
        )
    return results
