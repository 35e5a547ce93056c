"""
Shift & assignment store for ShiftGuard.

Every write to Shift and ShiftAssignment goes through these services so the
same rules apply whether a manager edits the schedule directly or an approved
change request is being applied:

  - required fields present and well formed
  - start and end differ, breaks sit inside the shift
  - the shift fits the location's operating hours
  - revision bumped on every update (optimistic concurrency)

Hard rule violations raise ShiftValidationError before anything is written.
Conflicts (double booking, time off, full headcount) are advisory and are
returned as warnings.

Batch operations (bulk publish, weekday fan-out, copy schedule) process each
item in its own savepoint; one failing item never rolls back the others.
"""

import datetime
import logging
from dataclasses import dataclass, field
from typing import Optional

from django.db import DatabaseError, transaction
from django.utils import timezone
from django.utils.dateparse import parse_date

from apps.scheduling.constraints import (
    find_conflicts,
    find_time_off,
    parse_time,
    schedule_for,
    validate_breaks,
    validate_operating_hours,
)
from apps.scheduling.exceptions import (
    InvalidStateError,
    RevisionConflict,
    SchedulingError,
    ShiftValidationError,
)
from apps.scheduling.models import Shift, ShiftAssignment
from apps.scheduling.signals import schedule_changed

logger = logging.getLogger(__name__)


SHIFT_FIELDS = (
    "shift_date",
    "start_time",
    "end_time",
    "role",
    "required_count",
    "is_open_shift",
    "close_duty",
    "notes",
    "breaks",
    "break_duration_minutes",
)
REQUIRED_SHIFT_FIELDS = ("shift_date", "start_time", "end_time", "role")

_TRUE_VALUES = {"1", "true", "on", "yes"}
_FALSE_VALUES = {"0", "false", "off", "no", ""}


# ---------------------------------------------------------------------------
# Field cleaning
# ---------------------------------------------------------------------------


def clean_date(value) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        parsed = parse_date(value) if isinstance(value, str) else None
    except ValueError:
        # well formed but impossible, e.g. 2030-02-30
        parsed = None
    if parsed is None:
        raise ShiftValidationError(f"'{value}' is not a valid date (YYYY-MM-DD).", field="shift_date")
    return parsed


def _clean_bool(value, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _TRUE_VALUES | _FALSE_VALUES:
        return value.strip().lower() in _TRUE_VALUES
    raise ShiftValidationError(f"{name} must be true or false.", field=name)


def _clean_int(value, name: str, minimum: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ShiftValidationError(f"{name} must be a whole number.", field=name)
    if isinstance(value, float) and value != number:
        raise ShiftValidationError(f"{name} must be a whole number.", field=name)
    if number < minimum:
        raise ShiftValidationError(f"{name} must be at least {minimum}.", field=name)
    return number


def clean_shift_data(data: dict, partial: bool = False) -> dict:
    """
    Convert raw shift input into model-ready values.

    Args:
        data: Mapping of shift fields (form strings, JSON values or Python types).
        partial: When True, required fields may be absent (used for edits).

    Returns:
        Dict containing only the supplied SHIFT_FIELDS, typed for the model.

    Raises:
        ShiftValidationError: On unknown, missing or malformed fields.
    """
    unknown = set(data) - set(SHIFT_FIELDS)
    if unknown:
        name = sorted(unknown)[0]
        raise ShiftValidationError(f"Unknown shift field '{name}'.", field=name)

    if not partial:
        for name in REQUIRED_SHIFT_FIELDS:
            if data.get(name) in (None, ""):
                raise ShiftValidationError(f"{name} is required.", field=name)

    cleaned = {}
    for name, value in data.items():
        if name == "shift_date":
            cleaned[name] = clean_date(value)
        elif name in ("start_time", "end_time"):
            cleaned[name] = parse_time(value, name)
        elif name == "role":
            role = (value or "").strip() if isinstance(value, str) else ""
            if not role:
                raise ShiftValidationError("role is required.", field="role")
            cleaned[name] = role
        elif name == "required_count":
            cleaned[name] = _clean_int(value, name, minimum=1)
        elif name in ("is_open_shift", "close_duty"):
            cleaned[name] = _clean_bool(value, name)
        elif name == "notes":
            cleaned[name] = (value or "").strip()
        elif name == "breaks":
            cleaned[name] = value or []
        elif name == "break_duration_minutes":
            cleaned[name] = None if value in (None, "") else _clean_int(value, name, minimum=0)
    return cleaned


def validate_shift_window(location, values: dict, enforce_hours: bool = True) -> dict:
    """
    Run the cross-field rules on a complete set of shift values.

    With enforce_hours=False the operating-hours rule is skipped; callers
    applying an already-approved change report it with hours_warning().

    Returns:
        values with breaks normalised.

    Raises:
        ShiftValidationError: start == end, bad breaks, or outside operating hours.
    """
    start, end = values["start_time"], values["end_time"]
    if start == end:
        raise ShiftValidationError("Shift start and end times must differ.", field="end_time")

    values["breaks"] = validate_breaks(values.get("breaks") or [], start, end)

    if enforce_hours:
        reason = hours_warning(location, values)
        if reason:
            raise ShiftValidationError(reason, field="start_time")
    return values


def hours_warning(location, values: dict) -> str:
    """Return the operating-hours violation for these shift values, or ''."""
    check = validate_operating_hours(
        schedule_for(location, values["shift_date"]), values["shift_date"], values["start_time"], values["end_time"]
    )
    return "" if check.ok else check.reason


def _bump(shift: Shift) -> None:
    shift.revision += 1


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass
class ItemResult:
    """Outcome of one item in a batch operation."""

    key: str
    shift: Optional[Shift] = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error

    def as_dict(self) -> dict:
        return {"key": self.key, "shift_id": self.shift.pk if self.shift else None, "error": self.error}


@dataclass
class BulkPublishResult:
    """Per-shift outcome of a bulk publish (lists of shift ids)."""

    published: list = field(default_factory=list)
    already_published: list = field(default_factory=list)
    skipped_past: list = field(default_factory=list)
    failed: list = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "published": self.published,
            "already_published": self.already_published,
            "skipped_past": self.skipped_past,
            "failed": self.failed,
        }


@dataclass
class CopyResult:
    """Outcome of copying a date range of shifts forward."""

    shifts_created: list = field(default_factory=list)
    assignments_created: int = 0
    failed: list = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "shifts_created": [s.pk for s in self.shifts_created],
            "assignments_created": self.assignments_created,
            "failed": [f.as_dict() for f in self.failed],
        }


@dataclass
class AssignmentResult:
    """A created assignment plus the advisory warnings raised while creating it."""

    assignment: ShiftAssignment
    warnings: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Shifts
# ---------------------------------------------------------------------------


class ShiftService:
    """
    Service object for creating, editing, publishing and copying shifts.

    These methods never consult schedule governance; ScheduleCommands does
    that before calling in.
    """

    @staticmethod
    @transaction.atomic
    def create_shift(location, data: dict, *, created_by, enforce_hours: bool = True) -> Shift:
        """
        Validate and create one shift.

        Raises:
            ShiftValidationError: Nothing is written.
        """
        values = validate_shift_window(location, clean_shift_data(data), enforce_hours)
        shift = Shift.objects.create(location=location, created_by=created_by, **values)
        logger.info("Shift %d created at %s for %s by user %s.", shift.pk, location.name, shift.shift_date, getattr(created_by, "pk", None))
        schedule_changed.send(
            sender=Shift, action="shift.created", instance=shift, actor=created_by, after=shift.snapshot()
        )
        return shift

    @staticmethod
    def create_shifts_for_weekdays(location, data: dict, dates, *, created_by) -> list[ItemResult]:
        """
        Create the same shift on several dates ("apply to multiple weekdays").

        Each date is validated on its own. Failures are reported per item and
        do not undo the dates that succeeded. Dates in a locked schedule week
        are reported as failures.
        """
        from apps.scheduling.governance import SchedulePeriodService

        results = []
        for raw in dates:
            try:
                day = clean_date(raw)
            except ShiftValidationError as exc:
                results.append(ItemResult(key=str(raw), error=exc.reason))
                continue
            if SchedulePeriodService.is_locked(location, day):
                results.append(ItemResult(key=day.isoformat(), error="Target week is locked."))
                continue
            try:
                with transaction.atomic():
                    shift = ShiftService.create_shift(location, {**data, "shift_date": day}, created_by=created_by)
                results.append(ItemResult(key=day.isoformat(), shift=shift))
            except ShiftValidationError as exc:
                results.append(ItemResult(key=day.isoformat(), error=exc.reason))
        return results

    @staticmethod
    @transaction.atomic
    def update_shift(
        shift: Shift,
        changes: dict,
        *,
        actor,
        expected_revision: Optional[int] = None,
        enforce_hours: bool = True,
    ) -> Shift:
        """
        Apply a partial edit to a shift after re-validating the merged values.

        Args:
            shift: The shift to edit.
            changes: Subset of SHIFT_FIELDS.
            actor: The user performing the edit.
            expected_revision: The revision the caller last saw, if any.

        Raises:
            RevisionConflict: expected_revision is stale.
            ShiftValidationError: Merged values break a rule; nothing is written.
        """
        shift = Shift.objects.select_for_update().select_related("location").get(pk=shift.pk)
        if expected_revision is not None and int(expected_revision) != shift.revision:
            raise RevisionConflict(shift, int(expected_revision))

        before = shift.snapshot()
        cleaned = clean_shift_data(changes, partial=True)
        merged = {name: getattr(shift, name) for name in SHIFT_FIELDS}
        merged.update(cleaned)
        merged = validate_shift_window(shift.location, merged, enforce_hours)

        for name, value in merged.items():
            setattr(shift, name, value)
        _bump(shift)
        shift.save()

        logger.info("Shift %d updated to revision %d by user %s.", shift.pk, shift.revision, getattr(actor, "pk", None))
        schedule_changed.send(
            sender=Shift, action="shift.updated", instance=shift, actor=actor, before=before, after=shift.snapshot()
        )
        return shift

    @staticmethod
    @transaction.atomic
    def delete_shift(shift: Shift, *, actor) -> dict:
        """
        Delete a shift and (by cascade) its assignments.

        Returns:
            The snapshot of the deleted shift.
        """
        before = shift.snapshot()
        shift_id = shift.pk
        assignment_count = shift.assignments.count()
        shift.delete()
        shift.pk = shift_id  # keep the id for the audit trail and broadcast

        logger.info(
            "Shift %d deleted by user %s (%d assignment(s) removed).",
            shift_id, getattr(actor, "pk", None), assignment_count,
        )
        schedule_changed.send(sender=Shift, action="shift.deleted", instance=shift, actor=actor, before=before)
        return before

    @staticmethod
    def bulk_publish(shift_ids, *, actor, exclude_past: bool = False, today: Optional[datetime.date] = None) -> BulkPublishResult:
        """
        Publish many shifts, one at a time.

        Publishing is idempotent: an already published shift is reported as
        such and left untouched. With exclude_past, shifts dated before today
        are skipped ("publish week"); "publish day" passes exclude_past=False.
        """
        today = today or timezone.localdate()
        result = BulkPublishResult()

        for shift_id in shift_ids:
            try:
                with transaction.atomic():
                    shift = Shift.objects.select_for_update().filter(pk=shift_id).first()
                    if shift is None:
                        result.failed.append(shift_id)
                        continue
                    if exclude_past and shift.shift_date < today:
                        result.skipped_past.append(shift.pk)
                        continue
                    if shift.is_published:
                        result.already_published.append(shift.pk)
                        continue
                    shift.is_published = True
                    _bump(shift)
                    shift.save(update_fields=["is_published", "revision", "updated_at"])
                    schedule_changed.send(
                        sender=Shift, action="shift.published", instance=shift, actor=actor,
                        after={"is_published": True},
                    )
                result.published.append(shift.pk)
            except DatabaseError as exc:
                logger.warning("Publishing shift %s failed: %s", shift_id, exc)
                result.failed.append(shift_id)

        logger.info(
            "Bulk publish by user %s: %d published, %d already, %d past, %d failed.",
            getattr(actor, "pk", None), len(result.published), len(result.already_published),
            len(result.skipped_past), len(result.failed),
        )
        return result

    @staticmethod
    def copy_schedule(
        location,
        source_start: datetime.date,
        source_end: datetime.date,
        copies: int,
        *,
        actor,
        include_assignments: bool = False,
        employee=None,
    ) -> CopyResult:
        """
        Repeat the shifts of a date range forward, back to back, `copies` times.

        Each copy is offset by the length of the source range. With
        include_assignments, approved assignments are copied as approved
        (optionally only those of one employee, which also limits the copied
        shifts to that employee's). Dates that fall in a locked schedule
        week are reported as failures.
        """
        from apps.scheduling.governance import SchedulePeriodService

        source_start, source_end = clean_date(source_start), clean_date(source_end)
        if source_end < source_start:
            raise ShiftValidationError("The source range ends before it starts.", field="source_end")
        copies = _clean_int(copies, "copies", minimum=1)
        period_days = (source_end - source_start).days + 1

        shifts = (
            Shift.objects.filter(location=location, shift_date__range=(source_start, source_end))
            .prefetch_related("assignments")
            .order_by("shift_date", "start_time")
        )
        if employee is not None and include_assignments:
            shifts = shifts.filter(
                assignments__employee=employee,
                assignments__approval_status=ShiftAssignment.Status.APPROVED,
            ).distinct()

        result = CopyResult()
        for copy_index in range(1, copies + 1):
            offset = datetime.timedelta(days=period_days * copy_index)
            for source in shifts:
                new_date = source.shift_date + offset
                key = f"{source.pk}@{new_date.isoformat()}"
                if SchedulePeriodService.is_locked(location, new_date):
                    result.failed.append(ItemResult(key=key, error="Target week is locked."))
                    continue
                try:
                    with transaction.atomic():
                        data = {name: getattr(source, name) for name in SHIFT_FIELDS}
                        data["shift_date"] = new_date
                        shift = ShiftService.create_shift(location, data, created_by=actor)
                        if source.is_published:
                            ShiftService.bulk_publish([shift.pk], actor=actor)
                            shift.refresh_from_db()
                        if include_assignments:
                            result.assignments_created += _copy_approved_assignments(source, shift, actor, employee)
                    result.shifts_created.append(shift)
                except SchedulingError as exc:
                    result.failed.append(ItemResult(key=key, error=str(exc)))

        logger.info(
            "Copied %d shift(s) (%d assignment(s)) from %s–%s at %s.",
            len(result.shifts_created), result.assignments_created, source_start, source_end, location.name,
        )
        return result

    @staticmethod
    def conflict_warnings(shift: Shift, values: Optional[dict] = None) -> list[str]:
        """
        Describe overlaps between this shift and its assignees' other shifts.

        Args:
            shift: The shift whose assignees are checked.
            values: Proposed shift_date/start_time/end_time to check instead
                of the stored ones (a pending edit).
        """
        values = values or {}
        shift_date = values.get("shift_date", shift.shift_date)
        start = values.get("start_time", shift.start_time)
        end = values.get("end_time", shift.end_time)
        warnings = []
        assignments = shift.assignments.exclude(approval_status=ShiftAssignment.Status.REJECTED).select_related("employee")
        for assignment in assignments:
            for conflict in find_conflicts(
                assignment.employee, shift_date, start, end, exclude_shift=shift
            ):
                if conflict.has_overlap:
                    warnings.append(
                        f"{assignment.employee.get_full_name()} also works "
                        f"{conflict.shift.start_time:%H:%M}–{conflict.shift.end_time:%H:%M} "
                        f"at {conflict.shift.location.name}."
                    )
        return warnings


def _copy_approved_assignments(source: Shift, target: Shift, actor, employee=None) -> int:
    now = timezone.now()
    created = 0
    for assignment in source.assignments.all():
        if assignment.approval_status != ShiftAssignment.Status.APPROVED:
            continue
        if employee is not None and assignment.employee_id != employee.pk:
            continue
        ShiftAssignment.objects.create(
            shift=target,
            employee_id=assignment.employee_id,
            assigned_by=actor,
            approval_status=ShiftAssignment.Status.APPROVED,
            approved_by=actor,
            approved_at=now,
        )
        created += 1
    return created


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------


class AssignmentService:
    """
    Service object for attaching employees to shifts.

    Responsibilities:
      - Decide the initial approval status (direct assignment vs. claim)
      - Surface conflicts, time off and full headcount as warnings
      - Drive the pending → approved/rejected state machine
    """

    @staticmethod
    @transaction.atomic
    def create_assignment(shift: Shift, employee, *, actor, direct: Optional[bool] = None) -> AssignmentResult:
        """
        Assign an employee to a shift.

        Args:
            shift: The shift to staff.
            employee: The employee being assigned.
            actor: The user performing the action.
            direct: Force direct (approved) or claim (pending) semantics. By
                    default managers, admins and owners assign directly and
                    everyone else files a pending claim.

        Raises:
            ShiftValidationError: The employee already has an assignment on this shift.
        """
        if direct is None:
            direct = actor.can_manage_schedules

        if ShiftAssignment.objects.filter(shift=shift, employee=employee).exists():
            raise ShiftValidationError(
                f"{employee.get_full_name()} is already assigned to this shift.", field="employee"
            )

        warnings = []
        for conflict in find_conflicts(employee, shift.shift_date, shift.start_time, shift.end_time, exclude_shift=shift):
            label = "overlapping shift" if conflict.has_overlap else "another shift"
            warnings.append(
                f"{employee.get_full_name()} has {label} that day "
                f"({conflict.shift.start_time:%H:%M}–{conflict.shift.end_time:%H:%M} at {conflict.shift.location.name})."
            )
        if find_time_off(employee, shift.shift_date).exists():
            warnings.append(f"{employee.get_full_name()} has approved time off on {shift.shift_date}.")
        if shift.approved_count >= shift.required_count:
            warnings.append(f"Shift already has {shift.approved_count} of {shift.required_count} staff.")

        now = timezone.now()
        assignment = ShiftAssignment.objects.create(
            shift=shift,
            employee=employee,
            assigned_by=actor,
            approval_status=ShiftAssignment.Status.APPROVED if direct else ShiftAssignment.Status.PENDING,
            approved_by=actor if direct else None,
            approved_at=now if direct else None,
        )
        logger.info(
            "Assignment %d: user %d on shift %d (%s) by user %d, %d warning(s).",
            assignment.pk, employee.pk, shift.pk, assignment.approval_status, actor.pk, len(warnings),
        )
        schedule_changed.send(
            sender=ShiftAssignment, action="shift_assignment.created", instance=assignment, actor=actor,
            after={"shift": shift.pk, "employee": employee.pk, "approval_status": assignment.approval_status},
        )
        return AssignmentResult(assignment=assignment, warnings=warnings)

    @staticmethod
    @transaction.atomic
    def approve_assignment(assignment: ShiftAssignment, *, actor) -> ShiftAssignment:
        """Approve a pending claim. Raises InvalidStateError from any other status."""
        return AssignmentService._resolve(assignment, ShiftAssignment.Status.APPROVED, actor)

    @staticmethod
    @transaction.atomic
    def reject_assignment(assignment: ShiftAssignment, *, actor) -> ShiftAssignment:
        """Reject a pending claim; the row is kept with status rejected."""
        return AssignmentService._resolve(assignment, ShiftAssignment.Status.REJECTED, actor)

    @staticmethod
    def _resolve(assignment: ShiftAssignment, status: str, actor) -> ShiftAssignment:
        assignment = ShiftAssignment.objects.select_for_update().get(pk=assignment.pk)
        if assignment.approval_status != ShiftAssignment.Status.PENDING:
            raise InvalidStateError(
                f"Assignment {assignment.pk} is already {assignment.approval_status}."
            )
        before = {"approval_status": assignment.approval_status}
        assignment.approval_status = status
        assignment.approved_by = actor
        assignment.approved_at = timezone.now()
        assignment.save(update_fields=["approval_status", "approved_by", "approved_at", "updated_at"])

        logger.info("Assignment %d %s by user %d.", assignment.pk, status, actor.pk)
        schedule_changed.send(
            sender=ShiftAssignment, action=f"shift_assignment.{status}", instance=assignment, actor=actor,
            before=before, after={"approval_status": status},
        )
        return assignment

    @staticmethod
    @transaction.atomic
    def remove_assignment(assignment: ShiftAssignment, *, actor) -> None:
        """Delete an assignment outright."""
        before = {
            "shift": assignment.shift_id,
            "employee": assignment.employee_id,
            "approval_status": assignment.approval_status,
        }
        assignment_id = assignment.pk
        assignment.delete()
        assignment.pk = assignment_id

        logger.info("Assignment %d removed by user %d.", assignment_id, actor.pk)
        schedule_changed.send(
            sender=ShiftAssignment, action="shift_assignment.deleted", instance=assignment, actor=actor, before=before,
        )
