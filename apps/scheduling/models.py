"""
Scheduling models for ShiftGuard.

The core of the platform. Defines:
  - Shift: a wall-clock time block at a location for a role and headcount
  - ShiftAssignment: links an employee to a shift, with an approval status
  - SchedulePeriod: one location-week moving through draft → published → locked
  - ChangeRequest: an auditable proposal to change a locked week

Shift times are location wall-clock values (date + start/end time). An end
time at or before the start time means the shift runs past midnight.
"""

import datetime
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Shift(models.Model):
    """
    A scheduled work block at a location.

    A shift specifies WHAT role is needed, WHEN, WHERE, and HOW MANY staff.
    Individual employees are attached via ShiftAssignment.

    Publishing workflow:
      1. Manager creates shifts (unpublished, invisible to staff)
      2. Manager publishes the day or the week
      3. With schedule governance on, the week can be locked; edits to a
         locked week become change requests

    revision is bumped on every update so callers holding a stale copy can be
    told about it (optimistic concurrency).
    """

    location = models.ForeignKey(
        "locations.Location",
        on_delete=models.PROTECT,
        related_name="shifts",
    )
    shift_date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField(help_text="At or before start_time means the shift ends the next day.")
    role = models.CharField(max_length=100, help_text="Working role, e.g. 'Server'.")
    required_count = models.PositiveSmallIntegerField(
        default=1,
        help_text="Number of staff required for this shift.",
    )

    is_open_shift = models.BooleanField(
        default=False,
        help_text="Open shifts may be claimed by staff (claims await approval).",
    )
    is_published = models.BooleanField(
        default=False,
        help_text="Published shifts are visible to assigned staff.",
    )
    close_duty = models.BooleanField(default=False, help_text="Shift includes closing the location.")

    notes = models.TextField(blank=True)
    # Ordered list of {"start": "HH:MM", "end": "HH:MM"}
    breaks = models.JSONField(default=list, blank=True)
    break_duration_minutes = models.PositiveSmallIntegerField(null=True, blank=True)

    revision = models.PositiveIntegerField(default=1)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="created_shifts",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Shift"
        verbose_name_plural = "Shifts"
        ordering = ["shift_date", "start_time"]
        indexes = [
            models.Index(fields=["location", "shift_date"]),
            models.Index(fields=["shift_date", "is_published"]),
        ]

    def __str__(self) -> str:
        """Return a human-readable shift description."""
        return (
            f"{self.location.name} | {self.role} | "
            f"{self.shift_date} {self.start_time:%H:%M}–{self.end_time:%H:%M}"
        )

    @property
    def is_overnight(self) -> bool:
        """Return True if the shift ends on the following day."""
        return self.end_time <= self.start_time

    @property
    def duration_hours(self) -> Decimal:
        """Length of the shift in decimal hours, wrapping past midnight."""
        start = datetime.datetime.combine(self.shift_date, self.start_time)
        end = datetime.datetime.combine(self.shift_date, self.end_time)
        hours = Decimal((end - start).total_seconds()) / Decimal(3600)
        if hours < 0:
            hours += 24
        return hours

    def start_datetime(self) -> datetime.datetime:
        """Aware start of the shift in the location's timezone."""
        return self.location.localize(self.shift_date, self.start_time)

    def end_datetime(self) -> datetime.datetime:
        """Aware end of the shift; rolls to the next day for overnight shifts."""
        end_day = self.shift_date + datetime.timedelta(days=1) if self.is_overnight else self.shift_date
        return self.location.localize(end_day, self.end_time)

    @property
    def approved_count(self) -> int:
        """Effective headcount: the number of approved assignments."""
        return self.assignments.filter(approval_status=ShiftAssignment.Status.APPROVED).count()

    @property
    def is_fully_staffed(self) -> bool:
        return self.approved_count >= self.required_count

    def snapshot(self) -> dict:
        """
        Serialise the editable fields into a JSON-safe dict.

        Used for change request payloads and audit log before/after values.
        """
        return {
            "location_id": self.location_id,
            "shift_date": self.shift_date.isoformat(),
            "start_time": self.start_time.strftime("%H:%M:%S"),
            "end_time": self.end_time.strftime("%H:%M:%S"),
            "role": self.role,
            "required_count": self.required_count,
            "is_open_shift": self.is_open_shift,
            "close_duty": self.close_duty,
            "notes": self.notes,
            "breaks": list(self.breaks or []),
            "break_duration_minutes": self.break_duration_minutes,
        }


class ShiftAssignment(models.Model):
    """
    Links an employee to a shift.

    Status machine:
      PENDING → APPROVED (manager approves a claim)
      PENDING → REJECTED (manager rejects a claim; the row is kept)

    Direct assignment by a manager starts out APPROVED. Only APPROVED rows
    count toward headcount and labor cost.
    """

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        APPROVED = "approved", _("Approved")
        REJECTED = "rejected", _("Rejected")

    shift = models.ForeignKey(Shift, on_delete=models.CASCADE, related_name="assignments")
    employee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="shift_assignments",
    )
    approval_status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="assignments_made",
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assignments_approved",
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    assigned_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Shift Assignment"
        verbose_name_plural = "Shift Assignments"
        constraints = [
            models.UniqueConstraint(
                fields=["shift", "employee"],
                name="unique_assignment_per_shift",
            )
        ]
        indexes = [
            models.Index(fields=["employee", "shift"]),
            models.Index(fields=["approval_status"]),
        ]

    def __str__(self) -> str:
        """Return a readable description of this assignment."""
        return f"{self.employee.get_full_name()} → {self.shift} [{self.get_approval_status_display()}]"


class SchedulePeriod(models.Model):
    """
    One week of one location's schedule under governance.

    State machine:
      DRAFT → PUBLISHED → LOCKED
      DRAFT → LOCKED (publish-and-lock, one step)
      LOCKED → PUBLISHED (unlock; owner/admin only)

    There is no way back to DRAFT. Rows exist only for companies with
    enable_schedule_governance set.
    """

    class State(models.TextChoices):
        DRAFT = "draft", _("Draft")
        PUBLISHED = "published", _("Published")
        LOCKED = "locked", _("Locked")

    company = models.ForeignKey("locations.Company", on_delete=models.CASCADE, related_name="schedule_periods")
    location = models.ForeignKey("locations.Location", on_delete=models.CASCADE, related_name="schedule_periods")
    week_start_date = models.DateField(help_text="Monday of the ISO week.")
    state = models.CharField(max_length=10, choices=State.choices, default=State.DRAFT)

    published_at = models.DateTimeField(null=True, blank=True)
    published_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="periods_published",
    )
    locked_at = models.DateTimeField(null=True, blank=True)
    locked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="periods_locked",
    )
    publish_deadline = models.DateTimeField(null=True, blank=True)
    auto_lock_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="A published period is locked automatically once this passes.",
    )

    revision = models.PositiveIntegerField(default=1)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Schedule Period"
        verbose_name_plural = "Schedule Periods"
        ordering = ["-week_start_date", "location"]
        constraints = [
            models.UniqueConstraint(
                fields=["location", "week_start_date"],
                name="unique_period_per_location_week",
            )
        ]
        indexes = [
            models.Index(fields=["state", "auto_lock_at"]),
        ]

    def __str__(self) -> str:
        return f"{self.location.name} | week of {self.week_start_date} [{self.get_state_display()}]"

    @property
    def week_end_date(self) -> datetime.date:
        return self.week_start_date + datetime.timedelta(days=6)

    @property
    def is_locked(self) -> bool:
        return self.state == self.State.LOCKED

    def contains(self, day: datetime.date) -> bool:
        return self.week_start_date <= day <= self.week_end_date


class ChangeRequest(models.Model):
    """
    A proposed edit to a locked schedule week.

    Status machine:
      PENDING → APPROVED (payload_after applied to the schedule)
      PENDING → DENIED (nothing applied)

    Both outcomes are terminal. payload_before/payload_after are shift
    snapshots (see Shift.snapshot); payload_after is empty for deletions.
    """

    class ChangeType(models.TextChoices):
        ADD = "add", _("Add shift")
        EDIT = "edit", _("Edit shift")
        DELETE = "delete", _("Delete shift")

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        APPROVED = "approved", _("Approved")
        DENIED = "denied", _("Denied")

    class ReasonCode(models.TextChoices):
        STAFFING_SHORTAGE = "staffing_shortage", _("Staffing shortage")
        EMPLOYEE_REQUEST = "employee_request", _("Employee request")
        SICK_LEAVE = "sick_leave", _("Sick leave")
        EMERGENCY = "emergency", _("Emergency")
        OPERATIONAL_ISSUE = "operational_issue", _("Operational issue")
        SCHEDULE_ERROR = "schedule_error", _("Schedule error")
        OTHER = "other", _("Other")

    company = models.ForeignKey("locations.Company", on_delete=models.CASCADE, related_name="change_requests")
    location = models.ForeignKey("locations.Location", on_delete=models.CASCADE, related_name="change_requests")
    period = models.ForeignKey(SchedulePeriod, on_delete=models.CASCADE, related_name="change_requests")

    change_type = models.CharField(max_length=10, choices=ChangeType.choices)
    target_shift = models.ForeignKey(
        Shift,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="change_requests",
    )
    payload_before = models.JSONField(null=True, blank=True)
    payload_after = models.JSONField(null=True, blank=True)

    reason_code = models.CharField(max_length=20, choices=ReasonCode.choices)
    note = models.TextField(blank=True)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)

    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="change_requests_made",
    )
    requested_at = models.DateTimeField(default=timezone.now)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="change_requests_reviewed",
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    applied_shift = models.ForeignKey(
        Shift,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="applied_change_requests",
    )

    class Meta:
        verbose_name = "Change Request"
        verbose_name_plural = "Change Requests"
        ordering = ["-requested_at"]
        indexes = [
            models.Index(fields=["status"]),
            models.Index(fields=["period", "status"]),
        ]

    def __str__(self) -> str:
        return f"{self.get_change_type_display()} | {self.location.name} | {self.get_status_display()}"

    @property
    def is_pending(self) -> bool:
        return self.status == self.Status.PENDING
