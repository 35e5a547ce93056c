"""
Workforce models for ShiftGuard.

Attendance and the exceptions raised from it:
  - WorkforcePolicy: per-company (or per-location) attendance rules
  - AttendanceLog: one clock-in/clock-out pair
  - WorkforceException: a late start, early leave, no show... awaiting review
"""

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class WorkforcePolicy(models.Model):
    """
    Attendance rules for a company, optionally overridden per location.

    A row with location=None is the company default. Missing values fall
    back to the SHIFTGUARD settings (see apps.workforce.services.effective_policy).
    """

    class UnscheduledClockIn(models.TextChoices):
        ALLOW = "allow", _("Allow")
        EXCEPTION_TICKET = "exception_ticket", _("Allow and raise an exception")
        BLOCK = "block", _("Block")

    company = models.ForeignKey("locations.Company", on_delete=models.CASCADE, related_name="workforce_policies")
    location = models.ForeignKey(
        "locations.Location",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="workforce_policies",
        help_text="Leave empty for the company-wide default.",
    )
    unscheduled_clock_in_policy = models.CharField(
        max_length=20, choices=UnscheduledClockIn.choices, default=UnscheduledClockIn.EXCEPTION_TICKET
    )
    grace_minutes = models.PositiveSmallIntegerField(
        default=60, help_text="Minutes after shift start before a missing clock-in is a no show."
    )
    late_threshold_minutes = models.PositiveSmallIntegerField(default=15)
    early_leave_threshold_minutes = models.PositiveSmallIntegerField(default=15)
    require_reason_on_locked_edits = models.BooleanField(
        default=True, help_text="Change requests with reason 'other' must include a note."
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Workforce Policy"
        verbose_name_plural = "Workforce Policies"
        constraints = [
            models.UniqueConstraint(
                fields=["company", "location"],
                name="unique_policy_per_company_location",
            ),
            models.UniqueConstraint(
                fields=["company"],
                condition=models.Q(location__isnull=True),
                name="unique_company_default_policy",
            ),
        ]

    def __str__(self) -> str:
        scope = self.location.name if self.location_id else "company default"
        return f"{self.company.name} policy ({scope})"


class AttendanceLog(models.Model):
    """
    An employee clocking in (and eventually out) at a location.

    shift is set when the clock-in matched a scheduled shift; a log without a
    shift is an unscheduled clock-in.
    """

    employee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="attendance_logs",
    )
    location = models.ForeignKey("locations.Location", on_delete=models.CASCADE, related_name="attendance_logs")
    shift = models.ForeignKey(
        "scheduling.Shift",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="attendance_logs",
    )
    check_in_at = models.DateTimeField()
    check_out_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Attendance Log"
        verbose_name_plural = "Attendance Logs"
        ordering = ["-check_in_at"]
        indexes = [
            models.Index(fields=["employee", "check_in_at"]),
            models.Index(fields=["shift"]),
        ]

    def __str__(self) -> str:
        return f"{self.employee.get_short_name()} @ {self.location.name} {self.check_in_at:%Y-%m-%d %H:%M}"

    @property
    def worked_hours(self) -> float:
        if self.check_out_at is None:
            return 0.0
        return (self.check_out_at - self.check_in_at).total_seconds() / 3600


class WorkforceException(models.Model):
    """
    An attendance irregularity that a manager needs to look at.

    Status machine:
      PENDING → APPROVED | DENIED | RESOLVED (manager)
      PENDING → AUTO_RESOLVED (system, e.g. a late clock-in clears a no show)

    metadata carries the numbers behind the exception, e.g. {"minutes_late": 12}.
    At most one exception exists per (employee, shift, type).
    """

    class Type(models.TextChoices):
        LATE_START = "late_start", _("Late start")
        EARLY_LEAVE = "early_leave", _("Early leave")
        UNSCHEDULED_SHIFT = "unscheduled_shift", _("Unscheduled shift")
        NO_SHOW = "no_show", _("No show")
        SHIFT_EXTENDED = "shift_extended", _("Shift extended")
        OVERTIME = "overtime", _("Overtime")

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        APPROVED = "approved", _("Approved")
        DENIED = "denied", _("Denied")
        RESOLVED = "resolved", _("Resolved")
        AUTO_RESOLVED = "auto_resolved", _("Auto resolved")

    company = models.ForeignKey("locations.Company", on_delete=models.CASCADE, related_name="workforce_exceptions")
    location = models.ForeignKey("locations.Location", on_delete=models.CASCADE, related_name="workforce_exceptions")
    employee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="workforce_exceptions",
    )
    shift = models.ForeignKey(
        "scheduling.Shift",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="workforce_exceptions",
    )
    attendance_log = models.ForeignKey(
        AttendanceLog,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="exceptions",
    )
    exception_type = models.CharField(max_length=20, choices=Type.choices)
    status = models.CharField(max_length=15, choices=Status.choices, default=Status.PENDING)
    shift_date = models.DateField()

    detected_at = models.DateTimeField(default=timezone.now)
    resolved_at = models.DateTimeField(null=True, blank=True)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="workforce_exceptions_resolved",
    )
    note = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        verbose_name = "Workforce Exception"
        verbose_name_plural = "Workforce Exceptions"
        ordering = ["-detected_at"]
        indexes = [
            models.Index(fields=["status", "location"]),
            models.Index(fields=["employee", "shift", "exception_type"]),
        ]

    def __str__(self) -> str:
        return f"{self.get_exception_type_display()} | {self.employee.get_short_name()} | {self.shift_date}"

    @property
    def is_pending(self) -> bool:
        return self.status == self.Status.PENDING
