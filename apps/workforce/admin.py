from django.contrib import admin
from .models import AttendanceLog, WorkforceException, WorkforcePolicy


@admin.register(WorkforcePolicy)
class WorkforcePolicyAdmin(admin.ModelAdmin):
    list_display = (
        "company", "location", "unscheduled_clock_in_policy", "grace_minutes",
        "late_threshold_minutes", "early_leave_threshold_minutes", "require_reason_on_locked_edits",
    )
    list_filter = ("company", "unscheduled_clock_in_policy")
    ordering = ("company", "location")


@admin.register(AttendanceLog)
class AttendanceLogAdmin(admin.ModelAdmin):
    list_display = ("employee", "location", "shift", "check_in_at", "check_out_at")
    list_filter = ("location",)
    search_fields = ("employee__email", "employee__first_name", "employee__last_name")
    ordering = ("-check_in_at",)


@admin.register(WorkforceException)
class WorkforceExceptionAdmin(admin.ModelAdmin):
    list_display = ("exception_type", "employee", "location", "shift_date", "status", "detected_at", "resolved_by")
    list_filter = ("status", "exception_type", "location")
    search_fields = ("employee__email", "employee__first_name", "employee__last_name", "note")
    ordering = ("-detected_at",)
