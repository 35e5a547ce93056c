from django.contrib import admin
from .models import ChangeRequest, SchedulePeriod, Shift, ShiftAssignment


@admin.register(Shift)
class ShiftAdmin(admin.ModelAdmin):
    list_display = ("location", "role", "shift_date", "start_time", "end_time", "required_count", "is_published", "revision")
    list_filter = ("location", "is_published", "is_open_shift")
    search_fields = ("location__name", "role")
    ordering = ("shift_date", "start_time")


@admin.register(ShiftAssignment)
class ShiftAssignmentAdmin(admin.ModelAdmin):
    list_display = ("shift", "employee", "approval_status", "assigned_by", "approved_by", "assigned_at")
    list_filter = ("approval_status",)
    search_fields = ("employee__email", "employee__first_name", "employee__last_name")
    ordering = ("shift", "employee")


@admin.register(SchedulePeriod)
class SchedulePeriodAdmin(admin.ModelAdmin):
    list_display = ("location", "week_start_date", "state", "published_at", "locked_at", "auto_lock_at", "revision")
    list_filter = ("state", "location")
    ordering = ("-week_start_date", "location")
    # State changes go through SchedulePeriodService so they are audited
    readonly_fields = ("state", "published_at", "published_by", "locked_at", "locked_by", "revision")


@admin.register(ChangeRequest)
class ChangeRequestAdmin(admin.ModelAdmin):
    list_display = ("change_type", "location", "period", "reason_code", "status", "requested_by", "requested_at")
    list_filter = ("status", "change_type", "reason_code")
    search_fields = ("requested_by__email", "note")
    ordering = ("-requested_at",)
