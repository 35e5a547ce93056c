from django.contrib import admin
from .models import TimeOffRequest, User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ("email", "first_name", "last_name", "role", "job_role", "home_location", "is_active", "date_joined")
    list_filter = ("role", "is_active", "home_location")
    search_fields = ("email", "first_name", "last_name", "job_role")
    ordering = ("last_name", "first_name")


@admin.register(TimeOffRequest)
class TimeOffRequestAdmin(admin.ModelAdmin):
    list_display = ("employee", "request_type", "start_date", "end_date", "status", "reviewed_by", "reviewed_at")
    list_filter = ("status", "request_type")
    search_fields = ("employee__email", "employee__first_name", "employee__last_name")
    ordering = ("-start_date",)
