from django.contrib import admin
from .models import Company, Location, LocationOperatingSchedule


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("name", "enable_schedule_governance", "created_at")
    list_filter = ("enable_schedule_governance",)
    search_fields = ("name",)
    ordering = ("name",)


class OperatingScheduleInline(admin.TabularInline):
    model = LocationOperatingSchedule
    extra = 0
    max_num = 7


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ("name", "company", "timezone", "is_active", "created_at")
    list_filter = ("company", "is_active")
    search_fields = ("name", "timezone")
    ordering = ("name",)
    filter_horizontal = ("managers",)
    inlines = [OperatingScheduleInline]
