from django.contrib import admin
from .models import LaborCostRecord


@admin.register(LaborCostRecord)
class LaborCostRecordAdmin(admin.ModelAdmin):
    list_display = ("location", "date", "projected_sales", "actual_sales", "updated_at")
    list_filter = ("location",)
    ordering = ("-date", "location")
