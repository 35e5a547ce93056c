from django.contrib import admin

from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "actor", "action", "location", "content_type", "object_id")
    list_filter = ("location", "content_type")
    search_fields = ("actor__email", "action", "note")
    date_hierarchy = "created_at"

    # Read-only: rows come from the schedule_changed receiver only
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
