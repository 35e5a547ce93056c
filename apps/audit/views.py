"""
Audit views for ShiftGuard.

View inventory:
  AuditLogView → owner/admin audit trail as JSON, with CSV export
"""

import csv
import logging

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views import View

from apps.audit.models import AuditLog
from core.api import JsonErrorMixin, date_param, int_param
from core.permissions import AdminRequiredMixin

logger = logging.getLogger(__name__)

PAGE_SIZE = 200


class AuditLogView(AdminRequiredMixin, JsonErrorMixin, View):
    """
    Immutable audit log viewer (owners and admins).

    Query params:
      action:      partial match on the action string
      actor:       actor user ID
      location:    location ID
      object_id:   the changed object's ID
      since/until: inclusive YYYY-MM-DD bounds
      export:      'csv' streams every matching row instead of a page
    """

    def get(self, request: HttpRequest) -> HttpResponse:
        logs = self.filter_logs(request.GET)
        if request.GET.get("export") == "csv":
            logger.info("User %d exported the audit log.", request.user.pk)
            return self._export_csv(logs)
        return JsonResponse({"entries": [log.as_dict() for log in logs[:PAGE_SIZE]]})

    @staticmethod
    def filter_logs(params):
        logs = AuditLog.objects.select_related("actor", "content_type")

        action = params.get("action", "").strip()
        if action:
            logs = logs.filter(action__icontains=action)
        if params.get("actor"):
            logs = logs.filter(actor_id=int_param(params, "actor"))
        if params.get("location"):
            logs = logs.filter(location_id=int_param(params, "location"))
        if params.get("object_id"):
            logs = logs.filter(object_id=int_param(params, "object_id"))
        if params.get("since"):
            logs = logs.filter(created_at__date__gte=date_param(params, "since"))
        if params.get("until"):
            logs = logs.filter(created_at__date__lte=date_param(params, "until"))
        return logs

    @staticmethod
    def _export_csv(logs) -> HttpResponse:
        response = HttpResponse(content_type="text/csv")
        response["Content-Disposition"] = 'attachment; filename="shiftguard_audit.csv"'
        writer = csv.writer(response)
        writer.writerow(["Timestamp", "Actor", "Action", "Location ID", "Object ID", "Note"])
        for log in logs.iterator():
            writer.writerow([
                log.created_at.isoformat(),
                log.actor_name,
                log.action,
                log.location_id or "",
                log.object_id or "",
                log.note,
            ])
        return response
