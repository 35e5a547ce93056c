"""
Workforce views for ShiftGuard.

View inventory:
  ApprovalQueueView      → everything awaiting a manager decision (GET)
  ExceptionListView      → pending workforce exceptions (GET)
  ResolveExceptionView   → approve / deny / resolve an exception (POST)
  ClockInView            → record a clock-in for the current user (POST)
  ClockOutView           → close the current user's open attendance log (POST)
"""

import logging

from django.http import HttpRequest, JsonResponse
from django.shortcuts import get_object_or_404
from django.views import View

from apps.scheduling.governance import SchedulePeriodService
from apps.scheduling.models import SchedulePeriod
from apps.workforce.models import AttendanceLog, WorkforceException
from apps.workforce.queue import ApprovalQueue
from apps.workforce.services import clock_in, clock_out
from core.api import JsonErrorMixin, date_param, int_param
from core.permissions import ManagerRequiredMixin, StaffRequiredMixin

logger = logging.getLogger(__name__)


def _serialize_log(log: AttendanceLog, exceptions=()) -> dict:
    return {
        "id": log.pk,
        "location_id": log.location_id,
        "shift_id": log.shift_id,
        "check_in_at": log.check_in_at.isoformat(),
        "check_out_at": log.check_out_at.isoformat() if log.check_out_at else None,
        "exceptions": [e.exception_type for e in exceptions],
    }


class QueueScopeMixin(ManagerRequiredMixin):
    """Build an ApprovalQueue from ?location= and ?date= (the week's period)."""

    def get_queue(self, params) -> ApprovalQueue:
        location = None
        period = None
        if params.get("location"):
            location = self.get_location_or_403(int_param(params, "location"))
            if params.get("date"):
                week_start = SchedulePeriodService.week_start(date_param(params, "date"))
                period = SchedulePeriod.objects.filter(location=location, week_start_date=week_start).first()
        return ApprovalQueue(location=location, period=period, locations=self.get_manager_locations())


class ApprovalQueueView(QueueScopeMixin, JsonErrorMixin, View):
    def get(self, request: HttpRequest) -> JsonResponse:
        return JsonResponse(self.get_queue(request.GET).as_dict())


class ExceptionListView(QueueScopeMixin, JsonErrorMixin, View):
    def get(self, request: HttpRequest) -> JsonResponse:
        exceptions = self.get_queue(request.GET).pending_exceptions()
        return JsonResponse({
            "exceptions": [
                {
                    "id": e.pk,
                    "exception_type": e.exception_type,
                    "employee_id": e.employee_id,
                    "employee": e.employee.get_full_name(),
                    "location_id": e.location_id,
                    "shift_id": e.shift_id,
                    "shift_date": e.shift_date.isoformat(),
                    "detected_at": e.detected_at.isoformat(),
                    "metadata": e.metadata,
                }
                for e in exceptions
            ]
        })


class ResolveExceptionView(ManagerRequiredMixin, JsonErrorMixin, View):
    """POST body: status (approved | denied | resolved), note."""

    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        exception = get_object_or_404(WorkforceException, pk=pk)
        self.get_location_or_403(exception.location_id)
        exception = ApprovalQueue.resolve_exception(
            exception, request.POST.get("status", ""), request.user, note=request.POST.get("note")
        )
        return JsonResponse({"id": exception.pk, "status": exception.status})


class ClockInView(StaffRequiredMixin, JsonErrorMixin, View):
    def post(self, request: HttpRequest) -> JsonResponse:
        from apps.locations.models import Location

        location = get_object_or_404(Location, pk=int_param(request.POST, "location_id"), is_active=True)
        log = clock_in(request.user, location)
        return JsonResponse(_serialize_log(log, log.exceptions.all()), status=201)


class ClockOutView(StaffRequiredMixin, JsonErrorMixin, View):
    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        log = get_object_or_404(AttendanceLog, pk=pk, employee=request.user)
        log = clock_out(log)
        return JsonResponse(_serialize_log(log, log.exceptions.all()))
