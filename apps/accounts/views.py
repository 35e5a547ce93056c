"""
Accounts views for ShiftGuard.

Authentication itself is Django's (admin login); these views cover the
employee directory and time off.

View inventory:
  StaffListView        → manager/admin: employees at their locations with weekly hours (GET)
  TimeOffView          → staff: own time off requests (GET) and submit one (POST)
  PendingTimeOffView   → manager: pending requests from their employees (GET)
  TimeOffReviewView    → manager: approve or reject a request (POST)
"""

import datetime
import logging

from django.http import Http404, HttpRequest, JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.views import View

from apps.accounts.models import TimeOffRequest, User
from apps.accounts.services import TimeOffService
from apps.scheduling.models import ShiftAssignment
from core.api import JsonErrorMixin, date_param
from core.permissions import ManagerRequiredMixin, StaffRequiredMixin

logger = logging.getLogger(__name__)


def _serialize_time_off(request: TimeOffRequest) -> dict:
    return {
        "id": request.pk,
        "employee_id": request.employee_id,
        "employee": request.employee.get_full_name(),
        "start_date": request.start_date.isoformat(),
        "end_date": request.end_date.isoformat(),
        "request_type": request.request_type,
        "status": request.status,
        "reason": request.reason,
        "reviewed_at": request.reviewed_at.isoformat() if request.reviewed_at else None,
    }


class StaffListView(ManagerRequiredMixin, View):
    """
    Employees based at the manager's locations, with this week's scheduled
    hours (approved assignments only). Admins and owners see everyone.
    """

    def get(self, request: HttpRequest) -> JsonResponse:
        today = timezone.localdate()
        week_start = today - datetime.timedelta(days=today.weekday())
        week_end = week_start + datetime.timedelta(days=6)

        staff_qs = User.objects.filter(
            is_active=True, home_location__in=self.get_manager_locations()
        ).select_related("home_location")

        staff_data = []
        for member in staff_qs:
            hours = sum(
                a.shift.duration_hours
                for a in ShiftAssignment.objects.filter(
                    employee=member,
                    approval_status=ShiftAssignment.Status.APPROVED,
                    shift__shift_date__range=(week_start, week_end),
                ).select_related("shift")
            )
            staff_data.append({
                "id": member.pk,
                "name": member.get_full_name(),
                "role": member.role,
                "job_role": member.job_role,
                "home_location": member.home_location.name if member.home_location else None,
                "hours_this_week": str(hours),
            })

        staff_data.sort(key=lambda x: x["name"])
        return JsonResponse({"week_start": week_start.isoformat(), "staff": staff_data})


class TimeOffView(StaffRequiredMixin, JsonErrorMixin, View):
    def get(self, request: HttpRequest) -> JsonResponse:
        requests = TimeOffRequest.objects.filter(employee=request.user).select_related("employee")
        return JsonResponse({"time_off": [_serialize_time_off(r) for r in requests]})

    def post(self, request: HttpRequest) -> JsonResponse:
        """
        POST body:
          start_date, end_date: inclusive YYYY-MM-DD range
          request_type:         vacation | sick | personal | other
          reason:               optional free text
        """
        time_off = TimeOffService.submit(
            request.user,
            date_param(request.POST, "start_date"),
            date_param(request.POST, "end_date"),
            request_type=request.POST.get("request_type", TimeOffRequest.Type.VACATION),
            reason=request.POST.get("reason"),
        )
        return JsonResponse(_serialize_time_off(time_off), status=201)


class PendingTimeOffView(ManagerRequiredMixin, View):
    def get(self, request: HttpRequest) -> JsonResponse:
        requests = TimeOffRequest.objects.filter(
            status=TimeOffRequest.Status.PENDING,
            employee__home_location__in=self.get_manager_locations(),
        ).select_related("employee").order_by("start_date")
        return JsonResponse({"time_off": [_serialize_time_off(r) for r in requests]})


class TimeOffReviewView(ManagerRequiredMixin, JsonErrorMixin, View):
    """POST time-off/<pk>/<decision>/ where decision is approve or reject."""

    def post(self, request: HttpRequest, pk: int, decision: str) -> JsonResponse:
        if decision not in ("approve", "reject"):
            raise Http404("Unknown decision.")
        time_off = get_object_or_404(
            TimeOffRequest.objects.select_related("employee"),
            pk=pk,
            employee__home_location__in=self.get_manager_locations(),
        )
        time_off = TimeOffService.review(time_off, approved=decision == "approve", actor=request.user)
        return JsonResponse(_serialize_time_off(time_off))
