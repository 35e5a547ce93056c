"""
Scheduling views for ShiftGuard.

All views speak JSON. POST bodies are form-encoded; `breaks` is a JSON list.
Scheduling errors are mapped to status codes by core.api.JsonErrorMixin.

View inventory:
  ShiftWeekView             → shifts for a week, filtered by location and type (GET)
  CreateShiftView           → create a shift, or one per date in `dates` (POST, governed)
  UpdateShiftView           → edit a shift (POST, governed)
  DeleteShiftView           → delete a shift (POST, governed)
  ShiftAssignmentsView      → visible assignments on a shift (GET)
  EligibleEmployeesView     → candidates for a shift (GET)
  AssignShiftView           → manager assigns / staff claims (POST)
  AssignmentDecisionView    → approve, reject or remove an assignment (POST)
  BulkPublishView           → publish a day or a week of shifts (POST)
  CopyScheduleView          → repeat a date range forward (POST)
  PeriodWeekView            → schedule periods for a week + aggregate state (GET)
  PeriodTransitionView      → publish / lock / unlock / publish-and-lock (POST)
  ChangeRequestListView     → pending change requests (GET)
  ChangeRequestDecisionView → approve or deny a change request (POST)

Governed views answer 201 when the schedule changed and 202 when the
target week is locked and a change request was filed instead.
"""

import datetime
import json
import logging

from django.conf import settings
from django.http import Http404, HttpRequest, JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.views import View

from apps.accounts.models import User
from apps.locations.models import Location
from apps.scheduling.commands import ScheduleCommands
from apps.scheduling.constraints import eligible_employees
from apps.scheduling.exceptions import ShiftValidationError
from apps.scheduling.governance import ChangeRequestService, SchedulePeriodService
from apps.scheduling.models import ChangeRequest, Shift, ShiftAssignment
from apps.scheduling.queries import (
    serialize_assignment,
    serialize_change_request,
    serialize_period,
    serialize_shift,
    shifts_for_week,
    visible_assignments,
)
from apps.scheduling.services import SHIFT_FIELDS, AssignmentService, ShiftService
from core.api import JsonErrorMixin, bool_param, date_param, int_param
from core.permissions import ManagerRequiredMixin, StaffRequiredMixin, manageable_locations

logger = logging.getLogger(__name__)


def _shift_data(params) -> dict:
    """Pick the shift fields out of a form body."""
    data = {name: params[name] for name in SHIFT_FIELDS if name in params}
    if "breaks" in data:
        try:
            data["breaks"] = json.loads(data["breaks"] or "[]")
        except json.JSONDecodeError:
            raise ShiftValidationError("breaks must be a JSON list.", field="breaks")
    return data


def _governed_response(result) -> JsonResponse:
    return JsonResponse(result.as_dict(), status=201 if result.applied else 202)


def _visible_locations(user):
    """Managers see the locations they manage, staff their home location."""
    if user.can_manage_schedules:
        return manageable_locations(user)
    return Location.objects.filter(pk=user.home_location_id, is_active=True)


class ManagedShiftMixin(ManagerRequiredMixin):
    """Resolve the URL's shift, refusing shifts at locations the user doesn't manage."""

    def get_shift(self, pk: int) -> Shift:
        shift = get_object_or_404(Shift.objects.select_related("location__company"), pk=pk)
        self.get_location_or_403(shift.location_id)
        return shift


# ---------------------------------------------------------------------------
# Shifts
# ---------------------------------------------------------------------------


class ShiftWeekView(StaffRequiredMixin, JsonErrorMixin, View):
    """Week view of the schedule. Staff only ever see published shifts."""

    def get(self, request: HttpRequest) -> JsonResponse:
        """
        Query params:
          date:     any day in the week (default today)
          location: limit to one location
          type:     all | open | unfilled | unpublished | published
        """
        user = request.user
        week_start = SchedulePeriodService.week_start(date_param(request.GET, "date", default=timezone.localdate()))

        locations = _visible_locations(user)
        if request.GET.get("location"):
            locations = locations.filter(pk=int_param(request.GET, "location"))

        shifts = shifts_for_week(week_start, locations=locations, shift_type=request.GET.get("type", "all"))
        if not user.can_manage_schedules:
            shifts = shifts.filter(is_published=True)

        periods = SchedulePeriodService.periods_for_week(week_start, locations=locations)
        now = timezone.now()
        return JsonResponse({
            "week_start": week_start.isoformat(),
            "period_state": SchedulePeriodService.aggregate_state(periods),
            "shifts": [serialize_shift(s, now) for s in shifts],
        })


class CreateShiftView(ManagerRequiredMixin, JsonErrorMixin, View):
    """
    Create a shift at a location.

    With one or more `dates` values the same shift is created on each date
    and per-date results are returned ("apply to multiple weekdays").
    """

    def post(self, request: HttpRequest) -> JsonResponse:
        location = self.get_location_or_403(int_param(request.POST, "location_id"))
        data = _shift_data(request.POST)

        dates = request.POST.getlist("dates")
        if dates:
            data.pop("shift_date", None)
            results = ShiftService.create_shifts_for_weekdays(location, data, dates, created_by=request.user)
            return JsonResponse({"results": [r.as_dict() for r in results]}, status=201)

        result = ScheduleCommands.create_shift(
            location,
            data,
            actor=request.user,
            reason_code=request.POST.get("reason_code"),
            note=request.POST.get("note"),
        )
        return _governed_response(result)


class UpdateShiftView(ManagedShiftMixin, JsonErrorMixin, View):
    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        shift = self.get_shift(pk)
        expected = request.POST.get("expected_revision")
        result = ScheduleCommands.update_shift(
            shift,
            _shift_data(request.POST),
            actor=request.user,
            expected_revision=int_param(request.POST, "expected_revision") if expected else None,
            reason_code=request.POST.get("reason_code"),
            note=request.POST.get("note"),
        )
        return _governed_response(result)


class DeleteShiftView(ManagedShiftMixin, JsonErrorMixin, View):
    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        shift = self.get_shift(pk)
        result = ScheduleCommands.delete_shift(
            shift,
            actor=request.user,
            reason_code=request.POST.get("reason_code"),
            note=request.POST.get("note"),
        )
        return _governed_response(result)


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------


class ShiftAssignmentsView(StaffRequiredMixin, JsonErrorMixin, View):
    """Assignments on a shift, hiding employees on approved time off."""

    def get(self, request: HttpRequest, pk: int) -> JsonResponse:
        shift = get_object_or_404(Shift, pk=pk, location__in=_visible_locations(request.user))
        if not request.user.can_manage_schedules and not shift.is_published:
            raise Http404("No such shift.")
        return JsonResponse({
            "shift_id": shift.pk,
            "approved_count": shift.approved_count,
            "required_count": shift.required_count,
            "assignments": [serialize_assignment(a) for a in visible_assignments(shift)],
        })


class EligibleEmployeesView(ManagedShiftMixin, JsonErrorMixin, View):
    def get(self, request: HttpRequest, pk: int) -> JsonResponse:
        """
        Query params:
          include_all_locations: also list matching employees based elsewhere
        """
        shift = self.get_shift(pk)
        include_all = bool_param(request.GET, "include_all_locations")
        return JsonResponse({
            "shift_id": shift.pk,
            "include_all_locations": include_all,
            "employees": [e.as_dict() for e in eligible_employees(shift, include_all_locations=include_all)],
        })


class AssignShiftView(StaffRequiredMixin, JsonErrorMixin, View):
    """
    Managers assign `employee_id` directly (approved).

    Staff claim the shift for themselves; only published open shifts at a
    location they can see are claimable, and the claim awaits approval.
    """

    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        user = request.user
        if user.can_manage_schedules:
            shift = get_object_or_404(Shift, pk=pk, location__in=manageable_locations(user))
            employee = get_object_or_404(User, pk=int_param(request.POST, "employee_id"), is_active=True)
        else:
            shift = get_object_or_404(Shift, pk=pk, location__in=_visible_locations(user))
            if not (shift.is_open_shift and shift.is_published):
                raise ShiftValidationError("Only published open shifts can be claimed.", field="shift")
            employee = user

        result = AssignmentService.create_assignment(shift, employee, actor=user)
        return JsonResponse(
            {"assignment": serialize_assignment(result.assignment), "warnings": result.warnings},
            status=201,
        )


class AssignmentDecisionView(ManagerRequiredMixin, JsonErrorMixin, View):
    """POST assignments/<pk>/<decision>/ where decision is approve, reject or remove."""

    decisions = ("approve", "reject", "remove")

    def post(self, request: HttpRequest, pk: int, decision: str) -> JsonResponse:
        if decision not in self.decisions:
            raise Http404("Unknown decision.")
        assignment = get_object_or_404(ShiftAssignment.objects.select_related("shift", "employee"), pk=pk)
        self.get_location_or_403(assignment.shift.location_id)

        if decision == "remove":
            AssignmentService.remove_assignment(assignment, actor=request.user)
            return JsonResponse({"removed": pk})
        if decision == "approve":
            assignment = AssignmentService.approve_assignment(assignment, actor=request.user)
        else:
            assignment = AssignmentService.reject_assignment(assignment, actor=request.user)
        return JsonResponse({"assignment": serialize_assignment(assignment)})


# ---------------------------------------------------------------------------
# Publishing and copying
# ---------------------------------------------------------------------------


class BulkPublishView(ManagerRequiredMixin, JsonErrorMixin, View):
    """
    POST body:
      location_id: the location
      date:        the day, or any day in the week
      scope:       day | week

    Publishing a week skips shifts dated before today; publishing a day
    does not.
    """

    def post(self, request: HttpRequest) -> JsonResponse:
        location = self.get_location_or_403(int_param(request.POST, "location_id"))
        day = date_param(request.POST, "date")
        scope = request.POST.get("scope", "day")

        if scope == "day":
            first, last, exclude_past = day, day, False
        elif scope == "week":
            first = SchedulePeriodService.week_start(day)
            last = first + datetime.timedelta(days=6)
            exclude_past = settings.SHIFTGUARD["PUBLISH_WEEK_EXCLUDES_PAST"]
        else:
            raise ShiftValidationError("scope must be 'day' or 'week'.", field="scope")

        shift_ids = Shift.objects.filter(location=location, shift_date__range=(first, last)).values_list(
            "pk", flat=True
        )
        result = ShiftService.bulk_publish(list(shift_ids), actor=request.user, exclude_past=exclude_past)
        return JsonResponse(result.as_dict())


class CopyScheduleView(ManagerRequiredMixin, JsonErrorMixin, View):
    """
    POST body:
      location_id, source_start, source_end, copies
      include_assignments: copy approved assignments too
      employee_id:         only this employee's shifts and assignments
    """

    def post(self, request: HttpRequest) -> JsonResponse:
        location = self.get_location_or_403(int_param(request.POST, "location_id"))
        employee = None
        if request.POST.get("employee_id"):
            employee = get_object_or_404(User, pk=int_param(request.POST, "employee_id"))

        result = ShiftService.copy_schedule(
            location,
            date_param(request.POST, "source_start"),
            date_param(request.POST, "source_end"),
            int_param(request.POST, "copies", default=1),
            actor=request.user,
            include_assignments=bool_param(request.POST, "include_assignments"),
            employee=employee,
        )
        return JsonResponse(result.as_dict(), status=201)


# ---------------------------------------------------------------------------
# Schedule periods
# ---------------------------------------------------------------------------


class PeriodWeekView(StaffRequiredMixin, JsonErrorMixin, View):
    """Periods for a week, one per location, plus their aggregate state."""

    def get(self, request: HttpRequest) -> JsonResponse:
        day = date_param(request.GET, "date", default=timezone.localdate())
        locations = _visible_locations(request.user)
        if request.GET.get("location"):
            locations = locations.filter(pk=int_param(request.GET, "location"))

        periods = list(SchedulePeriodService.periods_for_week(day, locations=locations))
        return JsonResponse({
            "week_start": SchedulePeriodService.week_start(day).isoformat(),
            "aggregate_state": SchedulePeriodService.aggregate_state(periods),
            "periods": [serialize_period(p) for p in periods],
        })


class PeriodTransitionView(ManagerRequiredMixin, JsonErrorMixin, View):
    """
    POST periods/<transition>/ with location_id, date and optional
    expected_revision. The period is created as a draft on first use.
    """

    transitions = {
        "publish": SchedulePeriodService.publish,
        "lock": SchedulePeriodService.lock,
        "unlock": SchedulePeriodService.unlock,
        "publish-and-lock": SchedulePeriodService.publish_and_lock,
    }

    def post(self, request: HttpRequest, transition: str) -> JsonResponse:
        if transition not in self.transitions:
            raise Http404("Unknown transition.")
        location = self.get_location_or_403(int_param(request.POST, "location_id"))
        period = SchedulePeriodService.period_for_week(location, date_param(request.POST, "date"))
        if period is None:
            raise ShiftValidationError(
                f"Schedule governance is not enabled for {location.company.name}.", field="location_id"
            )

        expected = request.POST.get("expected_revision")
        period = self.transitions[transition](
            period,
            actor=request.user,
            expected_revision=int_param(request.POST, "expected_revision") if expected else None,
        )
        return JsonResponse({"period": serialize_period(period)})


# ---------------------------------------------------------------------------
# Change requests
# ---------------------------------------------------------------------------


class ChangeRequestListView(ManagerRequiredMixin, JsonErrorMixin, View):
    def get(self, request: HttpRequest) -> JsonResponse:
        """
        Query params:
          location: limit to one location
          date:     limit to the week containing this day
        """
        requests = ChangeRequestService.pending().filter(location__in=self.get_manager_locations())
        if request.GET.get("location"):
            requests = requests.filter(location_id=int_param(request.GET, "location"))
        if request.GET.get("date"):
            week_start = SchedulePeriodService.week_start(date_param(request.GET, "date"))
            requests = requests.filter(period__week_start_date=week_start)
        return JsonResponse({"change_requests": [serialize_change_request(r) for r in requests]})


class ChangeRequestDecisionView(ManagerRequiredMixin, JsonErrorMixin, View):
    """POST change-requests/<pk>/<decision>/ where decision is approve or deny."""

    def post(self, request: HttpRequest, pk: int, decision: str) -> JsonResponse:
        change_request = get_object_or_404(ChangeRequest, pk=pk)
        self.get_location_or_403(change_request.location_id)

        if decision == "approve":
            outcome = ChangeRequestService.approve(change_request, actor=request.user)
            return JsonResponse({
                "change_request": serialize_change_request(outcome.request),
                "shift_id": outcome.shift.pk if outcome.shift else None,
                "warnings": outcome.warnings,
            })
        if decision == "deny":
            change_request = ChangeRequestService.deny(
                change_request, actor=request.user, note=request.POST.get("note")
            )
            return JsonResponse({"change_request": serialize_change_request(change_request), "warnings": []})
        raise Http404("Unknown decision.")
