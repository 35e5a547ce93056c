"""
Analytics views for ShiftGuard.

View inventory:
  LaborCostView → scheduled labor vs. sales for a day or a date range
"""

import logging

from django.http import HttpRequest, JsonResponse
from django.views import View

from apps.analytics.services import labor_cost_for_date, labor_cost_for_range
from apps.scheduling.exceptions import ShiftValidationError
from core.api import JsonErrorMixin, date_param, int_param
from core.permissions import ManagerRequiredMixin

logger = logging.getLogger(__name__)

# Longest range served in one request
MAX_RANGE_DAYS = 93


class LaborCostView(ManagerRequiredMixin, JsonErrorMixin, View):
    """
    Labor cost for one of the manager's locations.

    Admins and owners see every location; managers only their own.
    """

    def get(self, request: HttpRequest) -> JsonResponse:
        """
        Query params:
          location: the location (required)
          date:     a single day, or
          start/end: an inclusive range (at most MAX_RANGE_DAYS days)
        """
        location = self.get_location_or_403(int_param(request.GET, "location"))

        if request.GET.get("start") or request.GET.get("end"):
            start = date_param(request.GET, "start")
            end = date_param(request.GET, "end")
            if end < start:
                raise ShiftValidationError("end must not be before start.", field="end")
            if (end - start).days >= MAX_RANGE_DAYS:
                raise ShiftValidationError(f"Ranges are limited to {MAX_RANGE_DAYS} days.", field="end")
            series = labor_cost_for_range(location, start, end)
            return JsonResponse({"location_id": location.pk, "days": [day.as_dict() for day in series]})

        cost = labor_cost_for_date(location, date_param(request.GET, "date"))
        return JsonResponse({"location_id": location.pk, **cost.as_dict()})
