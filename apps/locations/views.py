"""
Locations views for ShiftGuard.

View inventory:
  LocationListView    → locations the user manages, with governance flag (GET)
  OperatingHoursView  → a location's weekly opening hours (GET, POST)
"""

import logging

from django.http import HttpRequest, JsonResponse
from django.views import View

from apps.locations.models import LocationOperatingSchedule
from apps.scheduling.constraints import parse_time
from apps.scheduling.exceptions import ShiftValidationError
from core.api import JsonErrorMixin, bool_param, int_param
from core.permissions import ManagerRequiredMixin

logger = logging.getLogger(__name__)


class LocationListView(ManagerRequiredMixin, View):
    def get(self, request: HttpRequest) -> JsonResponse:
        locations = self.get_manager_locations().select_related("company")
        return JsonResponse({
            "locations": [
                {
                    "id": loc.pk,
                    "name": loc.name,
                    "company": loc.company.name,
                    "timezone": loc.timezone,
                    "schedule_governance": loc.company.enable_schedule_governance,
                }
                for loc in locations
            ]
        })


class OperatingHoursView(ManagerRequiredMixin, JsonErrorMixin, View):
    """
    GET returns all seven weekdays; weekdays without a row are open 24 hours.

    POST sets one weekday:
      weekday:    0 (Monday) .. 6 (Sunday)
      is_closed:  closed all day
      open_time, close_time: HH:MM; a close of 00:00 means midnight, a close
                  earlier than open means the location closes after midnight
    """

    def get(self, request: HttpRequest, pk: int) -> JsonResponse:
        location = self.get_location_or_403(pk)
        rows = {row.weekday: row for row in location.operating_schedules.all()}
        days = []
        for weekday, label in LocationOperatingSchedule.Weekday.choices:
            if weekday in rows:
                day = rows[weekday].as_dict()
            else:
                day = {"weekday": weekday, "open_time": None, "close_time": None, "is_closed": False}
            day["label"] = label
            days.append(day)
        return JsonResponse({"location_id": location.pk, "days": days})

    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        location = self.get_location_or_403(pk)
        weekday = int_param(request.POST, "weekday")
        if weekday not in LocationOperatingSchedule.Weekday.values:
            raise ShiftValidationError("weekday must be 0 (Monday) to 6 (Sunday).", field="weekday")

        is_closed = bool_param(request.POST, "is_closed")
        open_time = close_time = None
        if not is_closed:
            open_time = parse_time(request.POST.get("open_time"), "open_time")
            close_time = parse_time(request.POST.get("close_time"), "close_time")
            if open_time == close_time:
                raise ShiftValidationError("Opening and closing times must differ.", field="close_time")

        row, _ = LocationOperatingSchedule.objects.update_or_create(
            location=location,
            weekday=weekday,
            defaults={"open_time": open_time, "close_time": close_time, "is_closed": is_closed},
        )
        logger.info("Operating hours for %s set by user %d: %s", location.name, request.user.pk, row)
        return JsonResponse(row.as_dict())
