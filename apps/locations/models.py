"""
Locations models for ShiftGuard.

Represents the businesses (companies) using ShiftGuard, their physical
locations and the weekly operating hours each location keeps.

Each location has a canonical timezone. Shift times are stored as location
wall-clock values, so "now" checks convert through this timezone.
"""

import datetime
import zoneinfo

from django.conf import settings
from django.db import models
from django.utils import timezone


# All valid IANA timezone names for the select widget
TIMEZONE_CHOICES = [(tz, tz) for tz in sorted(zoneinfo.available_timezones())]


class Company(models.Model):
    """
    A business operating one or more locations.

    enable_schedule_governance switches on the weekly publish/lock workflow.
    With it off no SchedulePeriod rows are ever created and every schedule
    edit is applied directly.
    """

    name = models.CharField(max_length=150, unique=True)
    enable_schedule_governance = models.BooleanField(
        default=False,
        help_text="Lock published weeks and route edits through change requests.",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name = "Company"
        verbose_name_plural = "Companies"

    def __str__(self) -> str:
        return self.name


class Location(models.Model):
    """
    A physical location operated by a company.

    The timezone field is the canonical timezone for all shift times displayed
    for this location. It is IANA-format (e.g., "America/Los_Angeles").
    """

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="locations")
    name = models.CharField(max_length=100)
    timezone = models.CharField(
        max_length=50,
        choices=TIMEZONE_CHOICES,
        default="UTC",
        help_text="IANA timezone for this location (e.g., America/Los_Angeles).",
    )
    address = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)

    # Managers assigned to oversee this location
    managers = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name="managed_locations",
        limit_choices_to={"role": "manager"},
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name = "Location"
        verbose_name_plural = "Locations"
        constraints = [
            models.UniqueConstraint(fields=["company", "name"], name="unique_location_name_per_company")
        ]

    def __str__(self) -> str:
        """Return location name with timezone for unambiguous display."""
        return f"{self.name} ({self.timezone})"

    def get_zoneinfo(self) -> zoneinfo.ZoneInfo:
        """Return a ZoneInfo object for this location's timezone."""
        return zoneinfo.ZoneInfo(self.timezone)

    def now_local(self) -> datetime.datetime:
        """Return the current datetime in this location's local timezone."""
        return timezone.now().astimezone(self.get_zoneinfo())

    def localize(self, day: datetime.date, at: datetime.time) -> datetime.datetime:
        """
        Combine a shift date and wall-clock time into an aware datetime.

        Args:
            day: The local calendar date.
            at: The local wall-clock time.

        Returns:
            timezone-aware datetime in the location's timezone.
        """
        return datetime.datetime.combine(day, at, tzinfo=self.get_zoneinfo())


class LocationOperatingSchedule(models.Model):
    """
    Opening hours for one weekday at a location.

    A missing row means the location is open around the clock on that weekday.
    close_time of 00:00 means "closes at midnight". A close_time earlier than
    open_time means the location closes after midnight (overnight hours).
    """

    class Weekday(models.IntegerChoices):
        MONDAY = 0, "Monday"
        TUESDAY = 1, "Tuesday"
        WEDNESDAY = 2, "Wednesday"
        THURSDAY = 3, "Thursday"
        FRIDAY = 4, "Friday"
        SATURDAY = 5, "Saturday"
        SUNDAY = 6, "Sunday"

    location = models.ForeignKey(
        Location,
        on_delete=models.CASCADE,
        related_name="operating_schedules",
    )
    weekday = models.PositiveSmallIntegerField(choices=Weekday.choices)
    open_time = models.TimeField(null=True, blank=True)
    close_time = models.TimeField(null=True, blank=True)
    is_closed = models.BooleanField(default=False)

    class Meta:
        verbose_name = "Operating Schedule"
        verbose_name_plural = "Operating Schedules"
        ordering = ["location", "weekday"]
        constraints = [
            models.UniqueConstraint(
                fields=["location", "weekday"],
                name="unique_location_weekday_schedule",
            )
        ]

    def __str__(self) -> str:
        day = self.get_weekday_display()
        if self.is_closed:
            return f"{self.location.name} {day}: closed"
        return f"{self.location.name} {day}: {self.open_time:%H:%M}–{self.close_time:%H:%M}"

    @property
    def is_overnight(self) -> bool:
        """True when closing time falls after midnight (close earlier than open, not 00:00)."""
        if self.is_closed or self.open_time is None or self.close_time is None:
            return False
        return self.close_time < self.open_time and self.close_time != datetime.time(0, 0)

    def as_dict(self) -> dict:
        return {
            "weekday": self.weekday,
            "open_time": self.open_time.strftime("%H:%M:%S") if self.open_time else None,
            "close_time": self.close_time.strftime("%H:%M:%S") if self.close_time else None,
            "is_closed": self.is_closed,
        }
