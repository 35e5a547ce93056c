import datetime
from decimal import Decimal

from django.test import TestCase

from apps.accounts.models import User
from apps.locations.models import Company, Location
from apps.scheduling.models import ChangeRequest, SchedulePeriod, Shift, ShiftAssignment


class TestShiftModel(TestCase):
    def setUp(self):
        self.company = Company.objects.create(name="Acme")
        self.location = Location.objects.create(company=self.company, name="Westside", timezone="America/Los_Angeles")

    def make_shift(self, start, end):
        return Shift.objects.create(
            location=self.location,
            shift_date=datetime.date(2030, 1, 7),
            start_time=datetime.time.fromisoformat(start),
            end_time=datetime.time.fromisoformat(end),
            role="Bartender",
        )

    def test_duration_same_day_and_overnight(self):
        self.assertEqual(self.make_shift("09:00", "17:30").duration_hours, Decimal("8.5"))
        overnight = self.make_shift("22:00", "02:00")
        self.assertTrue(overnight.is_overnight)
        self.assertEqual(overnight.duration_hours, Decimal("4"))

    def test_end_datetime_rolls_to_next_day_in_location_timezone(self):
        shift = self.make_shift("22:00", "02:00")
        end = shift.end_datetime()
        self.assertEqual(end.date(), datetime.date(2030, 1, 8))
        self.assertEqual(end.tzinfo.key, "America/Los_Angeles")
        self.assertEqual(end - shift.start_datetime(), datetime.timedelta(hours=4))

    def test_snapshot_is_json_safe(self):
        shift = self.make_shift("09:00", "17:00")
        snapshot = shift.snapshot()
        self.assertEqual(snapshot["shift_date"], "2030-01-07")
        self.assertEqual(snapshot["start_time"], "09:00:00")
        self.assertEqual(snapshot["role"], "Bartender")
        self.assertEqual(snapshot["location_id"], self.location.pk)

    def test_headcount_counts_approved_only(self):
        shift = self.make_shift("09:00", "17:00")
        shift.required_count = 2
        shift.save()
        for index, status in enumerate(["approved", "pending", "rejected"]):
            employee = User.objects.create_user(email=f"s{index}@example.com", password="pass123")
            ShiftAssignment.objects.create(shift=shift, employee=employee, approval_status=status)
        self.assertEqual(shift.approved_count, 1)
        self.assertFalse(shift.is_fully_staffed)


class TestSchedulePeriodModel(TestCase):
    def setUp(self):
        self.company = Company.objects.create(name="Acme", enable_schedule_governance=True)
        self.location = Location.objects.create(company=self.company, name="Downtown")

    def test_week_bounds_and_contains(self):
        period = SchedulePeriod.objects.create(
            company=self.company, location=self.location, week_start_date=datetime.date(2030, 1, 7)
        )
        self.assertEqual(period.state, SchedulePeriod.State.DRAFT)
        self.assertEqual(period.week_end_date, datetime.date(2030, 1, 13))
        self.assertTrue(period.contains(datetime.date(2030, 1, 13)))
        self.assertFalse(period.contains(datetime.date(2030, 1, 14)))
        self.assertFalse(period.is_locked)

    def test_change_request_defaults_to_pending(self):
        period = SchedulePeriod.objects.create(
            company=self.company, location=self.location, week_start_date=datetime.date(2030, 1, 7)
        )
        request = ChangeRequest.objects.create(
            company=self.company,
            location=self.location,
            period=period,
            change_type=ChangeRequest.ChangeType.DELETE,
            reason_code=ChangeRequest.ReasonCode.EMERGENCY,
        )
        self.assertTrue(request.is_pending)
        self.assertIn("Downtown", str(request))
