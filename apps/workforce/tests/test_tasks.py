import datetime
from unittest import mock

from django.test import TestCase
from django.utils import timezone

from apps.accounts.models import User
from apps.locations.models import Company, Location
from apps.scheduling.models import Shift, ShiftAssignment
from apps.workforce.models import WorkforceException
from apps.workforce.tasks import detect_no_shows


class TestDetectNoShowsTask(TestCase):
    def setUp(self):
        company = Company.objects.create(name="Acme")
        self.location = Location.objects.create(company=company, name="Downtown", timezone="UTC")
        self.staff = User.objects.create_user(email="s@example.com", password="pass123")
        self.now = datetime.datetime(2030, 1, 7, 12, tzinfo=datetime.timezone.utc)
        shift = Shift.objects.create(
            location=self.location, shift_date=self.now.date(), start_time=datetime.time(9),
            end_time=datetime.time(17), role="Server", is_published=True,
        )
        ShiftAssignment.objects.create(shift=shift, employee=self.staff, approval_status="approved")

    def test_task_is_idempotent(self):
        with mock.patch.object(timezone, "now", return_value=self.now):
            self.assertEqual(detect_no_shows.delay().get(), {"no_shows": 1})
            self.assertEqual(detect_no_shows(), {"no_shows": 0})
        self.assertEqual(WorkforceException.objects.get().exception_type, WorkforceException.Type.NO_SHOW)
