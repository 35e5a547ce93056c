import datetime

from django.test import TestCase
from django.urls import reverse

from apps.accounts.models import User
from apps.locations.models import Company, Location
from apps.scheduling.models import Shift, ShiftAssignment
from apps.workforce.models import AttendanceLog, WorkforceException

MONDAY = datetime.date(2030, 1, 7)


class TestWorkforceViews(TestCase):
    def setUp(self):
        self.company = Company.objects.create(name="Acme")
        self.location = Location.objects.create(company=self.company, name="Downtown", timezone="UTC")
        self.other = Location.objects.create(company=self.company, name="Harbor", timezone="UTC")
        self.manager = User.objects.create_user(email="mgr@example.com", password="pass123", role=User.Role.MANAGER)
        self.location.managers.add(self.manager)
        self.staff = User.objects.create_user(email="s@example.com", password="pass123", first_name="Sam")

        shift = Shift.objects.create(
            location=self.location, shift_date=MONDAY, start_time=datetime.time(9),
            end_time=datetime.time(17), role="Server",
        )
        ShiftAssignment.objects.create(shift=shift, employee=self.staff)
        self.mine = WorkforceException.objects.create(
            company=self.company, location=self.location, employee=self.staff,
            exception_type=WorkforceException.Type.NO_SHOW, shift_date=MONDAY,
        )
        self.theirs = WorkforceException.objects.create(
            company=self.company, location=self.other, employee=self.staff,
            exception_type=WorkforceException.Type.LATE_START, shift_date=MONDAY,
        )

    def test_queue_is_limited_to_managed_locations(self):
        self.client.force_login(self.manager)
        body = self.client.get(reverse("workforce:approval_queue")).json()
        self.assertEqual(body["count"], 2)
        self.assertEqual([e["id"] for e in body["exceptions"]], [self.mine.pk])

    def test_queue_for_unmanaged_location_is_403(self):
        self.client.force_login(self.manager)
        response = self.client.get(reverse("workforce:approval_queue"), {"location": self.other.pk})
        self.assertEqual(response.status_code, 403)

    def test_exception_list_and_resolve(self):
        self.client.force_login(self.manager)
        body = self.client.get(reverse("workforce:exceptions"), {"location": self.location.pk}).json()
        self.assertEqual(body["exceptions"][0]["exception_type"], "no_show")

        url = reverse("workforce:resolve_exception", args=[self.mine.pk])
        response = self.client.post(url, {"status": "resolved", "note": "Swapped"})
        self.assertEqual(response.json(), {"id": self.mine.pk, "status": "resolved"})
        self.assertEqual(self.client.post(url, {"status": "denied"}).status_code, 409)
        self.assertEqual(
            self.client.post(reverse("workforce:resolve_exception", args=[self.theirs.pk]), {"status": "denied"}).status_code,
            403,
        )

    def test_staff_cannot_see_queue(self):
        self.client.force_login(self.staff)
        self.assertEqual(self.client.get(reverse("workforce:approval_queue")).status_code, 403)

    def test_clock_in_and_out(self):
        self.client.force_login(self.staff)
        response = self.client.post(reverse("workforce:clock_in"), {"location_id": self.location.pk})
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertIsNone(body["shift_id"])
        self.assertEqual(body["exceptions"], ["unscheduled_shift"])

        log = AttendanceLog.objects.get()
        log.check_in_at -= datetime.timedelta(hours=1)
        log.save()
        response = self.client.post(reverse("workforce:clock_out", args=[log.pk]))
        self.assertIsNotNone(response.json()["check_out_at"])
        self.assertEqual(self.client.post(reverse("workforce:clock_out", args=[log.pk])).status_code, 400)

    def test_cannot_clock_out_someone_else(self):
        log = AttendanceLog.objects.create(
            employee=self.manager, location=self.location, check_in_at=datetime.datetime(2030, 1, 7, 9, tzinfo=datetime.timezone.utc)
        )
        self.client.force_login(self.staff)
        self.assertEqual(self.client.post(reverse("workforce:clock_out", args=[log.pk])).status_code, 404)
