import datetime

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from apps.accounts.models import TimeOffRequest, User
from apps.locations.models import Company, Location
from apps.scheduling.models import Shift, ShiftAssignment


class AccountsViewTestCase(TestCase):
    def setUp(self):
        company = Company.objects.create(name="Acme")
        self.location = Location.objects.create(company=company, name="Downtown")
        self.elsewhere = Location.objects.create(company=company, name="Harbor")
        self.manager = User.objects.create_user(email="m@example.com", password="pass123", role=User.Role.MANAGER)
        self.location.managers.add(self.manager)
        self.staff = User.objects.create_user(
            email="s@example.com", password="pass123", first_name="Sam", last_name="Staff",
            home_location=self.location, hourly_rate="15.00",
        )
        self.stranger = User.objects.create_user(
            email="x@example.com", password="pass123", first_name="Xia", home_location=self.elsewhere
        )


class TestStaffListView(AccountsViewTestCase):
    def test_lists_staff_at_managed_locations_with_weekly_hours(self):
        shift = Shift.objects.create(
            location=self.location, shift_date=timezone.localdate(), start_time=datetime.time(22),
            end_time=datetime.time(2), role="Server",
        )
        ShiftAssignment.objects.create(shift=shift, employee=self.staff, approval_status="approved")

        self.client.force_login(self.manager)
        body = self.client.get(reverse("accounts:staff_list")).json()
        self.assertEqual([s["name"] for s in body["staff"]], ["Sam Staff"])
        self.assertEqual(body["staff"][0]["hours_this_week"], "4")

    def test_staff_are_refused(self):
        self.client.force_login(self.staff)
        self.assertEqual(self.client.get(reverse("accounts:staff_list")).status_code, 403)


class TestTimeOffViews(AccountsViewTestCase):
    def test_submit_and_list_own_requests(self):
        self.client.force_login(self.staff)
        response = self.client.post(reverse("accounts:time_off"), {
            "start_date": "2030-01-07", "end_date": "2030-01-08", "request_type": "sick",
        })
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["status"], "pending")
        body = self.client.get(reverse("accounts:time_off")).json()
        self.assertEqual(len(body["time_off"]), 1)

    def test_bad_dates_are_400(self):
        self.client.force_login(self.staff)
        response = self.client.post(reverse("accounts:time_off"), {"start_date": "2030-01-07", "end_date": "soon"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["field"], "end_date")

    def test_manager_reviews_requests_from_own_locations(self):
        mine = TimeOffRequest.objects.create(
            employee=self.staff, start_date=datetime.date(2030, 1, 7), end_date=datetime.date(2030, 1, 7)
        )
        theirs = TimeOffRequest.objects.create(
            employee=self.stranger, start_date=datetime.date(2030, 1, 7), end_date=datetime.date(2030, 1, 7)
        )
        self.client.force_login(self.manager)
        body = self.client.get(reverse("accounts:time_off_pending")).json()
        self.assertEqual([r["id"] for r in body["time_off"]], [mine.pk])

        url = reverse("accounts:time_off_review", args=[mine.pk, "approve"])
        self.assertEqual(self.client.post(url).json()["status"], "approved")
        self.assertEqual(self.client.post(url).status_code, 409)
        self.assertEqual(
            self.client.post(reverse("accounts:time_off_review", args=[theirs.pk, "reject"])).status_code, 404
        )
        self.assertEqual(
            self.client.post(reverse("accounts:time_off_review", args=[mine.pk, "maybe"])).status_code, 404
        )
