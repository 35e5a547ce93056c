import datetime

from django.test import TestCase
from django.urls import reverse

from apps.accounts.models import User
from apps.locations.models import Company, Location


class TestLaborCostView(TestCase):
    def setUp(self):
        company = Company.objects.create(name="Acme")
        self.location = Location.objects.create(company=company, name="Downtown")
        self.elsewhere = Location.objects.create(company=company, name="Harbor")
        self.manager = User.objects.create_user(email="m@example.com", password="pass123", role=User.Role.MANAGER)
        self.location.managers.add(self.manager)
        self.client.force_login(self.manager)
        self.url = reverse("analytics:labor_cost")

    def test_single_day(self):
        body = self.client.get(self.url, {"location": self.location.pk, "date": "2030-01-07"}).json()
        self.assertEqual(body["date"], "2030-01-07")
        self.assertEqual(body["scheduled_cost"], "0.00")
        self.assertIsNone(body["labor_percentage"])

    def test_range(self):
        body = self.client.get(self.url, {"location": self.location.pk, "start": "2030-01-07", "end": "2030-01-09"}).json()
        self.assertEqual(len(body["days"]), 3)

    def test_range_limits(self):
        start = datetime.date(2030, 1, 1)
        too_long = {"location": self.location.pk, "start": start.isoformat(), "end": (start + datetime.timedelta(days=93)).isoformat()}
        self.assertEqual(self.client.get(self.url, too_long).status_code, 400)
        backwards = {"location": self.location.pk, "start": "2030-01-09", "end": "2030-01-07"}
        self.assertEqual(self.client.get(self.url, backwards).status_code, 400)

    def test_missing_location_and_unmanaged_location(self):
        self.assertEqual(self.client.get(self.url, {"date": "2030-01-07"}).status_code, 400)
        self.assertEqual(self.client.get(self.url, {"location": self.elsewhere.pk, "date": "2030-01-07"}).status_code, 403)
