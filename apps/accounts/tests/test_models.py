import datetime

from django.db import IntegrityError
from django.test import TestCase

from apps.accounts.models import TimeOffRequest, User


class UserModelTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            email="Test@Example.com",
            password="pass123",
            first_name="Test",
            last_name="User",
            role=User.Role.STAFF,
        )

    def test_user_str(self):
        self.assertIn("Test User", str(self.user))
        self.assertIn("Staff", str(self.user))

    def test_email_domain_is_normalized(self):
        self.assertEqual(self.user.email, "Test@example.com")

    def test_role_properties(self):
        self.assertTrue(self.user.is_staff_member)
        self.assertFalse(self.user.is_admin)
        self.assertFalse(self.user.can_manage_schedules)
        self.assertFalse(self.user.can_unlock_periods)

    def test_manager_and_admin_capabilities(self):
        manager = User.objects.create_user(email="m@example.com", password="pass123", role=User.Role.MANAGER)
        admin = User.objects.create_user(email="a@example.com", password="pass123", role=User.Role.ADMIN)
        self.assertTrue(manager.can_manage_schedules)
        self.assertFalse(manager.can_unlock_periods)
        self.assertTrue(admin.can_unlock_periods)

    def test_superuser_is_owner(self):
        owner = User.objects.create_superuser(email="o@example.com", password="pass123")
        self.assertTrue(owner.is_owner)
        self.assertTrue(owner.is_staff)

    def test_email_required(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email="", password="pass123")

    def test_get_full_and_short_name(self):
        self.assertEqual(self.user.get_full_name(), "Test User")
        self.assertEqual(self.user.get_short_name(), "Test")


class TimeOffRequestModelTests(TestCase):
    def setUp(self):
        self.employee = User.objects.create_user(email="e@example.com", password="pass123", first_name="Eve")
        self.manager = User.objects.create_user(email="m@example.com", password="pass123", role=User.Role.MANAGER)
        self.request = TimeOffRequest.objects.create(
            employee=self.employee, start_date=datetime.date(2030, 1, 7), end_date=datetime.date(2030, 1, 9)
        )

    def test_covers_is_inclusive(self):
        self.assertTrue(self.request.covers(datetime.date(2030, 1, 7)))
        self.assertTrue(self.request.covers(datetime.date(2030, 1, 9)))
        self.assertFalse(self.request.covers(datetime.date(2030, 1, 10)))

    def test_review_only_once(self):
        self.request.review(True, reviewed_by=self.manager)
        self.assertEqual(self.request.status, TimeOffRequest.Status.APPROVED)
        self.assertIsNotNone(self.request.reviewed_at)
        with self.assertRaises(ValueError):
            self.request.review(False, reviewed_by=self.manager)

    def test_end_before_start_rejected_by_database(self):
        with self.assertRaises(IntegrityError):
            TimeOffRequest.objects.create(
                employee=self.employee, start_date=datetime.date(2030, 1, 9), end_date=datetime.date(2030, 1, 7)
            )
