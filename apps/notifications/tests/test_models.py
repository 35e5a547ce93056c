import datetime

from django.test import TestCase

from apps.accounts.models import User
from apps.notifications.models import Notification


class TestNotificationModel(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            email="notify@example.com",
            password="pass123",
            first_name="Notify",
            last_name="Tester",
        )
        self.notification = Notification.objects.create(
            recipient=self.user,
            notification_type=Notification.Type.SHIFT_PUBLISHED,
            title="Shift Published",
            body="Your shift is now on the published schedule.",
            data={"shift_id": 1},
        )

    def test_str_and_serialisation(self):
        self.assertIn("Schedule Published", str(self.notification))
        self.assertIn("Notify", str(self.notification))
        self.assertEqual(self.notification.as_dict()["data"], {"shift_id": 1})
        self.assertEqual(self.notification.channel_payload(), {
            "type": "notification",
            "notification_id": self.notification.pk,
            "notification_type": "shift_published",
            "title": "Shift Published",
            "body": "Your shift is now on the published schedule.",
        })

    def test_mark_read_is_idempotent(self):
        self.notification.mark_read()
        self.notification.refresh_from_db()
        self.assertTrue(self.notification.is_read)
        self.assertLessEqual(self.notification.read_at, datetime.datetime.now(datetime.timezone.utc))

        first_read = self.notification.read_at
        self.notification.mark_read()
        self.assertEqual(self.notification.read_at, first_read)

    def test_queryset_mark_read_only_touches_unread(self):
        Notification.objects.create(
            recipient=self.user, notification_type=Notification.Type.CHANGE_REQUEST_DENIED, title="t", body="b"
        )
        self.notification.mark_read()
        self.assertEqual(Notification.objects.unread().count(), 1)
        self.assertEqual(Notification.objects.filter(recipient=self.user).mark_read(), 1)
        self.assertEqual(Notification.objects.unread().count(), 0)
