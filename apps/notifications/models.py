"""
Notifications for ShiftGuard.

Notifications are created only by the schedule_changed receivers in
apps.scheduling.signals and pushed to the recipient's user_{id} group
once the transaction commits.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class NotificationQuerySet(models.QuerySet):
    def unread(self):
        return self.filter(is_read=False)

    def mark_read(self) -> int:
        """Mark every unread row in the queryset read; returns the count."""
        return self.unread().update(is_read=True, read_at=timezone.now())


class Notification(models.Model):
    """
    A message for one user about a decision or change affecting them.

    ``data`` holds the ids a client needs to link back to the object
    (shift_id, assignment_id, change_request_id, time_off_request_id).
    """

    class Type(models.TextChoices):
        # To the employee
        SHIFT_ASSIGNED = "shift_assigned", _("Shift Assigned")
        SHIFT_CHANGED = "shift_changed", _("Shift Changed")
        SHIFT_PUBLISHED = "shift_published", _("Schedule Published")
        ASSIGNMENT_APPROVED = "assignment_approved", _("Shift Claim Approved")
        ASSIGNMENT_REJECTED = "assignment_rejected", _("Shift Claim Rejected")
        TIME_OFF_REVIEWED = "time_off_reviewed", _("Time Off Reviewed")
        # To the requester
        CHANGE_REQUEST_APPROVED = "change_request_approved", _("Change Request Approved")
        CHANGE_REQUEST_DENIED = "change_request_denied", _("Change Request Denied")
        # To the location's managers
        CHANGE_REQUEST_SUBMITTED = "change_request_submitted", _("Change Request Awaiting Review")

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    notification_type = models.CharField(max_length=30, choices=Type.choices)
    title = models.CharField(max_length=200)
    body = models.TextField()
    data = models.JSONField(default=dict, blank=True)

    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = NotificationQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["recipient", "is_read"]),
            models.Index(fields=["recipient", "-created_at"]),
        ]

    def __str__(self) -> str:
        return f"[{self.get_notification_type_display()}] → {self.recipient.get_short_name()}"

    def mark_read(self) -> None:
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=["is_read", "read_at"])

    def as_dict(self) -> dict:
        return {
            "id": self.pk,
            "notification_type": self.notification_type,
            "title": self.title,
            "body": self.body,
            "data": self.data,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat(),
        }

    def channel_payload(self) -> dict:
        """Group message handled by UserConsumer.notification."""
        return {
            "type": "notification",
            "notification_id": self.pk,
            "notification_type": self.notification_type,
            "title": self.title,
            "body": self.body,
        }
