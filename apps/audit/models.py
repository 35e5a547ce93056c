"""
Audit trail for ShiftGuard.

Rows are written by the schedule_changed receiver inside the transaction
of the change itself, so a rolled back change leaves no audit row behind.
Entries are append-only.
"""

from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models


class AuditLog(models.Model):
    """
    One schedule event: who did it, to what, and the state on either side.

    ``action`` is "<model>.<event>", e.g. "shift.updated",
    "shift_assignment.rejected", "schedule_period.unlocked",
    "change_request.approved" or "time_off_request.approved".
    ``location`` is denormalised from the changed object so a location's
    history survives deletion of its shifts.
    """

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_actions",
    )
    action = models.CharField(max_length=100, db_index=True)

    location = models.ForeignKey(
        "locations.Location",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_entries",
    )
    content_type = models.ForeignKey(ContentType, on_delete=models.SET_NULL, null=True, blank=True)
    object_id = models.PositiveBigIntegerField(null=True, blank=True)
    content_object = GenericForeignKey("content_type", "object_id")

    # Empty before for creations, empty after for deletions
    before = models.JSONField(default=dict, blank=True)
    after = models.JSONField(default=dict, blank=True)

    # Reason code and note of a change request, or the reviewer's note
    note = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = "Audit Log Entry"
        verbose_name_plural = "Audit Log"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["content_type", "object_id"]),
            models.Index(fields=["location", "-created_at"]),
            models.Index(fields=["action", "-created_at"]),
        ]

    def __str__(self) -> str:
        return f"[{self.created_at:%Y-%m-%d %H:%M}] {self.actor_name} → {self.action}"

    @property
    def actor_name(self) -> str:
        return self.actor.get_full_name() if self.actor else "System"

    def save(self, *args, **kwargs):
        if self.pk:
            raise RuntimeError("AuditLog entries are immutable and cannot be updated.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise RuntimeError("AuditLog entries are immutable and cannot be deleted.")

    def as_dict(self) -> dict:
        return {
            "id": self.pk,
            "created_at": self.created_at.isoformat(),
            "actor": self.actor_name,
            "action": self.action,
            "location_id": self.location_id,
            "model": self.content_type.model if self.content_type else None,
            "object_id": self.object_id,
            "before": self.before,
            "after": self.after,
            "note": self.note,
        }
