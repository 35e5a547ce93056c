"""
Schedule change signal and its side effects.

Services send `schedule_changed` after every committed-to-be mutation:

    schedule_changed.send(
        sender=Shift, action="shift.updated", instance=shift, actor=user,
        before={...}, after={...}, note="",
    )

Receivers here:
  record_audit_entry        → one immutable AuditLog row per event
  notify_participants       → persisted Notification + push to user_{id}
  broadcast_schedule_change → push to the location's schedule_{id} group

WebSocket pushes run on transaction commit so clients never see a change
that was rolled back.
"""

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.contrib.contenttypes.models import ContentType
from django.db import transaction
from django.dispatch import Signal, receiver

logger = logging.getLogger(__name__)

schedule_changed = Signal()

# action prefix → WebSocket event type sent to schedule_{location_id}
BROADCAST_EVENTS = {
    "shift.": "shift.updated",
    "shift_assignment.": "shift.assignment.changed",
    "schedule_period.": "schedule_period.changed",
    "change_request.submitted": "change_request.submitted",
}


def ws_broadcast(group: str, payload: dict) -> None:
    """
    Fire-and-forget channel layer group_send from synchronous code.

    Failures are logged; a WebSocket glitch must never break the HTTP response.

    Args:
        group:   Channel group name (e.g. "schedule_3", "user_7").
        payload: Dict passed to group_send; its "type" key names the consumer
                 handler (dots converted to underscores by Channels).
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    try:
        async_to_sync(channel_layer.group_send)(group, payload)
    except Exception as exc:  # pragma: no cover (Redis may be down)
        logger.warning("WebSocket broadcast to group '%s' failed: %s", group, exc)


def _location_id(instance):
    if hasattr(instance, "location_id"):
        return instance.location_id
    shift = getattr(instance, "shift", None)
    return shift.location_id if shift is not None else None


@receiver(schedule_changed, dispatch_uid="scheduling.record_audit_entry")
def record_audit_entry(sender, action, instance, actor=None, before=None, after=None, note="", **kwargs):
    """Write the immutable audit trail row for a schedule event."""
    from apps.audit.models import AuditLog

    AuditLog.objects.create(
        actor=actor,
        action=action,
        location_id=_location_id(instance),
        content_type=ContentType.objects.get_for_model(sender),
        object_id=instance.pk,
        before=before or {},
        after=after or {},
        note=note or "",
    )


@receiver(schedule_changed, dispatch_uid="scheduling.notify_participants")
def notify_participants(sender, action, instance, actor=None, **kwargs):
    """Tell assignees and requesters about decisions that affect them."""
    from apps.notifications.models import Notification

    if action == "shift_assignment.created" and instance.approval_status == "approved":
        recipients = [instance.employee]
        notification_type = Notification.Type.SHIFT_ASSIGNED
        title = "New Shift Assigned"
        body = f"You have been assigned to {instance.shift}."
        data = {"shift_id": instance.shift_id, "assignment_id": instance.pk}
    elif action in ("shift_assignment.approved", "shift_assignment.rejected"):
        approved = action.endswith("approved")
        recipients = [instance.employee]
        notification_type = Notification.Type.ASSIGNMENT_APPROVED if approved else Notification.Type.ASSIGNMENT_REJECTED
        title = "Shift Claim Approved" if approved else "Shift Claim Rejected"
        body = f"Your request to work {instance.shift} was {'approved' if approved else 'rejected'}."
        data = {"shift_id": instance.shift_id, "assignment_id": instance.pk}
    elif action in ("shift.updated", "shift.published"):
        recipients = [
            a.employee for a in instance.assignments.filter(approval_status="approved").select_related("employee")
        ]
        if action == "shift.updated":
            notification_type = Notification.Type.SHIFT_CHANGED
            title = "Shift Changed"
            body = f"Your shift has changed: {instance}."
        else:
            notification_type = Notification.Type.SHIFT_PUBLISHED
            title = "Shift Published"
            body = f"Your shift {instance} is now on the published schedule."
        data = {"shift_id": instance.pk}
    elif action == "change_request.submitted":
        recipients = [m for m in instance.location.managers.all() if m.pk != getattr(actor, "pk", None)]
        notification_type = Notification.Type.CHANGE_REQUEST_SUBMITTED
        title = "Change Request Awaiting Review"
        body = f"{instance.get_change_type_display()} requested for the locked week of {instance.period.week_start_date}."
        data = {"change_request_id": instance.pk}
    elif action in ("change_request.approved", "change_request.denied") and instance.requested_by_id:
        approved = action.endswith("approved")
        recipients = [instance.requested_by]
        notification_type = (
            Notification.Type.CHANGE_REQUEST_APPROVED if approved else Notification.Type.CHANGE_REQUEST_DENIED
        )
        title = "Change Request Approved" if approved else "Change Request Denied"
        body = f"Your {instance.get_change_type_display().lower()} request was {'approved' if approved else 'denied'}."
        data = {"change_request_id": instance.pk}
    elif action in ("time_off_request.approved", "time_off_request.rejected"):
        recipients = [instance.employee]
        notification_type = Notification.Type.TIME_OFF_REVIEWED
        title = "Time Off Reviewed"
        body = (
            f"Your time off from {instance.start_date} to {instance.end_date} "
            f"was {instance.get_status_display().lower()}."
        )
        data = {"time_off_request_id": instance.pk}
    else:
        return

    for recipient in recipients:
        notification = Notification.objects.create(
            recipient=recipient,
            notification_type=notification_type,
            title=title,
            body=body,
            data=data,
        )
        transaction.on_commit(
            lambda r=recipient.pk, p=notification.channel_payload(): ws_broadcast(f"user_{r}", p)
        )


@receiver(schedule_changed, dispatch_uid="scheduling.broadcast_schedule_change")
def broadcast_schedule_change(sender, action, instance, **kwargs):
    """Push a live update to everyone viewing the affected location's schedule."""
    event = next((e for prefix, e in BROADCAST_EVENTS.items() if action.startswith(prefix)), None)
    location_id = _location_id(instance)
    if event is None or location_id is None:
        return

    payload = {"type": event, "action": action, "object_id": instance.pk}
    if hasattr(instance, "state"):
        payload["state"] = instance.state
    transaction.on_commit(lambda: ws_broadcast(f"schedule_{location_id}", payload))
