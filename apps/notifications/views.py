"""
Notifications views for ShiftGuard.

View inventory:
  NotificationCenterView → the current user's latest notifications (GET)
  mark_read              → POST: mark one or all notifications read
"""

import logging

from django.contrib.auth.decorators import login_required
from django.http import HttpRequest, JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.http import require_POST

from apps.notifications.models import Notification
from core.api import json_error

logger = logging.getLogger(__name__)

INBOX_SIZE = 50


@method_decorator(login_required, name="dispatch")
class NotificationCenterView(View):
    """Inbox for the current user, newest first. ``?unread=1`` hides read rows."""

    def get(self, request: HttpRequest) -> JsonResponse:
        qs = Notification.objects.filter(recipient=request.user)
        unread_count = qs.unread().count()
        if request.GET.get("unread") in ("1", "true"):
            qs = qs.unread()
        return JsonResponse({
            "unread_count": unread_count,
            "notifications": [n.as_dict() for n in qs[:INBOX_SIZE]],
        })


@login_required
@require_POST
def mark_read(request: HttpRequest) -> JsonResponse:
    """
    POST notification_id=<id> marks one notification, notification_id=all
    marks every unread one. Returns {"updated": n}.
    """
    notification_id = request.POST.get("notification_id", "")
    mine = Notification.objects.filter(recipient=request.user)

    if notification_id == "all":
        updated = mine.mark_read()
        logger.info("User %d marked all notifications read", request.user.pk)
    elif notification_id.isdigit():
        updated = mine.filter(pk=int(notification_id)).mark_read()
    else:
        return json_error("notification_id must be an id or 'all'.", 400, field="notification_id")

    return JsonResponse({"updated": updated})
