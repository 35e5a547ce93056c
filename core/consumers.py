"""
WebSocket consumers for ShiftGuard's real-time features.

Two consumers:
  1. ScheduleConsumer: broadcasts schedule changes to everyone viewing a location
  2. UserConsumer: delivers personal notifications (assignments, decisions)

Channel group naming convention:
  - schedule_{location_id}: all viewers of a location's schedule
  - user_{user_id}: personal notification stream

Events are produced by apps.scheduling.signals after the database
transaction commits. All consumers require authentication; anonymous
connections are closed immediately.
"""

import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

logger = logging.getLogger(__name__)


class ScheduleConsumer(AsyncWebsocketConsumer):
    """
    WebSocket consumer for live schedule updates at a specific location.

    Clients join by connecting to /ws/schedule/{location_id}/.

    Events broadcast:
      - schedule_period.changed: the week was published, locked or unlocked
      - shift.updated: a shift was created, edited, published or deleted
      - shift.assignment.changed: an assignment was added, decided or removed
      - change_request.submitted: an edit to a locked week awaits review
    """

    async def connect(self) -> None:
        """
        Join the location's schedule group if the user may view it.

        Closes with 4001 for anonymous users and 4003 for users without
        access to the location.
        """
        self.location_id = self.scope["url_route"]["kwargs"]["location_id"]
        self.group_name = f"schedule_{self.location_id}"
        self.user = self.scope["user"]

        if not self.user.is_authenticated:
            logger.warning("Unauthenticated WebSocket connection attempt rejected.")
            await self.close(code=4001)
            return

        if not await self._user_can_access_location():
            logger.warning(
                "User %d attempted WebSocket access to location %s without permission.",
                self.user.pk,
                self.location_id,
            )
            await self.close(code=4003)
            return

        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

        logger.info(
            "User %d connected to schedule WebSocket for location %s.",
            self.user.pk,
            self.location_id,
        )

    async def disconnect(self, close_code: int) -> None:
        """
        Remove this consumer from the location's schedule group.

        Args:
            close_code: The WebSocket close code.
        """
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    # ------------------------------------------------------------------
    # Group event handlers (called by channel_layer.group_send)
    # ------------------------------------------------------------------

    async def schedule_period_changed(self, event: dict) -> None:
        """
        Handle a schedule_period.changed event and forward it to the client.

        Args:
            event: The event dict sent via group_send, carrying the new state.
        """
        await self._forward("schedule_period.changed", event, state=event.get("state"))

    async def shift_updated(self, event: dict) -> None:
        """
        Handle a shift.updated event and forward it to the client.

        Args:
            event: The event dict with the shift's action and id.
        """
        await self._forward("shift.updated", event)

    async def shift_assignment_changed(self, event: dict) -> None:
        """
        Handle an assignment change event and forward it to the client.

        Args:
            event: The event dict with the assignment's action and id.
        """
        await self._forward("shift.assignment.changed", event)

    async def change_request_submitted(self, event: dict) -> None:
        """
        Handle a change_request.submitted event and forward it to the client.

        Args:
            event: The event dict with the change request's id.
        """
        await self._forward("change_request.submitted", event)

    async def _forward(self, event_type: str, event: dict, **extra) -> None:
        """
        Send a group event to the browser as a typed JSON message.

        Args:
            event_type: The dotted message type the client listens for.
            event: The event dict from group_send.
            **extra: Additional fields to include; None values are dropped.
        """
        message = {
            "type": event_type,
            "location_id": int(self.location_id),
            "action": event["action"],
            "object_id": event["object_id"],
        }
        message.update({k: v for k, v in extra.items() if v is not None})
        await self.send(text_data=json.dumps(message))

    @database_sync_to_async
    def _user_can_access_location(self) -> bool:
        """
        Check whether the connected user may view this location's schedule.

        Owners and admins see every location, managers the ones they manage,
        staff their home location or any location they are assigned at.

        Returns:
            True if the user may join the location's group.
        """
        from apps.scheduling.models import ShiftAssignment

        user = self.user
        location_id = int(self.location_id)

        if user.can_unlock_periods:
            return True
        if user.is_manager:
            return user.managed_locations.filter(pk=location_id).exists()
        if user.home_location_id == location_id:
            return True
        return ShiftAssignment.objects.filter(employee=user, shift__location_id=location_id).exists()


class UserConsumer(AsyncWebsocketConsumer):
    """
    Personal WebSocket channel for a specific authenticated user.

    URL: /ws/user/
    Group: user_{user_id}
    """

    async def connect(self) -> None:
        """
        Join the user's personal group. Closes with 4001 for anonymous users.
        """
        self.user = self.scope["user"]

        if not self.user.is_authenticated:
            await self.close(code=4001)
            return

        self.group_name = f"user_{self.user.pk}"
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code: int) -> None:
        """
        Remove this consumer from the user's personal group.

        Args:
            close_code: The WebSocket close code.
        """
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive(self, text_data: str) -> None:
        """
        Handle client-to-server messages.

        Currently supports:
          - mark_read: mark a notification as read

        Args:
            text_data: JSON-encoded message from the browser.
        """
        try:
            data = json.loads(text_data)
        except json.JSONDecodeError:
            logger.warning("Invalid JSON received from user %d", self.user.pk)
            return

        if data.get("type") == "mark_read":
            notification_id = data.get("notification_id")
            if notification_id:
                await self._mark_notification_read(notification_id)

    async def notification(self, event: dict) -> None:
        """
        Forward a new notification to the client.

        Args:
            event: Notification.channel_payload(), sent unchanged.
        """
        await self.send(text_data=json.dumps(event))

    @database_sync_to_async
    def _mark_notification_read(self, notification_id: int) -> None:
        """
        Mark one of this user's notifications as read.

        Args:
            notification_id: Primary key of the notification.
        """
        from apps.notifications.models import Notification

        Notification.objects.filter(pk=notification_id, recipient=self.user).mark_read()
