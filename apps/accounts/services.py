"""
Time off workflow.

Staff submit requests; managers approve or reject them. Only approved
requests matter to scheduling (see apps.scheduling.constraints.find_time_off
and apps.scheduling.queries.visible_assignments).
"""

import datetime
import logging
from typing import Optional

from django.db import transaction

from apps.accounts.models import TimeOffRequest
from apps.scheduling.exceptions import InvalidStateError, ShiftValidationError
from apps.scheduling.signals import schedule_changed

logger = logging.getLogger(__name__)


class TimeOffService:
    """Service object for time off requests."""

    @staticmethod
    @transaction.atomic
    def submit(
        employee,
        start_date: datetime.date,
        end_date: datetime.date,
        request_type: str = TimeOffRequest.Type.VACATION,
        reason: Optional[str] = None,
    ) -> TimeOffRequest:
        """
        File a pending time off request.

        Raises:
            ShiftValidationError: Bad range, unknown type, or an overlapping
                pending/approved request already exists.
        """
        if end_date < start_date:
            raise ShiftValidationError("end_date must not be before start_date.", field="end_date")
        if request_type not in TimeOffRequest.Type.values:
            raise ShiftValidationError(f"'{request_type}' is not a valid request type.", field="request_type")

        overlapping = TimeOffRequest.objects.filter(
            employee=employee,
            status__in=[TimeOffRequest.Status.PENDING, TimeOffRequest.Status.APPROVED],
            start_date__lte=end_date,
            end_date__gte=start_date,
        )
        if overlapping.exists():
            raise ShiftValidationError("You already have time off requested for these dates.", field="start_date")

        request = TimeOffRequest.objects.create(
            employee=employee,
            start_date=start_date,
            end_date=end_date,
            request_type=request_type,
            reason=(reason or "").strip(),
        )
        logger.info("Time off request %d submitted by user %d (%s → %s).", request.pk, employee.pk, start_date, end_date)
        return request

    @staticmethod
    @transaction.atomic
    def review(request: TimeOffRequest, *, approved: bool, actor) -> TimeOffRequest:
        """
        Approve or reject a pending request and tell the employee.

        Raises:
            InvalidStateError: The request was already reviewed.
        """
        request = TimeOffRequest.objects.select_for_update().get(pk=request.pk)
        try:
            request.review(approved, reviewed_by=actor)
        except ValueError as exc:
            raise InvalidStateError(str(exc)) from exc

        logger.info("Time off request %d %s by user %d.", request.pk, request.status, actor.pk)
        schedule_changed.send(
            sender=TimeOffRequest, action=f"time_off_request.{request.status}", instance=request, actor=actor,
            before={"status": TimeOffRequest.Status.PENDING}, after={"status": request.status},
        )
        return request
