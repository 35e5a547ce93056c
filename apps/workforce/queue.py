"""
The manager's approval queue.

One place to see and act on everything waiting for a decision:
pending shift claims, pending change requests and pending workforce
exceptions. Filters narrow the queue to a company, a location or a single
schedule period, or to a set of locations (a manager's own).
"""

import logging
from typing import Optional

from django.db import transaction
from django.utils import timezone

from apps.scheduling.exceptions import InvalidStateError, ShiftValidationError
from apps.scheduling.governance import ChangeRequestService
from apps.scheduling.models import ShiftAssignment
from apps.scheduling.services import AssignmentService
from apps.workforce.models import WorkforceException

logger = logging.getLogger(__name__)

RESOLUTION_STATUSES = (
    WorkforceException.Status.APPROVED,
    WorkforceException.Status.DENIED,
    WorkforceException.Status.RESOLVED,
)


class ApprovalQueue:
    """Read model over pending items plus the actions that clear them."""

    def __init__(self, company=None, location=None, period=None, locations=None):
        self.company = company
        self.location = location
        self.period = period
        self.locations = locations

    def pending_assignments(self):
        assignments = ShiftAssignment.objects.filter(
            approval_status=ShiftAssignment.Status.PENDING
        ).select_related("shift__location", "employee")
        if self.company is not None:
            assignments = assignments.filter(shift__location__company=self.company)
        if self.location is not None:
            assignments = assignments.filter(shift__location=self.location)
        if self.locations is not None:
            assignments = assignments.filter(shift__location__in=self.locations)
        if self.period is not None:
            assignments = assignments.filter(
                shift__location=self.period.location,
                shift__shift_date__range=(self.period.week_start_date, self.period.week_end_date),
            )
        return assignments.order_by("shift__shift_date", "shift__start_time")

    def pending_change_requests(self):
        requests = ChangeRequestService.pending(period=self.period, company=self.company, location=self.location)
        if self.locations is not None:
            requests = requests.filter(location__in=self.locations)
        return requests

    def pending_exceptions(self):
        exceptions = WorkforceException.objects.filter(
            status=WorkforceException.Status.PENDING
        ).select_related("employee", "location", "shift")
        if self.company is not None:
            exceptions = exceptions.filter(company=self.company)
        if self.location is not None:
            exceptions = exceptions.filter(location=self.location)
        if self.locations is not None:
            exceptions = exceptions.filter(location__in=self.locations)
        if self.period is not None:
            exceptions = exceptions.filter(
                location=self.period.location,
                shift_date__range=(self.period.week_start_date, self.period.week_end_date),
            )
        return exceptions.order_by("shift_date", "detected_at")

    def count(self) -> int:
        return (
            self.pending_assignments().count()
            + self.pending_change_requests().count()
            + self.pending_exceptions().count()
        )

    def as_dict(self) -> dict:
        """JSON-ready snapshot of the queue."""
        return {
            "count": self.count(),
            "assignments": [
                {
                    "id": a.pk,
                    "shift_id": a.shift_id,
                    "employee": a.employee.get_full_name(),
                    "location": a.shift.location.name,
                    "shift_date": a.shift.shift_date.isoformat(),
                    "start_time": a.shift.start_time.strftime("%H:%M"),
                    "end_time": a.shift.end_time.strftime("%H:%M"),
                }
                for a in self.pending_assignments()
            ],
            "change_requests": [
                {
                    "id": r.pk,
                    "change_type": r.change_type,
                    "location": r.location.name,
                    "week_start_date": r.period.week_start_date.isoformat(),
                    "reason_code": r.reason_code,
                    "note": r.note,
                    "requested_by": r.requested_by.get_full_name() if r.requested_by else None,
                    "payload_before": r.payload_before,
                    "payload_after": r.payload_after,
                }
                for r in self.pending_change_requests()
            ],
            "exceptions": [
                {
                    "id": e.pk,
                    "exception_type": e.exception_type,
                    "employee": e.employee.get_full_name(),
                    "location": e.location.name,
                    "shift_date": e.shift_date.isoformat(),
                    "metadata": e.metadata,
                }
                for e in self.pending_exceptions()
            ],
        }

    # -- actions -------------------------------------------------------------

    @staticmethod
    def approve_assignment(assignment, actor):
        return AssignmentService.approve_assignment(assignment, actor=actor)

    @staticmethod
    def reject_assignment(assignment, actor):
        return AssignmentService.reject_assignment(assignment, actor=actor)

    @staticmethod
    def approve_change_request(request, actor):
        return ChangeRequestService.approve(request, actor=actor)

    @staticmethod
    def deny_change_request(request, actor, note: Optional[str] = None):
        return ChangeRequestService.deny(request, actor=actor, note=note)

    @staticmethod
    @transaction.atomic
    def resolve_exception(exception: WorkforceException, status: str, actor, note: Optional[str] = None) -> WorkforceException:
        """
        Close a pending exception as approved, denied or resolved.

        Raises:
            ShiftValidationError: status is not a manager resolution.
            InvalidStateError: The exception is no longer pending.
        """
        if status not in RESOLUTION_STATUSES:
            raise ShiftValidationError(f"'{status}' is not a valid resolution.", field="status")

        exception = WorkforceException.objects.select_for_update().get(pk=exception.pk)
        if exception.status != WorkforceException.Status.PENDING:
            raise InvalidStateError(f"Exception {exception.pk} is already {exception.status}.")

        exception.status = status
        exception.resolved_by = actor
        exception.resolved_at = timezone.now()
        if note:
            exception.note = note
        exception.save(update_fields=["status", "resolved_by", "resolved_at", "note"])

        logger.info("Workforce exception %d %s by user %d.", exception.pk, status, actor.pk)
        return exception
