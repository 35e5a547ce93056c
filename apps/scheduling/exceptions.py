"""
Scheduling error taxonomy.

Views translate these into HTTP responses (see core.api.JsonErrorMixin):
  ShiftValidationError          → 400
  InvalidStateError             → 409
  RevisionConflict              → 409
  AuthorizationError            → 403 (also a PermissionDenied)

GovernanceBlockedError never reaches a view: ScheduleCommands catches it and
turns the mutation into a change request.
"""

from django.core.exceptions import PermissionDenied


class SchedulingError(Exception):
    """Base class for every scheduling rule violation."""


class ShiftValidationError(SchedulingError):
    """
    Input cannot be accepted: outside operating hours, location closed,
    missing or invalid field, unknown reason code, malformed payload.
    """

    def __init__(self, reason: str, field: str = ""):
        super().__init__(reason)
        self.reason = reason
        self.field = field


class ConflictWarning(SchedulingError):
    """Advisory conflict; reported alongside a successful result."""


class RevisionConflict(ConflictWarning):
    """The caller edited a stale copy (expected_revision did not match)."""

    def __init__(self, obj, expected: int):
        super().__init__(
            f"{obj._meta.verbose_name} {obj.pk} is at revision {obj.revision}, "
            f"not {expected}. Reload and try again."
        )
        self.obj = obj
        self.expected = expected


class GovernanceBlockedError(SchedulingError):
    """The target week is locked; the mutation must become a change request."""

    def __init__(self, period):
        super().__init__(f"Schedule for week of {period.week_start_date} is locked.")
        self.period = period


class InvalidStateError(SchedulingError):
    """A state transition that the state machine does not allow."""


class AuthorizationError(SchedulingError, PermissionDenied):
    """The actor's role does not permit this action."""
