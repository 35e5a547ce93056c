"""
Governed schedule commands.

The entry point views use for shift mutations. Each command asks the period
state machine whether the target week is locked:

  - not locked (or no governance) → apply through ShiftService
  - locked                        → file a ChangeRequest instead; the schedule
                                    itself is not touched

Usage:
    result = ScheduleCommands.update_shift(shift, {"start_time": "10:00"}, actor=user,
                                           reason_code="staffing_shortage")
    if result.applied:
        ...  # result.shift is the edited shift
    else:
        ...  # result.change_request awaits review
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from apps.scheduling.exceptions import GovernanceBlockedError, ShiftValidationError
from apps.scheduling.governance import ChangeRequestService, SchedulePeriodService
from apps.scheduling.models import ChangeRequest, Shift
from apps.scheduling.payloads import to_json
from apps.scheduling.services import ShiftService, clean_shift_data

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """
    Outcome of a governed command.

    Exactly one of shift/change_request is meaningful: applied=True means the
    schedule changed (shift is None after a delete), applied=False means a
    change request was filed.
    """

    applied: bool
    shift: Optional[Shift] = None
    change_request: Optional[ChangeRequest] = None
    warnings: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "applied": self.applied,
            "shift_id": self.shift.pk if self.shift else None,
            "revision": self.shift.revision if self.shift else None,
            "change_request_id": self.change_request.pk if self.change_request else None,
            "warnings": self.warnings,
        }


def _require_reason(reason_code: Optional[str]) -> str:
    if not reason_code:
        raise ShiftValidationError("This week is locked; a reason code is required.", field="reason_code")
    return reason_code


class ScheduleCommands:
    """Create, edit and delete shifts with schedule governance applied."""

    @staticmethod
    def create_shift(location, data: dict, *, actor, reason_code: Optional[str] = None, note: Optional[str] = None) -> CommandResult:
        values = clean_shift_data(data)
        try:
            SchedulePeriodService.guard(location, values["shift_date"])
        except GovernanceBlockedError as blocked:
            logger.info(
                "Create on locked week %s at %s redirected to a change request.", values["shift_date"], location.name
            )
            request = ChangeRequestService.submit(
                blocked.period,
                ChangeRequest.ChangeType.ADD,
                payload_before=None,
                payload_after=to_json(values),
                reason_code=_require_reason(reason_code),
                note=note,
                requested_by=actor,
            )
            return CommandResult(applied=False, change_request=request)

        shift = ShiftService.create_shift(location, data, created_by=actor)
        return CommandResult(applied=True, shift=shift)

    @staticmethod
    def update_shift(
        shift: Shift,
        changes: dict,
        *,
        actor,
        expected_revision: Optional[int] = None,
        reason_code: Optional[str] = None,
        note: Optional[str] = None,
    ) -> CommandResult:
        """
        Edit a shift. Moving a shift to another date is guarded on both the
        current and the new week.
        """
        cleaned = clean_shift_data(changes, partial=True)
        try:
            SchedulePeriodService.guard(shift.location, shift.shift_date)
            if "shift_date" in cleaned:
                SchedulePeriodService.guard(shift.location, cleaned["shift_date"])
        except GovernanceBlockedError as blocked:
            logger.info("Edit of shift %d on locked week redirected to a change request.", shift.pk)
            request = ChangeRequestService.submit(
                blocked.period,
                ChangeRequest.ChangeType.EDIT,
                target_shift=shift,
                payload_before=shift.snapshot(),
                payload_after=to_json(cleaned),
                reason_code=_require_reason(reason_code),
                note=note,
                requested_by=actor,
            )
            return CommandResult(
                applied=False, change_request=request, warnings=ChangeRequestService.proposal_warnings(request)
            )

        shift = ShiftService.update_shift(shift, changes, actor=actor, expected_revision=expected_revision)
        return CommandResult(applied=True, shift=shift, warnings=ShiftService.conflict_warnings(shift))

    @staticmethod
    def delete_shift(shift: Shift, *, actor, reason_code: Optional[str] = None, note: Optional[str] = None) -> CommandResult:
        try:
            SchedulePeriodService.guard(shift.location, shift.shift_date)
        except GovernanceBlockedError as blocked:
            logger.info("Delete of shift %d on locked week redirected to a change request.", shift.pk)
            request = ChangeRequestService.submit(
                blocked.period,
                ChangeRequest.ChangeType.DELETE,
                target_shift=shift,
                payload_before=shift.snapshot(),
                payload_after=None,
                reason_code=_require_reason(reason_code),
                note=note,
                requested_by=actor,
            )
            return CommandResult(applied=False, change_request=request)

        ShiftService.delete_shift(shift, actor=actor)
        return CommandResult(applied=True)
