"""
Schedule governance for ShiftGuard.

Two services:

  SchedulePeriodService  → weekly publish/lock state machine per location
  ChangeRequestService   → proposals to change a locked week, and their review

Governance only exists for companies with enable_schedule_governance set.
For everyone else period_for_week() returns None, nothing is ever locked and
every edit is direct.

State machine (SchedulePeriod.state):

    draft ──publish──▶ published ──lock──▶ locked
      │                    ▲                 │
      └──publish_and_lock──┼────────────────▶│
                           └─────unlock──────┘   (owner/admin only)

There is no transition back to draft.
"""

import datetime
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.scheduling.exceptions import (
    AuthorizationError,
    GovernanceBlockedError,
    InvalidStateError,
    RevisionConflict,
    ShiftValidationError,
)
from apps.scheduling.models import ChangeRequest, SchedulePeriod, Shift
from apps.scheduling.payloads import AddShiftPayload, DeleteShiftPayload, EditShiftPayload, parse_payload
from apps.scheduling.services import (
    SHIFT_FIELDS,
    ShiftService,
    hours_warning,
    validate_shift_window,
)
from apps.scheduling.signals import schedule_changed

logger = logging.getLogger(__name__)

MIXED = "mixed"


def _config() -> dict:
    return settings.SHIFTGUARD


# ---------------------------------------------------------------------------
# Schedule periods
# ---------------------------------------------------------------------------


class SchedulePeriodService:
    """Weekly publish/lock workflow."""

    @staticmethod
    def week_start(day: datetime.date) -> datetime.date:
        """Return the first day of the week containing `day` (Monday by default)."""
        offset = (day.weekday() - _config()["WEEK_STARTS_ON"]) % 7
        return day - datetime.timedelta(days=offset)

    @staticmethod
    def period_for_week(location, day: datetime.date, *, create: bool = True) -> Optional[SchedulePeriod]:
        """
        Return the period covering `day` at `location`.

        Creates a draft period on first access when create is True. Returns
        None when the company has governance turned off.
        """
        if not location.company.enable_schedule_governance:
            return None
        week_start = SchedulePeriodService.week_start(day)
        if not create:
            return SchedulePeriod.objects.filter(location=location, week_start_date=week_start).first()
        period, created = SchedulePeriod.objects.get_or_create(
            location=location,
            week_start_date=week_start,
            defaults={"company": location.company},
        )
        if created:
            logger.debug("Created draft period for %s week of %s.", location.name, week_start)
        return period

    @staticmethod
    def periods_for_week(day: datetime.date, *, locations=None):
        """All periods for the week containing `day`, optionally limited to some locations."""
        periods = SchedulePeriod.objects.filter(
            week_start_date=SchedulePeriodService.week_start(day)
        ).select_related("location")
        if locations is not None:
            periods = periods.filter(location__in=locations)
        return periods

    @staticmethod
    def aggregate_state(periods: Iterable[SchedulePeriod]) -> str:
        """
        Collapse several periods into one state for display.

        Returns the shared state, "mixed" when they differ, or "draft" when
        there are no periods at all.
        """
        states = {p.state for p in periods}
        if not states:
            return SchedulePeriod.State.DRAFT
        if len(states) > 1:
            return MIXED
        return states.pop()

    @staticmethod
    def is_locked(location, day: datetime.date) -> bool:
        period = SchedulePeriodService.period_for_week(location, day, create=False)
        return period is not None and period.is_locked

    @staticmethod
    def guard(location, day: datetime.date) -> Optional[SchedulePeriod]:
        """
        Check that a direct edit on `day` is allowed.

        Returns:
            The (unlocked) period, or None without governance.

        Raises:
            GovernanceBlockedError: The week is locked.
        """
        period = SchedulePeriodService.period_for_week(location, day)
        if period is not None and period.is_locked:
            raise GovernanceBlockedError(period)
        return period

    # -- transitions ---------------------------------------------------------

    @staticmethod
    @transaction.atomic
    def publish(period: SchedulePeriod, actor, expected_revision: Optional[int] = None) -> SchedulePeriod:
        """draft → published. Also publishes the week's shifts."""
        period = SchedulePeriodService._begin(period, SchedulePeriod.State.DRAFT, "publish", expected_revision)
        now = timezone.now()
        period.state = SchedulePeriod.State.PUBLISHED
        period.published_at = now
        period.published_by = actor
        SchedulePeriodService._commit(period, actor, "schedule_period.published", SchedulePeriod.State.DRAFT)
        SchedulePeriodService._publish_week_shifts(period, actor)
        return period

    @staticmethod
    @transaction.atomic
    def lock(period: SchedulePeriod, actor, expected_revision: Optional[int] = None) -> SchedulePeriod:
        """published → locked."""
        period = SchedulePeriodService._begin(period, SchedulePeriod.State.PUBLISHED, "lock", expected_revision)
        period.state = SchedulePeriod.State.LOCKED
        period.locked_at = timezone.now()
        period.locked_by = actor
        SchedulePeriodService._commit(period, actor, "schedule_period.locked", SchedulePeriod.State.PUBLISHED)
        return period

    @staticmethod
    @transaction.atomic
    def publish_and_lock(period: SchedulePeriod, actor, expected_revision: Optional[int] = None) -> SchedulePeriod:
        """draft → locked in one step, stamping both publish and lock."""
        period = SchedulePeriodService._begin(period, SchedulePeriod.State.DRAFT, "publish and lock", expected_revision)
        now = timezone.now()
        period.state = SchedulePeriod.State.LOCKED
        period.published_at = now
        period.published_by = actor
        period.locked_at = now
        period.locked_by = actor
        SchedulePeriodService._commit(period, actor, "schedule_period.published_and_locked", SchedulePeriod.State.DRAFT)
        SchedulePeriodService._publish_week_shifts(period, actor)
        return period

    @staticmethod
    @transaction.atomic
    def unlock(period: SchedulePeriod, actor, expected_revision: Optional[int] = None) -> SchedulePeriod:
        """
        locked → published. Owners and admins only.

        Raises:
            AuthorizationError: The actor is not an owner or admin.
            InvalidStateError: The period is not locked.
        """
        if actor is None or not actor.can_unlock_periods:
            logger.warning(
                "User %s tried to unlock period %d without permission.", getattr(actor, "pk", None), period.pk
            )
            raise AuthorizationError("Only owners and admins can unlock a schedule.")
        period = SchedulePeriodService._begin(period, SchedulePeriod.State.LOCKED, "unlock", expected_revision)
        period.state = SchedulePeriod.State.PUBLISHED
        period.locked_at = None
        period.locked_by = None
        SchedulePeriodService._commit(period, actor, "schedule_period.unlocked", SchedulePeriod.State.LOCKED)
        return period

    @staticmethod
    def auto_lock_due_periods(now: Optional[datetime.datetime] = None) -> list[int]:
        """Lock every published period whose auto_lock_at has passed. Returns their ids."""
        now = now or timezone.now()
        due = SchedulePeriod.objects.filter(
            state=SchedulePeriod.State.PUBLISHED, auto_lock_at__isnull=False, auto_lock_at__lte=now
        )
        locked = []
        for period in due:
            try:
                SchedulePeriodService.lock(period, actor=None)
            except InvalidStateError:
                # Changed state since the query ran
                continue
            locked.append(period.pk)
        if locked:
            logger.info("Auto-locked %d schedule period(s).", len(locked))
        return locked

    @staticmethod
    def _begin(period: SchedulePeriod, required: str, verb: str, expected_revision: Optional[int]) -> SchedulePeriod:
        period = SchedulePeriod.objects.select_for_update(of=("self",)).select_related("location").get(pk=period.pk)
        if expected_revision is not None and int(expected_revision) != period.revision:
            raise RevisionConflict(period, int(expected_revision))
        if period.state != required:
            raise InvalidStateError(f"Cannot {verb} a {period.state} schedule (must be {required}).")
        return period

    @staticmethod
    def _commit(period: SchedulePeriod, actor, action: str, previous: str) -> None:
        period.revision += 1
        period.save()
        logger.info(
            "Period %d (%s, week of %s) %s → %s by user %s.",
            period.pk, period.location.name, period.week_start_date, previous, period.state,
            getattr(actor, "pk", None),
        )
        schedule_changed.send(
            sender=SchedulePeriod, action=action, instance=period, actor=actor,
            before={"state": previous}, after={"state": period.state},
        )

    @staticmethod
    def _publish_week_shifts(period: SchedulePeriod, actor) -> None:
        shift_ids = Shift.objects.filter(
            location=period.location,
            shift_date__range=(period.week_start_date, period.week_end_date),
            is_published=False,
        ).values_list("pk", flat=True)
        ShiftService.bulk_publish(
            list(shift_ids), actor=actor, exclude_past=_config()["PUBLISH_WEEK_EXCLUDES_PAST"]
        )


# ---------------------------------------------------------------------------
# Change requests
# ---------------------------------------------------------------------------


@dataclass
class ChangeRequestOutcome:
    """Result of approving a change request."""

    request: ChangeRequest
    shift: Optional[Shift] = None
    warnings: list[str] = field(default_factory=list)


class ChangeRequestService:
    """
    Submission and review of changes to locked weeks.

    Submissions are validated as strictly as a direct edit would be. Approval
    applies the stored payload through ShiftService; operating hours are
    checked again at that point but only reported, since the schedule or the
    opening hours may have moved on since submission.
    """

    @staticmethod
    @transaction.atomic
    def submit(
        period: SchedulePeriod,
        change_type: str,
        *,
        target_shift: Optional[Shift] = None,
        payload_before: Optional[dict] = None,
        payload_after: Optional[dict] = None,
        reason_code: str,
        note: Optional[str] = None,
        requested_by,
    ) -> ChangeRequest:
        """
        File a pending change request against a period.

        Raises:
            ShiftValidationError: Bad reason code, missing note, malformed
                payload, or a proposed shift that breaks a scheduling rule.
        """
        from apps.workforce.services import effective_policy

        note = (note or "").strip()
        if reason_code not in ChangeRequest.ReasonCode.values:
            raise ShiftValidationError(f"'{reason_code}' is not a valid reason code.", field="reason_code")

        policy = effective_policy(period.company, period.location)
        if (
            policy.require_reason_on_locked_edits
            and reason_code == ChangeRequest.ReasonCode.OTHER
            and not note
        ):
            raise ShiftValidationError("Please describe the reason for this change.", field="note")

        payload = parse_payload(change_type, payload_after)
        if change_type in (ChangeRequest.ChangeType.EDIT, ChangeRequest.ChangeType.DELETE):
            if target_shift is None:
                raise ShiftValidationError("This change needs a target shift.", field="target_shift")
            if target_shift.location_id != period.location_id:
                raise ShiftValidationError("Target shift belongs to another location.", field="target_shift")
            if payload_before is None:
                payload_before = target_shift.snapshot()

        ChangeRequestService._validate_payload(period, payload, target_shift)

        request = ChangeRequest.objects.create(
            company=period.company,
            location=period.location,
            period=period,
            change_type=change_type,
            target_shift=target_shift,
            payload_before=payload_before,
            payload_after=payload.as_json(),
            reason_code=reason_code,
            note=note,
            requested_by=requested_by,
        )
        logger.info(
            "Change request %d (%s) submitted for period %d by user %s.",
            request.pk, change_type, period.pk, getattr(requested_by, "pk", None),
        )
        schedule_changed.send(
            sender=ChangeRequest, action="change_request.submitted", instance=request, actor=requested_by,
            after={"change_type": change_type, "payload_after": request.payload_after}, note=note,
        )
        return request

    @staticmethod
    def _validate_payload(period: SchedulePeriod, payload, target_shift: Optional[Shift]) -> None:
        if isinstance(payload, DeleteShiftPayload):
            return
        if isinstance(payload, AddShiftPayload):
            values = payload.values()
        else:
            values = {name: getattr(target_shift, name) for name in SHIFT_FIELDS}
            values.update(payload.values())
        # an edit may move a shift out of, or into, the period's week
        in_week = period.contains(values["shift_date"]) or (
            target_shift is not None and period.contains(target_shift.shift_date)
        )
        if not in_week:
            raise ShiftValidationError(
                f"{values['shift_date']} is outside the week of {period.week_start_date}.", field="shift_date"
            )
        validate_shift_window(period.location, values)

    @staticmethod
    def proposal_warnings(request: ChangeRequest) -> list[str]:
        """
        Overlaps the proposed edit would create for the target's assignees.

        Advisory only; add and delete requests never conflict.
        """
        if request.change_type != ChangeRequest.ChangeType.EDIT or request.target_shift is None:
            return []
        payload = parse_payload(request.change_type, request.payload_after)
        return ShiftService.conflict_warnings(request.target_shift, payload.values())

    @staticmethod
    @transaction.atomic
    def approve(request: ChangeRequest, *, actor) -> ChangeRequestOutcome:
        """
        Apply a pending request and mark it approved.

        add → create the shift; edit → update the target; delete → delete the
        target and its assignments.

        Raises:
            InvalidStateError: The request is no longer pending.
            ShiftValidationError: The edit target has disappeared, or the
                payload no longer forms a valid shift.
        """
        request = ChangeRequestService._lock_pending(request)
        payload = parse_payload(request.change_type, request.payload_after)
        location = request.location
        warnings = []
        shift = None

        if isinstance(payload, AddShiftPayload):
            values = payload.values()
            warnings.extend(ChangeRequestService._hours_warnings(location, values))
            shift = ShiftService.create_shift(location, values, created_by=actor, enforce_hours=False)
        elif isinstance(payload, EditShiftPayload):
            if request.target_shift is None:
                raise ShiftValidationError("The shift this request edits no longer exists.", field="target_shift")
            values = {name: getattr(request.target_shift, name) for name in SHIFT_FIELDS}
            values.update(payload.values())
            warnings.extend(ChangeRequestService._hours_warnings(location, values))
            shift = ShiftService.update_shift(
                request.target_shift, payload.values(), actor=actor, enforce_hours=False
            )
        elif request.target_shift is not None:
            ShiftService.delete_shift(request.target_shift, actor=actor)
        else:
            warnings.append("The shift had already been deleted.")

        if shift is not None:
            warnings.extend(ShiftService.conflict_warnings(shift))

        request.status = ChangeRequest.Status.APPROVED
        request.reviewed_by = actor
        request.reviewed_at = timezone.now()
        request.applied_shift = shift
        request.save(update_fields=["status", "reviewed_by", "reviewed_at", "applied_shift"])

        logger.info("Change request %d approved by user %d (%d warning(s)).", request.pk, actor.pk, len(warnings))
        schedule_changed.send(
            sender=ChangeRequest, action="change_request.approved", instance=request, actor=actor,
            before={"status": ChangeRequest.Status.PENDING}, after={"status": request.status},
        )
        return ChangeRequestOutcome(request=request, shift=shift, warnings=warnings)

    @staticmethod
    @transaction.atomic
    def deny(request: ChangeRequest, *, actor, note: Optional[str] = None) -> ChangeRequest:
        """Mark a pending request denied. The schedule is left untouched."""
        request = ChangeRequestService._lock_pending(request)
        request.status = ChangeRequest.Status.DENIED
        request.reviewed_by = actor
        request.reviewed_at = timezone.now()
        request.save(update_fields=["status", "reviewed_by", "reviewed_at"])

        logger.info("Change request %d denied by user %d.", request.pk, actor.pk)
        schedule_changed.send(
            sender=ChangeRequest, action="change_request.denied", instance=request, actor=actor,
            before={"status": ChangeRequest.Status.PENDING}, after={"status": request.status}, note=note or "",
        )
        return request

    @staticmethod
    def pending(period: Optional[SchedulePeriod] = None, company=None, location=None):
        """Pending requests, oldest first, optionally narrowed."""
        requests = ChangeRequest.objects.filter(status=ChangeRequest.Status.PENDING).select_related(
            "location", "period", "target_shift", "requested_by"
        )
        if period is not None:
            requests = requests.filter(period=period)
        if company is not None:
            requests = requests.filter(company=company)
        if location is not None:
            requests = requests.filter(location=location)
        return requests.order_by("requested_at")

    @staticmethod
    def _lock_pending(request: ChangeRequest) -> ChangeRequest:
        request = (
            ChangeRequest.objects.select_for_update(of=("self",))
            .select_related("location", "target_shift")
            .get(pk=request.pk)
        )
        if request.status != ChangeRequest.Status.PENDING:
            raise InvalidStateError(f"Change request {request.pk} is already {request.status}.")
        return request

    @staticmethod
    def _hours_warnings(location, values: dict) -> list[str]:
        if not _config()["REVALIDATE_ON_APPROVAL"]:
            return []
        reason = hours_warning(location, values)
        return [reason] if reason else []
