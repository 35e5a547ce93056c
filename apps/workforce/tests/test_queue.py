import datetime

from django.test import TestCase

from apps.accounts.models import User
from apps.locations.models import Company, Location
from apps.scheduling.exceptions import InvalidStateError, ShiftValidationError
from apps.scheduling.governance import ChangeRequestService, SchedulePeriodService
from apps.scheduling.models import ChangeRequest, Shift, ShiftAssignment
from apps.workforce.models import WorkforceException
from apps.workforce.queue import ApprovalQueue

MONDAY = datetime.date(2030, 1, 7)


class TestApprovalQueue(TestCase):
    def setUp(self):
        self.company = Company.objects.create(name="Acme", enable_schedule_governance=True)
        self.location = Location.objects.create(company=self.company, name="Downtown")
        self.other = Location.objects.create(company=self.company, name="Harbor")
        self.manager = User.objects.create_user(email="mgr@example.com", password="pass123", role=User.Role.MANAGER)
        self.staff = User.objects.create_user(email="s@example.com", password="pass123", first_name="Sam")

        self.shift = Shift.objects.create(
            location=self.location, shift_date=MONDAY, start_time=datetime.time(9),
            end_time=datetime.time(17), role="Server", is_published=True, is_open_shift=True,
        )
        self.claim = ShiftAssignment.objects.create(shift=self.shift, employee=self.staff)
        self.exception = WorkforceException.objects.create(
            company=self.company, location=self.other, employee=self.staff,
            exception_type=WorkforceException.Type.LATE_START, shift_date=MONDAY,
        )
        period = SchedulePeriodService.publish_and_lock(
            SchedulePeriodService.period_for_week(self.location, MONDAY), self.manager
        )
        self.request = ChangeRequestService.submit(
            period, "delete", target_shift=self.shift, reason_code="emergency", requested_by=self.manager
        )

    def test_whole_company_queue(self):
        queue = ApprovalQueue(company=self.company)
        self.assertEqual(queue.count(), 3)
        data = queue.as_dict()
        self.assertEqual(data["assignments"][0]["start_time"], "09:00")
        self.assertEqual(data["change_requests"][0]["change_type"], "delete")
        self.assertEqual(data["exceptions"][0]["exception_type"], "late_start")

    def test_location_and_locations_filters(self):
        self.assertEqual(ApprovalQueue(location=self.location).count(), 2)
        self.assertEqual(ApprovalQueue(locations=[self.other]).count(), 1)

    def test_period_filter(self):
        period = self.request.period
        queue = ApprovalQueue(period=period)
        self.assertEqual(list(queue.pending_assignments()), [self.claim])
        self.assertEqual(list(queue.pending_exceptions()), [])

    def test_actions_clear_the_queue(self):
        queue = ApprovalQueue(company=self.company)
        ApprovalQueue.approve_assignment(self.claim, self.manager)
        ApprovalQueue.deny_change_request(self.request, self.manager, note="Keep it")
        ApprovalQueue.resolve_exception(self.exception, WorkforceException.Status.APPROVED, self.manager, note="Bus")
        self.assertEqual(queue.count(), 0)

        self.exception.refresh_from_db()
        self.assertEqual(self.exception.note, "Bus")
        self.assertEqual(self.exception.resolved_by, self.manager)
        self.assertEqual(ChangeRequest.objects.get().status, ChangeRequest.Status.DENIED)

    def test_resolve_exception_rules(self):
        with self.assertRaises(ShiftValidationError):
            ApprovalQueue.resolve_exception(self.exception, WorkforceException.Status.AUTO_RESOLVED, self.manager)
        ApprovalQueue.resolve_exception(self.exception, WorkforceException.Status.DENIED, self.manager)
        with self.assertRaises(InvalidStateError):
            ApprovalQueue.resolve_exception(self.exception, WorkforceException.Status.RESOLVED, self.manager)
