import datetime
from unittest import mock

from django.test import TestCase

from apps.accounts.models import TimeOffRequest, User
from apps.accounts.services import TimeOffService
from apps.audit.models import AuditLog
from apps.locations.models import Company, Location
from apps.notifications.models import Notification
from apps.scheduling.governance import ChangeRequestService, SchedulePeriodService
from apps.scheduling.services import AssignmentService, ShiftService

MONDAY = datetime.date(2030, 1, 7)


@mock.patch("apps.scheduling.signals.ws_broadcast")
class TestScheduleChangedReceivers(TestCase):
    def setUp(self):
        self.company = Company.objects.create(name="Acme", enable_schedule_governance=True)
        self.location = Location.objects.create(company=self.company, name="Downtown")
        self.manager = User.objects.create_user(
            email="mgr@example.com", password="pass123", first_name="Mia", last_name="Manager",
            role=User.Role.MANAGER,
        )
        self.location.managers.add(self.manager)
        self.staff = User.objects.create_user(
            email="staff@example.com", password="pass123", first_name="Sam", last_name="Staff",
        )
        self.shift = ShiftService.create_shift(
            self.location,
            {"shift_date": MONDAY, "start_time": "09:00", "end_time": "17:00", "role": "Server"},
            created_by=self.manager,
        )

    def groups(self, broadcast):
        return [(c.args[0], c.args[1]["type"]) for c in broadcast.call_args_list]

    def test_assignment_notifies_audits_and_broadcasts_after_commit(self, broadcast):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            assignment = AssignmentService.create_assignment(self.shift, self.staff, actor=self.manager).assignment
            self.assertFalse(broadcast.called)

        self.assertEqual(len(callbacks), 2)
        notification = Notification.objects.get(recipient=self.staff)
        self.assertEqual(notification.notification_type, Notification.Type.SHIFT_ASSIGNED)
        self.assertEqual(notification.data["assignment_id"], assignment.pk)
        self.assertTrue(AuditLog.objects.filter(actor=self.manager, action="shift_assignment.created").exists())
        self.assertEqual(
            self.groups(broadcast),
            [(f"user_{self.staff.pk}", "notification"), (f"schedule_{self.location.pk}", "shift.assignment.changed")],
        )

    def test_pending_claim_does_not_notify_the_claimant(self, broadcast):
        AssignmentService.create_assignment(self.shift, self.staff, actor=self.staff)
        self.assertFalse(Notification.objects.exists())

    def test_claim_decision_notifies_employee(self, broadcast):
        claim = AssignmentService.create_assignment(self.shift, self.staff, actor=self.staff).assignment
        AssignmentService.reject_assignment(claim, actor=self.manager)
        notification = Notification.objects.get(recipient=self.staff)
        self.assertEqual(notification.notification_type, Notification.Type.ASSIGNMENT_REJECTED)
        self.assertIn("rejected", notification.body)

    def test_shift_edit_notifies_approved_assignees(self, broadcast):
        AssignmentService.create_assignment(self.shift, self.staff, actor=self.manager)
        with self.captureOnCommitCallbacks(execute=True):
            ShiftService.update_shift(self.shift, {"start_time": "10:00"}, actor=self.manager)
        self.assertTrue(
            Notification.objects.filter(recipient=self.staff, notification_type=Notification.Type.SHIFT_CHANGED).exists()
        )
        self.assertIn((f"schedule_{self.location.pk}", "shift.updated"), self.groups(broadcast))

    def test_period_broadcast_carries_state(self, broadcast):
        period = SchedulePeriodService.period_for_week(self.location, MONDAY)
        with self.captureOnCommitCallbacks(execute=True):
            SchedulePeriodService.publish_and_lock(period, self.manager)
        payloads = [c.args[1] for c in broadcast.call_args_list if c.args[1]["type"] == "schedule_period.changed"]
        self.assertEqual(payloads[0]["state"], "locked")
        self.assertEqual(payloads[0]["action"], "schedule_period.published_and_locked")

    def test_change_request_flow_notifies_managers_and_requester(self, broadcast):
        requester = User.objects.create_user(email="mgr2@example.com", password="pass123", role=User.Role.MANAGER)
        self.location.managers.add(requester)
        locked = SchedulePeriodService.publish_and_lock(
            SchedulePeriodService.period_for_week(self.location, MONDAY), self.manager
        )
        request = ChangeRequestService.submit(
            locked, "delete", target_shift=self.shift, reason_code="emergency", requested_by=requester
        )
        submitted = Notification.objects.filter(notification_type=Notification.Type.CHANGE_REQUEST_SUBMITTED)
        self.assertEqual([n.recipient for n in submitted], [self.manager])

        ChangeRequestService.approve(request, actor=self.manager)
        self.assertTrue(
            Notification.objects.filter(
                recipient=requester, notification_type=Notification.Type.CHANGE_REQUEST_APPROVED
            ).exists()
        )
        self.assertTrue(AuditLog.objects.filter(action="shift.deleted", object_id=self.shift.pk).exists())

    def test_time_off_review_notifies_employee(self, broadcast):
        request = TimeOffService.submit(self.staff, MONDAY, MONDAY, TimeOffRequest.Type.SICK, "flu")
        TimeOffService.review(request, approved=True, actor=self.manager)
        notification = Notification.objects.get(recipient=self.staff)
        self.assertEqual(notification.notification_type, Notification.Type.TIME_OFF_REVIEWED)
        self.assertIn("approved", notification.body)
        self.assertTrue(AuditLog.objects.filter(action="time_off_request.approved").exists())
