import datetime

from django.test import TestCase

from apps.accounts.models import TimeOffRequest, User
from apps.audit.models import AuditLog
from apps.locations.models import Company, Location, LocationOperatingSchedule
from apps.scheduling.exceptions import InvalidStateError, RevisionConflict, ShiftValidationError
from apps.scheduling.governance import SchedulePeriodService
from apps.scheduling.models import SchedulePeriod, Shift, ShiftAssignment
from apps.scheduling.services import AssignmentService, ShiftService, clean_shift_data

MONDAY = datetime.date(2030, 1, 7)


def shift_data(**overrides):
    data = {"shift_date": "2030-01-07", "start_time": "09:00", "end_time": "17:00", "role": "Server"}
    data.update(overrides)
    return data


class SchedulingTestCase(TestCase):
    def setUp(self):
        self.company = Company.objects.create(name="Acme")
        self.location = Location.objects.create(company=self.company, name="Downtown")
        self.manager = User.objects.create_user(
            email="mgr@example.com", password="pass123", first_name="Mia", last_name="Manager",
            role=User.Role.MANAGER,
        )
        self.location.managers.add(self.manager)
        self.staff = User.objects.create_user(
            email="staff@example.com", password="pass123", first_name="Sam", last_name="Staff",
            job_role="Server", home_location=self.location,
        )

    def make_shift(self, **overrides):
        return ShiftService.create_shift(self.location, shift_data(**overrides), created_by=self.manager)


class TestCleanShiftData(SchedulingTestCase):
    def test_types_form_values(self):
        cleaned = clean_shift_data(shift_data(required_count="3", is_open_shift="true"))
        self.assertEqual(cleaned["shift_date"], MONDAY)
        self.assertEqual(cleaned["start_time"], datetime.time(9))
        self.assertEqual(cleaned["required_count"], 3)
        self.assertIs(cleaned["is_open_shift"], True)

    def test_missing_required_field(self):
        data = shift_data()
        del data["role"]
        with self.assertRaises(ShiftValidationError) as ctx:
            clean_shift_data(data)
        self.assertEqual(ctx.exception.field, "role")

    def test_unknown_field_and_bad_count(self):
        with self.assertRaises(ShiftValidationError):
            clean_shift_data(shift_data(colour="red"))
        with self.assertRaises(ShiftValidationError):
            clean_shift_data(shift_data(required_count=0))

    def test_partial_allows_missing_fields(self):
        self.assertEqual(clean_shift_data({"notes": " bring keys "}, partial=True), {"notes": "bring keys"})

    def test_impossible_date_is_a_validation_error(self):
        with self.assertRaises(ShiftValidationError) as ctx:
            clean_shift_data(shift_data(shift_date="2030-02-30"))
        self.assertEqual(ctx.exception.field, "shift_date")


class TestShiftService(SchedulingTestCase):
    def test_create_writes_shift_and_audit_row(self):
        shift = self.make_shift()
        self.assertEqual(shift.revision, 1)
        self.assertFalse(shift.is_published)
        log = AuditLog.objects.get(action="shift.created")
        self.assertEqual(log.actor, self.manager)
        self.assertEqual(log.after["start_time"], "09:00:00")
        self.assertEqual(log.location_id, shift.location_id)

    def test_equal_start_and_end_rejected(self):
        with self.assertRaises(ShiftValidationError):
            self.make_shift(end_time="09:00")
        self.assertFalse(Shift.objects.exists())

    def test_outside_operating_hours_rejected(self):
        LocationOperatingSchedule.objects.create(
            location=self.location, weekday=0, open_time=datetime.time(10), close_time=datetime.time(18)
        )
        with self.assertRaises(ShiftValidationError) as ctx:
            self.make_shift()
        self.assertEqual(ctx.exception.field, "start_time")

    def test_overnight_shift_allowed_without_hours(self):
        shift = self.make_shift(start_time="22:00", end_time="02:00")
        self.assertTrue(shift.is_overnight)

    def test_update_bumps_revision_and_records_before_after(self):
        shift = self.make_shift()
        shift = ShiftService.update_shift(shift, {"start_time": "10:00"}, actor=self.manager, expected_revision=1)
        self.assertEqual(shift.revision, 2)
        self.assertEqual(shift.start_time, datetime.time(10))
        log = AuditLog.objects.get(action="shift.updated")
        self.assertEqual(log.before["start_time"], "09:00:00")
        self.assertEqual(log.after["start_time"], "10:00:00")

    def test_update_with_stale_revision_conflicts(self):
        shift = self.make_shift()
        ShiftService.update_shift(shift, {"notes": "first"}, actor=self.manager)
        with self.assertRaises(RevisionConflict):
            ShiftService.update_shift(shift, {"notes": "second"}, actor=self.manager, expected_revision=1)
        shift.refresh_from_db()
        self.assertEqual(shift.notes, "first")

    def test_update_revalidates_merged_values(self):
        shift = self.make_shift()
        with self.assertRaises(ShiftValidationError):
            ShiftService.update_shift(shift, {"end_time": "09:00"}, actor=self.manager)
        shift.refresh_from_db()
        self.assertEqual(shift.revision, 1)

    def test_delete_cascades_assignments(self):
        shift = self.make_shift()
        AssignmentService.create_assignment(shift, self.staff, actor=self.manager)
        before = ShiftService.delete_shift(shift, actor=self.manager)
        self.assertEqual(before["role"], "Server")
        self.assertFalse(ShiftAssignment.objects.exists())
        self.assertEqual(AuditLog.objects.get(action="shift.deleted").object_id, shift.pk)

    def test_weekday_fan_out_reports_each_date(self):
        LocationOperatingSchedule.objects.create(location=self.location, weekday=1, is_closed=True)
        results = ShiftService.create_shifts_for_weekdays(
            self.location, shift_data(), ["2030-01-07", "2030-01-08", "2030-01-09"], created_by=self.manager
        )
        self.assertEqual([r.ok for r in results], [True, False, True])
        self.assertEqual(Shift.objects.count(), 2)

    def test_weekday_fan_out_skips_locked_weeks(self):
        self.company.enable_schedule_governance = True
        self.company.save()
        SchedulePeriod.objects.create(
            company=self.company, location=self.location, week_start_date=MONDAY + datetime.timedelta(days=7),
            state=SchedulePeriod.State.LOCKED,
        )
        results = ShiftService.create_shifts_for_weekdays(
            self.location, shift_data(), [MONDAY, MONDAY + datetime.timedelta(days=7)], created_by=self.manager
        )
        self.assertTrue(results[0].ok)
        self.assertEqual(results[1].error, "Target week is locked.")

    def test_weekday_fan_out_reports_bad_dates_per_item(self):
        results = ShiftService.create_shifts_for_weekdays(
            self.location, shift_data(), ["2030-01-07", "x", "2030-02-30", "2030-01-09"], created_by=self.manager
        )
        self.assertEqual([r.ok for r in results], [True, False, False, True])
        self.assertEqual([r.key for r in results], ["2030-01-07", "x", "2030-02-30", "2030-01-09"])
        self.assertEqual(Shift.objects.count(), 2)


class TestBulkPublish(SchedulingTestCase):
    def test_idempotent_and_skips_past(self):
        past = self.make_shift(shift_date="2030-01-06")
        upcoming = self.make_shift(shift_date="2030-01-08")
        done = self.make_shift(shift_date="2030-01-09")
        ShiftService.bulk_publish([done.pk], actor=self.manager)

        result = ShiftService.bulk_publish(
            [past.pk, upcoming.pk, done.pk, 99999], actor=self.manager, exclude_past=True, today=MONDAY
        )
        self.assertEqual(result.published, [upcoming.pk])
        self.assertEqual(result.already_published, [done.pk])
        self.assertEqual(result.skipped_past, [past.pk])
        self.assertEqual(result.failed, [99999])

        upcoming.refresh_from_db()
        self.assertTrue(upcoming.is_published)
        self.assertEqual(upcoming.revision, 2)
        past.refresh_from_db()
        self.assertFalse(past.is_published)

    def test_publish_day_includes_past(self):
        past = self.make_shift(shift_date="2030-01-06")
        result = ShiftService.bulk_publish([past.pk], actor=self.manager, today=MONDAY)
        self.assertEqual(result.published, [past.pk])


class TestCopySchedule(SchedulingTestCase):
    def test_copies_forward_with_assignments(self):
        source = self.make_shift()
        AssignmentService.create_assignment(source, self.staff, actor=self.manager)
        result = ShiftService.copy_schedule(
            self.location, MONDAY, MONDAY + datetime.timedelta(days=6), 2, actor=self.manager, include_assignments=True,
        )
        dates = sorted(s.shift_date for s in result.shifts_created)
        self.assertEqual(dates, [datetime.date(2030, 1, 14), datetime.date(2030, 1, 21)])
        self.assertEqual(result.assignments_created, 2)
        copied = result.shifts_created[0]
        self.assertEqual(copied.assignments.get().approval_status, ShiftAssignment.Status.APPROVED)

    def test_without_assignments_and_pending_not_copied(self):
        source = self.make_shift()
        ShiftAssignment.objects.create(shift=source, employee=self.staff)
        result = ShiftService.copy_schedule(self.location, MONDAY, MONDAY, 1, actor=self.manager, include_assignments=True)
        self.assertEqual(result.shifts_created[0].shift_date, MONDAY + datetime.timedelta(days=1))
        self.assertEqual(result.assignments_created, 0)

    def test_locked_target_week_is_reported(self):
        self.company.enable_schedule_governance = True
        self.company.save()
        self.make_shift()
        period = SchedulePeriodService.period_for_week(self.location, MONDAY + datetime.timedelta(days=7))
        SchedulePeriodService.publish_and_lock(period, self.manager)

        result = ShiftService.copy_schedule(self.location, MONDAY, MONDAY + datetime.timedelta(days=6), 1, actor=self.manager)
        self.assertEqual(result.shifts_created, [])
        self.assertEqual(result.failed[0].error, "Target week is locked.")

    def test_published_source_is_published_through_bulk_publish(self):
        source = self.make_shift()
        ShiftService.bulk_publish([source.pk], actor=self.manager)
        result = ShiftService.copy_schedule(self.location, MONDAY, MONDAY, 1, actor=self.manager)

        copied = result.shifts_created[0]
        self.assertTrue(copied.is_published)
        self.assertEqual(copied.revision, 2)
        self.assertTrue(AuditLog.objects.filter(action="shift.published", object_id=copied.pk).exists())

    def test_reversed_range_rejected(self):
        with self.assertRaises(ShiftValidationError):
            ShiftService.copy_schedule(self.location, MONDAY, MONDAY - datetime.timedelta(days=1), 1, actor=self.manager)


class TestAssignmentService(SchedulingTestCase):
    def test_manager_assigns_directly(self):
        shift = self.make_shift()
        result = AssignmentService.create_assignment(shift, self.staff, actor=self.manager)
        self.assertEqual(result.assignment.approval_status, ShiftAssignment.Status.APPROVED)
        self.assertEqual(result.assignment.approved_by, self.manager)
        self.assertEqual(result.warnings, [])

    def test_staff_claim_is_pending_until_approved(self):
        shift = self.make_shift(is_open_shift=True)
        claim = AssignmentService.create_assignment(shift, self.staff, actor=self.staff).assignment
        self.assertEqual(claim.approval_status, ShiftAssignment.Status.PENDING)
        self.assertEqual(shift.approved_count, 0)

        claim = AssignmentService.approve_assignment(claim, actor=self.manager)
        self.assertEqual(claim.approval_status, ShiftAssignment.Status.APPROVED)
        self.assertEqual(shift.approved_count, 1)

        with self.assertRaises(InvalidStateError):
            AssignmentService.reject_assignment(claim, actor=self.manager)

    def test_rejected_row_is_kept(self):
        shift = self.make_shift()
        claim = AssignmentService.create_assignment(shift, self.staff, actor=self.staff).assignment
        AssignmentService.reject_assignment(claim, actor=self.manager)
        claim.refresh_from_db()
        self.assertEqual(claim.approval_status, ShiftAssignment.Status.REJECTED)

    def test_duplicate_assignment_rejected(self):
        shift = self.make_shift()
        AssignmentService.create_assignment(shift, self.staff, actor=self.manager)
        with self.assertRaises(ShiftValidationError):
            AssignmentService.create_assignment(shift, self.staff, actor=self.manager)

    def test_conflicts_time_off_and_headcount_are_warnings(self):
        first = self.make_shift(start_time="08:00", end_time="12:00")
        AssignmentService.create_assignment(first, self.staff, actor=self.manager)
        second = self.make_shift(start_time="11:00", end_time="15:00")
        other = User.objects.create_user(email="o@example.com", password="pass123")
        AssignmentService.create_assignment(second, other, actor=self.manager)
        TimeOffRequest.objects.create(
            employee=self.staff, start_date=MONDAY, end_date=MONDAY, status=TimeOffRequest.Status.APPROVED
        )

        result = AssignmentService.create_assignment(second, self.staff, actor=self.manager)
        self.assertEqual(len(result.warnings), 3)
        self.assertIn("overlapping shift", result.warnings[0])
        self.assertIn("time off", result.warnings[1])
        self.assertIn("1 of 1", result.warnings[2])
        self.assertEqual(second.approved_count, 2)

    def test_remove_assignment(self):
        shift = self.make_shift()
        assignment = AssignmentService.create_assignment(shift, self.staff, actor=self.manager).assignment
        AssignmentService.remove_assignment(assignment, actor=self.manager)
        self.assertFalse(ShiftAssignment.objects.exists())
        self.assertEqual(AuditLog.objects.get(action="shift_assignment.deleted").before["employee"], self.staff.pk)
