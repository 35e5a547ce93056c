import datetime

from django.test import SimpleTestCase, TestCase

from apps.accounts.models import TimeOffRequest, User
from apps.locations.models import Company, Location, LocationOperatingSchedule
from apps.scheduling.constraints import (
    eligible_employees,
    find_conflicts,
    find_time_off,
    intervals_overlap,
    normalize_time,
    parse_time,
    schedule_for,
    validate_breaks,
    validate_operating_hours,
)
from apps.scheduling.exceptions import ShiftValidationError
from apps.scheduling.models import Shift, ShiftAssignment

MONDAY = datetime.date(2030, 1, 7)


def hours(open_time, close_time, is_closed=False):
    """Unsaved operating schedule row; validate_operating_hours only reads its fields."""
    return LocationOperatingSchedule(
        weekday=0,
        open_time=datetime.time.fromisoformat(open_time) if open_time else None,
        close_time=datetime.time.fromisoformat(close_time) if close_time else None,
        is_closed=is_closed,
    )


class TestTimeParsing(SimpleTestCase):
    def test_accepts_time_and_both_string_forms(self):
        self.assertEqual(parse_time("09:30"), datetime.time(9, 30))
        self.assertEqual(parse_time("09:30:15"), datetime.time(9, 30, 15))
        self.assertEqual(parse_time(datetime.time(9, 30, 0, 500)), datetime.time(9, 30))

    def test_normalize_time_is_hh_mm_ss(self):
        self.assertEqual(normalize_time("7:05"), "07:05:00")

    def test_rejects_garbage_with_field_name(self):
        with self.assertRaises(ShiftValidationError) as ctx:
            parse_time("25:99", "start_time")
        self.assertEqual(ctx.exception.field, "start_time")

    def test_rejects_missing_value(self):
        with self.assertRaises(ShiftValidationError):
            parse_time("", "end_time")


class TestIntervalsOverlap(SimpleTestCase):
    def test_touching_intervals_do_not_overlap(self):
        self.assertFalse(intervals_overlap(9, 12, 12, 15))
        self.assertFalse(intervals_overlap(12, 15, 9, 12))

    def test_partial_and_nested_overlap(self):
        self.assertTrue(intervals_overlap(9, 12, 11, 15))
        self.assertTrue(intervals_overlap(9, 17, 10, 11))


class TestOperatingHours(SimpleTestCase):
    def test_no_schedule_means_open_all_day(self):
        self.assertTrue(validate_operating_hours(None, MONDAY, "03:00", "04:00").ok)

    def test_closed_day_is_invalid(self):
        check = validate_operating_hours(hours(None, None, is_closed=True), MONDAY, "10:00", "12:00")
        self.assertFalse(check.ok)
        self.assertIn("closed", check.reason)

    def test_same_day_hours(self):
        schedule = hours("09:00", "17:00")
        self.assertTrue(validate_operating_hours(schedule, MONDAY, "09:00", "17:00").ok)
        self.assertTrue(validate_operating_hours(schedule, MONDAY, "10:00", "12:00").ok)
        self.assertFalse(validate_operating_hours(schedule, MONDAY, "08:00", "17:00").ok)
        self.assertFalse(validate_operating_hours(schedule, MONDAY, "09:00", "17:30").ok)

    def test_midnight_close_means_end_of_day(self):
        schedule = hours("18:00", "00:00")
        self.assertTrue(validate_operating_hours(schedule, MONDAY, "18:00", "23:59").ok)
        self.assertTrue(validate_operating_hours(schedule, MONDAY, "20:00", "00:00").ok)
        self.assertFalse(validate_operating_hours(schedule, MONDAY, "17:00", "23:00").ok)

    def test_same_day_rule_compares_wall_clock_values(self):
        # open <= start and end <= close, whatever the shift's own wrap
        self.assertTrue(validate_operating_hours(hours("09:00", "17:00"), MONDAY, "16:00", "01:00").ok)
        self.assertFalse(validate_operating_hours(hours("09:00", "17:00"), MONDAY, "16:00", "18:00").ok)

    def test_all_day_location_accepts_night_shifts(self):
        self.assertTrue(validate_operating_hours(hours("00:00", "00:00"), MONDAY, "22:00", "06:00").ok)
        self.assertTrue(validate_operating_hours(hours("09:00", "00:00"), MONDAY, "22:00", "02:00").ok)
        self.assertFalse(validate_operating_hours(hours("09:00", "00:00"), MONDAY, "08:00", "02:00").ok)

    def test_overnight_hours(self):
        schedule = hours("18:00", "02:00")
        self.assertTrue(validate_operating_hours(schedule, MONDAY, "19:00", "23:00").ok)
        self.assertTrue(validate_operating_hours(schedule, MONDAY, "01:00", "01:30").ok)
        self.assertFalse(validate_operating_hours(schedule, MONDAY, "10:00", "11:00").ok)

    def test_overnight_rule_is_permissive_across_the_gap(self):
        # start >= open OR end <= close
        self.assertTrue(validate_operating_hours(hours("18:00", "02:00"), MONDAY, "10:00", "01:00").ok)

    def test_missing_open_or_close_is_treated_as_open(self):
        self.assertTrue(validate_operating_hours(hours("09:00", None), MONDAY, "03:00", "04:00").ok)


class TestBreaks(SimpleTestCase):
    def test_normalises_and_accepts_valid_breaks(self):
        breaks = validate_breaks(
            [{"start": "12:00:00", "end": "12:30"}, {"start": "15:00", "end": "15:15"}], "09:00", "17:00"
        )
        self.assertEqual(breaks, [{"start": "12:00", "end": "12:30"}, {"start": "15:00", "end": "15:15"}])

    def test_break_after_midnight_on_overnight_shift(self):
        breaks = validate_breaks([{"start": "23:30", "end": "00:15"}, {"start": "01:00", "end": "01:30"}], "20:00", "04:00")
        self.assertEqual(len(breaks), 2)

    def test_rejects_break_outside_shift(self):
        with self.assertRaises(ShiftValidationError):
            validate_breaks([{"start": "08:00", "end": "08:30"}], "09:00", "17:00")

    def test_rejects_overlapping_breaks(self):
        with self.assertRaises(ShiftValidationError):
            validate_breaks([{"start": "12:00", "end": "13:00"}, {"start": "12:30", "end": "13:30"}], "09:00", "17:00")

    def test_rejects_unknown_keys_and_zero_length(self):
        with self.assertRaises(ShiftValidationError):
            validate_breaks([{"start": "12:00", "end": "12:30", "paid": True}], "09:00", "17:00")
        with self.assertRaises(ShiftValidationError):
            validate_breaks([{"start": "12:00", "end": "12:00"}], "09:00", "17:00")


class TestConflictsAndEligibility(TestCase):
    def setUp(self):
        self.company = Company.objects.create(name="Acme")
        self.location = Location.objects.create(company=self.company, name="Downtown")
        self.other_location = Location.objects.create(company=self.company, name="Harbor")
        self.manager = User.objects.create_user(
            email="mgr@example.com", password="pass123", role=User.Role.MANAGER
        )
        self.server = User.objects.create_user(
            email="server@example.com", password="pass123", first_name="Sam", last_name="Server",
            job_role="Server", home_location=self.location,
        )
        self.roaming = User.objects.create_user(
            email="roam@example.com", password="pass123", first_name="Rae", last_name="Roam",
            job_role="server", home_location=self.other_location,
        )
        self.cook = User.objects.create_user(
            email="cook@example.com", password="pass123", job_role="Cook", home_location=self.location
        )

    def make_shift(self, start="09:00", end="17:00", location=None, role="Server"):
        return Shift.objects.create(
            location=location or self.location,
            shift_date=MONDAY,
            start_time=datetime.time.fromisoformat(start),
            end_time=datetime.time.fromisoformat(end),
            role=role,
        )

    def assign(self, shift, employee, status=ShiftAssignment.Status.APPROVED):
        return ShiftAssignment.objects.create(shift=shift, employee=employee, approval_status=status)

    def test_schedule_for_uses_weekday(self):
        row = LocationOperatingSchedule.objects.create(
            location=self.location, weekday=0, open_time=datetime.time(9), close_time=datetime.time(17)
        )
        self.assertEqual(schedule_for(self.location, MONDAY), row)
        self.assertIsNone(schedule_for(self.location, MONDAY + datetime.timedelta(days=1)))

    def test_any_shift_that_day_is_a_conflict_overlap_only_with_times(self):
        self.assign(self.make_shift("09:00", "12:00"), self.server)
        conflicts = find_conflicts(self.server, MONDAY)
        self.assertEqual(len(conflicts), 1)
        self.assertFalse(conflicts[0].has_overlap)

        self.assertFalse(find_conflicts(self.server, MONDAY, "12:00", "15:00")[0].has_overlap)
        self.assertTrue(find_conflicts(self.server, MONDAY, "11:00", "15:00")[0].has_overlap)

    def test_overnight_existing_shift_overlaps_late_evening(self):
        self.assign(self.make_shift("22:00", "02:00"), self.server)
        self.assertTrue(find_conflicts(self.server, MONDAY, "23:00", "23:30")[0].has_overlap)

    def test_pending_counts_rejected_and_excluded_shift_do_not(self):
        pending_shift = self.make_shift("09:00", "12:00")
        rejected_shift = self.make_shift("13:00", "15:00")
        self.assign(pending_shift, self.server, ShiftAssignment.Status.PENDING)
        self.assign(rejected_shift, self.server, ShiftAssignment.Status.REJECTED)

        self.assertEqual(len(find_conflicts(self.server, MONDAY)), 1)
        self.assertEqual(find_conflicts(self.server, MONDAY, exclude_shift=pending_shift), [])

    def test_find_time_off_only_approved_covering_requests(self):
        TimeOffRequest.objects.create(
            employee=self.server, start_date=MONDAY, end_date=MONDAY, status=TimeOffRequest.Status.PENDING
        )
        self.assertFalse(find_time_off(self.server, MONDAY).exists())
        TimeOffRequest.objects.create(
            employee=self.server, start_date=MONDAY - datetime.timedelta(days=1), end_date=MONDAY,
            status=TimeOffRequest.Status.APPROVED,
        )
        self.assertTrue(find_time_off(self.server, MONDAY).exists())

    def test_eligible_employees_match_role_and_home_location(self):
        shift = self.make_shift()
        ids = [e.user_id for e in eligible_employees(shift)]
        self.assertEqual(ids, [self.server.pk])

        ids = {e.user_id for e in eligible_employees(shift, include_all_locations=True)}
        self.assertEqual(ids, {self.server.pk, self.roaming.pk})

    def test_eligible_employees_skip_assigned_and_annotate_conflicts(self):
        shift = self.make_shift("09:00", "17:00")
        other = self.make_shift("16:00", "20:00", location=self.other_location)
        self.assign(other, self.roaming)
        self.assign(shift, self.server)

        candidates = eligible_employees(shift, include_all_locations=True)
        self.assertEqual([c.user_id for c in candidates], [self.roaming.pk])
        self.assertTrue(candidates[0].as_dict()["has_overlap"])
