"""
Tests for blocked window evaluation.

WHY: Ensures time parsing, same-day and overnight windows, and the
previous-day attribution of overnight mornings work correctly.
"""
import unittest
from datetime import datetime, time

from gameguard.models import TimeWindow
from gameguard.time_utils import (
    is_enforcement_active,
    is_window_active,
    parse_time_of_day,
    parse_time_str,
    sunday_based_weekday,
    window_kind,
)
from tests.test_utils import at


class TestTimeParsing(unittest.TestCase):
    """Test time parsing helpers"""

    def test_parse_time_str_valid(self):
        self.assertEqual(parse_time_str("00:00"), (0, 0))
        self.assertEqual(parse_time_str("12:30"), (12, 30))
        self.assertEqual(parse_time_str("23:59"), (23, 59))
        self.assertEqual(parse_time_str("9:05"), (9, 5))

    def test_parse_time_str_with_whitespace(self):
        self.assertEqual(parse_time_str("  12:30  "), (12, 30))

    def test_parse_time_of_day(self):
        self.assertEqual(parse_time_of_day("07:30"), time(7, 30))

    def test_invalid_formats(self):
        for value in ["", "12", "12:", ":30", "24:00", "12:60", "-1:00", "abc", "12:30:00"]:
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    parse_time_str(value)

    def test_sunday_based_weekday(self):
        self.assertEqual(sunday_based_weekday(datetime(2024, 1, 7)), 0)  # Sunday
        self.assertEqual(sunday_based_weekday(datetime(2024, 1, 1)), 1)  # Monday
        self.assertEqual(sunday_based_weekday(datetime(2024, 1, 6)), 6)  # Saturday


class TestSameDayWindow(unittest.TestCase):
    """start < end: active on listed days between start (inclusive) and end (exclusive)"""

    def setUp(self):
        self.window = TimeWindow(days=(1, 3), start="09:00", end="17:00")

    def test_inside(self):
        self.assertTrue(is_window_active(at(0, 9, 0), self.window))
        self.assertTrue(is_window_active(at(0, 12, 0), self.window))
        self.assertTrue(is_window_active(at(2, 16, 59, 59), self.window))

    def test_boundaries(self):
        self.assertFalse(is_window_active(at(0, 8, 59, 59), self.window))
        self.assertFalse(is_window_active(at(0, 17, 0), self.window))

    def test_other_day(self):
        self.assertFalse(is_window_active(at(1, 12, 0), self.window))  # Tuesday


class TestOvernightWindow(unittest.TestCase):
    """start > end: evening belongs to listed day, morning to the day after"""

    def setUp(self):
        self.window = TimeWindow(days=(1,), start="23:00", end="07:00")

    def test_evening_of_listed_day(self):
        self.assertTrue(is_window_active(at(0, 23, 0), self.window))
        self.assertTrue(is_window_active(at(0, 23, 59, 59), self.window))

    def test_morning_after_listed_day(self):
        self.assertTrue(is_window_active(at(1, 0, 0), self.window))
        self.assertTrue(is_window_active(at(1, 2, 0), self.window))
        self.assertTrue(is_window_active(at(1, 6, 59, 59), self.window))

    def test_morning_end_is_exclusive(self):
        self.assertFalse(is_window_active(at(1, 7, 0), self.window))

    def test_morning_of_listed_day_is_not_covered(self):
        # Monday 02:00 belongs to a Sunday window, and Sunday is not listed
        self.assertFalse(is_window_active(at(0, 2, 0), self.window))

    def test_evening_of_following_day_is_not_covered(self):
        self.assertFalse(is_window_active(at(1, 23, 30), self.window))

    def test_saturday_night_wraps_to_sunday(self):
        window = TimeWindow(days=(6,), start="22:00", end="03:00")
        sunday_morning = datetime(2024, 1, 7, 1, 0)
        self.assertTrue(is_window_active(sunday_morning, window))


class TestDegenerateWindows(unittest.TestCase):

    def test_start_equals_end_never_matches(self):
        window = TimeWindow(days=(0, 1, 2, 3, 4, 5, 6), start="10:00", end="10:00")
        for hour in range(24):
            self.assertFalse(is_window_active(at(0, hour), window))

    def test_empty_days_never_match(self):
        self.assertFalse(is_window_active(at(0, 12), TimeWindow(days=(), start="00:00", end="23:59")))

    def test_unparsable_times_are_skipped(self):
        windows = [
            TimeWindow(days=(1,), start="invalid", end="12:00"),
            TimeWindow(days=(1,), start="09:00", end=""),
        ]
        self.assertFalse(is_enforcement_active(at(0, 10), windows))

    def test_window_kind(self):
        self.assertEqual(window_kind(TimeWindow((1,), "09:00", "17:00")), "same-day")
        self.assertEqual(window_kind(TimeWindow((1,), "23:00", "07:00")), "overnight")
        self.assertEqual(window_kind(TimeWindow((1,), "07:00", "07:00")), "invalid")
        self.assertEqual(window_kind(TimeWindow((1,), "7am", "07:00")), "invalid")


class TestIsEnforcementActive(unittest.TestCase):

    def test_empty_schedule_never_enforces(self):
        self.assertFalse(is_enforcement_active(at(0, 12), []))
        self.assertFalse(is_enforcement_active(at(0, 12), None))

    def test_any_window_matches(self):
        windows = [
            TimeWindow(days=(1,), start="09:00", end="12:00"),
            TimeWindow(days=(1,), start="14:00", end="18:00"),
        ]
        self.assertTrue(is_enforcement_active(at(0, 10), windows))
        self.assertTrue(is_enforcement_active(at(0, 15), windows))
        self.assertFalse(is_enforcement_active(at(0, 13), windows))

    def test_invalid_window_does_not_hide_valid_one(self):
        windows = [
            TimeWindow(days=(1,), start="bad", end="12:00"),
            TimeWindow(days=(1,), start="09:00", end="12:00"),
        ]
        self.assertTrue(is_enforcement_active(at(0, 10), windows))


if __name__ == "__main__":
    unittest.main()
