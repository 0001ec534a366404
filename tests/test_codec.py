import os
import tempfile
import unittest
from datetime import datetime

os.environ.setdefault("TASKTIMER_DATA_DIR", tempfile.mkdtemp(prefix="tasktimer-tests-"))

from tt.util import (
    calculate_duration,
    format_duration,
    format_money,
    format_time,
    normalize_timestamp,
    parse_timestamp,
    wall_timestamp,
)


class TestFormatting(unittest.TestCase):

    def test_format_time(self):
        self.assertEqual(format_time(0), "00:00:00")
        self.assertEqual(format_time(3723), "01:02:03")
        self.assertEqual(format_time(90000), "25:00:00")
        self.assertEqual(format_time(-5), "00:00:00")

    def test_format_duration(self):
        self.assertEqual(format_duration(0), "0s")
        self.assertEqual(format_duration(None), "0s")
        self.assertEqual(format_duration(45), "45s")
        self.assertEqual(format_duration(2712), "45m 12s")
        self.assertEqual(format_duration(4980), "1h 23m")
        self.assertEqual(format_duration(7200), "2h")

    def test_format_money(self):
        self.assertEqual(format_money(3600, 50), "€50.00")
        self.assertEqual(format_money(1800, 30, "usd"), "$15.00")
        self.assertEqual(format_money(1800, 30, "CHF"), "CHF 15.00")
        self.assertEqual(format_money(3600, 0), "")
        self.assertEqual(format_money(0, 50), "")


class TestTimestamps(unittest.TestCase):

    def test_wall_timestamp(self):
        self.assertEqual(wall_timestamp(datetime(2024, 1, 15, 9, 5, 7)), "2024-01-15 09:05:07")

    def test_parse_accepted_formats(self):
        expected = datetime(2024, 1, 15, 9, 5, 0)
        for text in ("2024-01-15 09:05:00", "2024-01-15T09:05:00", "15/01/2024 09:05", "2024-01-15T09:05:00.000"):
            self.assertEqual(parse_timestamp(text), expected, text)

    def test_parse_rejects_garbage(self):
        self.assertIsNone(parse_timestamp("yesterday"))
        self.assertIsNone(parse_timestamp(""))
        self.assertIsNone(parse_timestamp(None))

    def test_normalize(self):
        self.assertEqual(normalize_timestamp("2024-01-15T09:05:00"), "2024-01-15 09:05:00")
        self.assertIsNone(normalize_timestamp("nope"))

    def test_calculate_duration(self):
        self.assertEqual(calculate_duration("2024-01-15 09:00:00", "2024-01-15 10:30:15"), 5415)
        self.assertEqual(calculate_duration("2024-01-15 10:00:00", "2024-01-15 09:00:00"), 0)
        self.assertEqual(calculate_duration("bad", "2024-01-15 09:00:00"), 0)


if __name__ == "__main__":
    unittest.main()
