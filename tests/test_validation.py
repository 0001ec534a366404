import os
import tempfile
import unittest

os.environ.setdefault("TASKTIMER_DATA_DIR", tempfile.mkdtemp(prefix="tasktimer-tests-"))

from tt.core.validation import validate_name, validate_number, validate_rate, validate_timestamp


class TestValidateName(unittest.TestCase):

    def test_valid_name_is_trimmed(self):
        result = validate_name("  Write report \t")
        self.assertTrue(result.valid)
        self.assertIsNone(result.error)
        self.assertEqual(result.sanitized, "Write report")

    def test_control_characters_removed(self):
        self.assertEqual(validate_name("Write\x00 report\x07").sanitized, "Write report")

    def test_empty_and_missing(self):
        self.assertEqual(validate_name("").error, "Task name cannot be empty")
        self.assertEqual(validate_name("   ").error, "Task name cannot be empty")
        self.assertFalse(validate_name(None).valid)
        self.assertEqual(validate_name("", kind="Client").error, "Client name cannot be empty")

    def test_length_limit(self):
        self.assertTrue(validate_name("x" * 100).valid)
        result = validate_name("x" * 101)
        self.assertFalse(result.valid)
        self.assertEqual(len(result.sanitized), 100)

    def test_injection_patterns_rejected(self):
        for value in ("x'; DROP TABLE Task", "name -- comment", "a /* b */", "' UNION SELECT 1"):
            self.assertFalse(validate_name(value).valid, value)

    def test_ordinary_punctuation_allowed(self):
        for value in ("Client's website", "Q3 review (draft)", "R&D - phase 2", "Design (2)"):
            self.assertTrue(validate_name(value).valid, value)


class TestValidateNumber(unittest.TestCase):

    def test_accepts_ints_and_numeric_strings(self):
        self.assertEqual(validate_number(5).sanitized, 5)
        self.assertEqual(validate_number("12").sanitized, 12)
        self.assertEqual(validate_number(3.9).sanitized, 3)

    def test_bounds(self):
        self.assertFalse(validate_number(0, 1).valid)
        self.assertFalse(validate_number(11, 0, 10).valid)
        self.assertEqual(validate_number(11, 0, 10).sanitized, 10)

    def test_rejects_non_numbers(self):
        for value in (None, "abc", True, [], float("inf")):
            self.assertFalse(validate_number(value).valid, value)


class TestValidateTimestamp(unittest.TestCase):

    def test_canonical_only(self):
        self.assertTrue(validate_timestamp("2024-01-15 09:00:00").valid)
        self.assertFalse(validate_timestamp("2024-01-15T09:00:00").valid)
        self.assertFalse(validate_timestamp("15/01/2024 09:00").valid)
        self.assertFalse(validate_timestamp(None).valid)

    def test_impossible_date(self):
        self.assertFalse(validate_timestamp("2024-02-30 09:00:00").valid)


class TestValidateRate(unittest.TestCase):

    def test_rounds_to_cents(self):
        self.assertEqual(validate_rate("45.678").sanitized, 45.68)
        self.assertEqual(validate_rate(0).sanitized, 0.0)

    def test_range(self):
        self.assertFalse(validate_rate(-1).valid)
        self.assertFalse(validate_rate(10001).valid)
        self.assertTrue(validate_rate(10000).valid)
        self.assertFalse(validate_rate("lots").valid)
        self.assertFalse(validate_rate(float("nan")).valid)


if __name__ == "__main__":
    unittest.main()
