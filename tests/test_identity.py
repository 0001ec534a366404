import os
import tempfile
import unittest

os.environ.setdefault("TASKTIMER_DATA_DIR", tempfile.mkdtemp(prefix="tasktimer-tests-"))

from tt.core.errors import ValidationError
from tt.core.identity import base_name, compute_group_key, parse_group_key, resolve_unique_name, split_name


class TestBaseName(unittest.TestCase):

    def test_suffix_is_stripped(self):
        self.assertEqual(base_name("Design (2)"), "Design")
        self.assertEqual(base_name("Design(7)"), "Design")
        self.assertEqual(base_name("  Design  "), "Design")

    def test_only_trailing_numeric_suffix_counts(self):
        self.assertEqual(base_name("Design (v2)"), "Design (v2)")
        self.assertEqual(base_name("(3) Design"), "(3) Design")
        self.assertEqual(base_name("Call (2) notes"), "Call (2) notes")

    def test_split_name(self):
        self.assertEqual(split_name("Design (12)"), ("Design", 12))
        self.assertEqual(split_name("Design"), ("Design", None))


class TestGroupKey(unittest.TestCase):

    def test_sessions_of_a_stack_share_a_key(self):
        key = compute_group_key("Design", "Website", "ACME")
        self.assertEqual(key, "Design::Website::ACME")
        self.assertEqual(compute_group_key("Design (3)", "Website", "ACME"), key)

    def test_project_and_client_separate_stacks(self):
        self.assertNotEqual(compute_group_key("Design", "Website", "ACME"),
                            compute_group_key("Design", "Website", "Globex"))
        self.assertNotEqual(compute_group_key("Design", "Website", "ACME"),
                            compute_group_key("Design", "App", "ACME"))

    def test_parse_group_key(self):
        self.assertEqual(parse_group_key("Design::Website::ACME"), ("Design", "Website", "ACME"))
        with self.assertRaises(ValueError):
            parse_group_key("Design::Website")


class TestResolveUniqueName(unittest.TestCase):

    def test_no_collision_keeps_candidate(self):
        self.assertEqual(resolve_unique_name("Design", "Website", "ACME", []), "Design")
        in_use = [("Design", "Website", "Globex"), ("Review", "Website", "ACME")]
        self.assertEqual(resolve_unique_name("Design", "Website", "ACME", in_use), "Design")

    def test_collision_gets_next_number(self):
        in_use = [("Design", "Website", "ACME")]
        self.assertEqual(resolve_unique_name("Design", "Website", "ACME", in_use), "Design (2)")
        in_use.append(("Design (2)", "Website", "ACME"))
        self.assertEqual(resolve_unique_name("Design", "Website", "ACME", in_use), "Design (3)")

    def test_smallest_free_number_is_used(self):
        in_use = [("Design", "Website", "ACME"), ("Design (3)", "Website", "ACME")]
        self.assertEqual(resolve_unique_name("Design", "Website", "ACME", in_use), "Design (2)")

    def test_suffixed_candidate_skips_its_own_number(self):
        in_use = [("Design", "Website", "ACME")]
        self.assertEqual(resolve_unique_name("Design (2)", "Website", "ACME", in_use), "Design (3)")

    def test_resolved_name_stays_in_stack_and_is_unused(self):
        in_use = [("Design", "Website", "ACME"), ("Design (2)", "Website", "ACME"),
                  ("Design (4)", "Website", "ACME")]
        for candidate in ("Design", "Design (2)", "Design (4)", "Design(9)"):
            resolved = resolve_unique_name(candidate, "Website", "ACME", in_use)
            self.assertEqual(compute_group_key(resolved, "Website", "ACME"),
                             compute_group_key(candidate, "Website", "ACME"))
            self.assertNotIn(resolved, [name for name, _, _ in in_use])

    def test_empty_candidate_rejected(self):
        with self.assertRaises(ValidationError):
            resolve_unique_name("  ", "Website", "ACME", [])


if __name__ == "__main__":
    unittest.main()
