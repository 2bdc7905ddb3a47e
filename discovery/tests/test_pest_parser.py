"""
Unit tests for the Pest dialect.

Parses the fixture project's Pest file against the project test root and
checks naming, describe nesting, modifiers and dataset rows.
"""

import unittest
from pathlib import Path

from discovery.dialects import PestParser
from discovery.models import TestType
from discovery.parser import parse_source

FIXTURES = Path(__file__).parent / "fixtures"
PROJECT = FIXTURES / "project"
PEST_FILE = PROJECT / "tests" / "Pest" / "ExampleTest.php"
CLASS_ID = "P\\Tests\\Pest\\ExampleTest"


def parse_text(text, file="tests/Feature/InlineTest.php", root=""):
    parser = PestParser()
    parser.set_root(root)
    return parser.parse(parse_source(text, file), file)


class TestPestFixture(unittest.TestCase):
    """Test the fixture file end to end."""

    @classmethod
    def setUpClass(cls):
        parser = PestParser()
        parser.set_root(str(PROJECT))
        source = parse_source(PEST_FILE.read_text(encoding="utf-8"), str(PEST_FILE))
        cls.tests = parser.parse(source, str(PEST_FILE))
        cls.clazz = cls.tests[0].children[0]
        cls.by_id = {test.id: test for root in cls.tests for test in root.walk()}

    def test_namespace_and_class_from_path(self):
        self.assertEqual(len(self.tests), 1)
        self.assertEqual(self.tests[0].type, TestType.NAMESPACE)
        self.assertEqual(self.tests[0].id, "P\\Tests\\Pest")
        self.assertEqual(self.clazz.type, TestType.CLASS)
        self.assertEqual(self.clazz.id, CLASS_ID)

    def test_top_level_tests_in_source_order(self):
        self.assertEqual(
            [child.method_name for child in self.clazz.children],
            [
                "adds numbers",
                "it greets",
                "it is pending",
                "it skips",
                "`Math`",
                "it validates emails",
                "it has named rows",
            ],
        )

    def test_test_and_it_labels(self):
        self.assertEqual(self.by_id[f"{CLASS_ID}::adds numbers"].label, "adds numbers")
        self.assertEqual(self.by_id[f"{CLASS_ID}::it greets"].label, "it greets")

    def test_positions(self):
        adds = self.by_id[f"{CLASS_ID}::adds numbers"]
        self.assertEqual(adds.start.line, 3)
        self.assertEqual(adds.end.line, 5)

    def test_missing_closure_is_todo(self):
        self.assertTrue(self.by_id[f"{CLASS_ID}::it is pending"].annotations.todo)
        self.assertFalse(self.by_id[f"{CLASS_ID}::it greets"].annotations.todo)

    def test_skip_modifier(self):
        self.assertTrue(self.by_id[f"{CLASS_ID}::it skips"].annotations.skipped)

    def test_describe_blocks(self):
        math = self.by_id[f"{CLASS_ID}::`Math`"]
        self.assertEqual(math.type, TestType.CLASS)
        self.assertEqual(math.label, "Math")
        self.assertEqual(
            [child.id for child in math.children],
            [f"{CLASS_ID}::`Math` → it multiplies", f"{CLASS_ID}::`Math` → `Division`"],
        )
        division = math.children[1]
        self.assertEqual(division.type, TestType.CLASS)
        self.assertEqual(
            [child.id for child in division.children],
            [f"{CLASS_ID}::`Math` → `Division` → divides"],
        )

    def test_group_modifier(self):
        multiplies = self.by_id[f"{CLASS_ID}::`Math` → it multiplies"]
        self.assertEqual(multiplies.annotations.group, ("math", "slow"))

    def test_list_dataset_rows(self):
        emails = self.by_id[f"{CLASS_ID}::it validates emails"]
        self.assertEqual(
            [d.id for d in emails.children],
            [
                f"{CLASS_ID}::it validates emails with ('alice@example.com')",
                f"{CLASS_ID}::it validates emails with ('bob@example.com')",
            ],
        )
        self.assertTrue(all(d.type is TestType.DATASET for d in emails.children))

    def test_keyed_dataset_rows(self):
        rows = self.by_id[f"{CLASS_ID}::it has named rows"]
        self.assertEqual(
            [d.method_name for d in rows.children],
            ['it has named rows with data set "first"', 'it has named rows with data set "second"'],
        )


class TestPestInlineSources(unittest.TestCase):
    """Test edge cases on in-memory sources."""

    def test_relative_path_without_root(self):
        tests = parse_text("<?php\ntest('works', function () {});\n")
        self.assertEqual(tests[0].children[0].id, "P\\Tests\\Feature\\InlineTest")
        self.assertEqual(tests[0].children[0].children[0].id, "P\\Tests\\Feature\\InlineTest::works")

    def test_no_registrations_returns_none(self):
        self.assertIsNone(parse_text("<?php\n$value = strlen('abc');\n"))

    def test_non_literal_description_ignored(self):
        self.assertIsNone(parse_text("<?php\ntest($name, function () {});\n"))

    def test_empty_describe_dropped(self):
        self.assertIsNone(parse_text("<?php\ndescribe('Nothing', function () {});\n"))

    def test_duplicate_names_get_line_suffix(self):
        with self.assertLogs("discovery.dialects.pest", level="WARNING"):
            tests = parse_text(
                "<?php\n"
                "it('works', function () {});\n"
                "it('works', function () {});\n"
            )
        ids = [test.method_name for test in tests[0].children[0].children]
        self.assertEqual(ids, ["it works", "it works@L3"])

    def test_repeated_describe_keeps_ids_unique(self):
        text = (
            "<?php\n"
            "describe('Math', function () {\n"
            "    it('adds', function () {});\n"
            "});\n"
            "describe('Math', function () {\n"
            "    it('adds', function () {});\n"
            "});\n"
        )
        with self.assertLogs("discovery.dialects.pest", level="WARNING"):
            tests = parse_text(text, file="tests/Unit/MathTest.php")

        ids = [test.id for root in tests for test in root.walk()]
        self.assertEqual(len(ids), len(set(ids)))
        first, second = tests[0].children[0].children
        self.assertEqual(first.children[0].id, "P\\Tests\\Unit\\MathTest::`Math` → it adds")
        self.assertEqual(second.id, "P\\Tests\\Unit\\MathTest::`Math@L5`")
        self.assertEqual(second.label, "Math")
        self.assertEqual(second.children[0].id, "P\\Tests\\Unit\\MathTest::`Math@L5` → it adds")

    def test_description_whitespace_collapsed(self):
        tests = parse_text("<?php\nit('adds   two\n numbers', function () {});\n")
        self.assertEqual(tests[0].children[0].children[0].method_name, "it adds two numbers")

    def test_named_dataset_reference_recorded(self):
        tests = parse_text("<?php\nit('adds', function ($a) {})->with('numbers');\n")
        test = tests[0].children[0].children[0]
        self.assertEqual(test.annotations.data_provider, ("numbers",))
        self.assertEqual(test.children, ())


if __name__ == "__main__":
    unittest.main()
