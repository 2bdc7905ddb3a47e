"""
Unit tests for the PHPUnit dialect.

Parses the fixture project and checks class qualification, test method
selection, annotation capture and data set expansion.
"""

import unittest
from pathlib import Path

from discovery.dialects import PHPUnitParser
from discovery.models import TestType
from discovery.parser import parse_source

FIXTURES = Path(__file__).parent / "fixtures"
UNIT_DIR = FIXTURES / "project" / "tests" / "Unit"


def parse_fixture(path):
    source = parse_source(path.read_text(encoding="utf-8"), str(path))
    return PHPUnitParser().parse(source, str(path))


def parse_text(text, file="inline.php"):
    return PHPUnitParser().parse(parse_source(text, file), file)


class TestAssertionsFixture(unittest.TestCase):
    """Test docblock-driven discovery."""

    @classmethod
    def setUpClass(cls):
        cls.file = str(UNIT_DIR / "AssertionsTest.php")
        cls.tests = parse_fixture(UNIT_DIR / "AssertionsTest.php")
        cls.namespace = cls.tests[0]
        cls.clazz = cls.namespace.children[0]
        cls.methods = {m.method_name: m for m in cls.clazz.children}

    def test_namespace_root(self):
        self.assertEqual(len(self.tests), 1)
        self.assertEqual(self.namespace.type, TestType.NAMESPACE)
        self.assertEqual(self.namespace.id, "Tests\\Unit")
        self.assertEqual(self.namespace.file, self.file)

    def test_class_node(self):
        self.assertEqual(self.clazz.type, TestType.CLASS)
        self.assertEqual(self.clazz.id, "Tests\\Unit\\AssertionsTest")
        self.assertEqual(self.clazz.qualified_class, "Tests\\Unit\\AssertionsTest")
        self.assertEqual(self.clazz.annotations.group, ("assertions",))

    def test_method_selection_in_source_order(self):
        self.assertEqual(
            [m.method_name for m in self.clazz.children],
            ["test_passed", "test_failed", "it_is_annotated", "testAdd", "testWithRows"],
        )

    def test_method_ids(self):
        self.assertEqual(self.methods["test_passed"].id, "Tests\\Unit\\AssertionsTest::test_passed")
        self.assertEqual(self.methods["it_is_annotated"].id, "Tests\\Unit\\AssertionsTest::it_is_annotated")

    def test_method_positions(self):
        passed = self.methods["test_passed"]
        self.assertEqual(passed.start.line, 12)
        self.assertEqual(passed.end.line, 15)
        self.assertLess(passed.start.offset, passed.end.offset)

    def test_plain_comment_is_not_a_docblock(self):
        self.assertTrue(self.methods["test_failed"].annotations.is_empty())

    def test_annotations_recorded_verbatim(self):
        annotations = self.methods["testAdd"].annotations
        self.assertEqual(annotations.depends, ("test_passed",))
        self.assertEqual(annotations.group, ("integration",))
        self.assertEqual(annotations.testdox, ("Adds two numbers",))
        self.assertEqual(annotations.data_provider, ("additionProvider",))

    def test_testdox_becomes_label(self):
        self.assertEqual(self.methods["testAdd"].label, "Adds two numbers")
        self.assertEqual(self.methods["test_passed"].label, "test_passed")

    def test_provider_data_sets(self):
        datasets = self.methods["testAdd"].children
        self.assertTrue(all(d.type is TestType.DATASET for d in datasets))
        self.assertEqual(
            [d.id for d in datasets],
            [
                'Tests\\Unit\\AssertionsTest::testAdd with data set "adding zeros"',
                'Tests\\Unit\\AssertionsTest::testAdd with data set "zero plus one"',
                "Tests\\Unit\\AssertionsTest::testAdd with data set #0",
            ],
        )
        self.assertEqual(datasets[0].label, 'with data set "adding zeros"')

    def test_testwith_data_sets(self):
        method = self.methods["testWithRows"]
        self.assertEqual(method.annotations.test_with, ("[1, 2]", "[3, 4]"))
        self.assertEqual(
            [d.method_name for d in method.children],
            ["testWithRows with data set #0", "testWithRows with data set #1"],
        )


class TestAttributeFixture(unittest.TestCase):
    """Test PHP 8 attribute-driven discovery."""

    @classmethod
    def setUpClass(cls):
        tests = parse_fixture(UNIT_DIR / "AttributeTest.php")
        cls.clazz = tests[0].children[0]
        cls.methods = {m.method_name: m for m in cls.clazz.children}

    def test_class_group_attribute(self):
        self.assertEqual(self.clazz.id, "Tests\\Unit\\AttributeTest")
        self.assertEqual(self.clazz.annotations.group, ("attributes",))

    def test_method_selection(self):
        self.assertEqual(
            [m.method_name for m in self.clazz.children],
            ["it_creates_a_stack", "testPush", "testRows", "testPairs"],
        )

    def test_depends_and_testdox_attributes(self):
        push = self.methods["testPush"]
        self.assertEqual(push.annotations.depends, ("it_creates_a_stack",))
        self.assertEqual(push.label, "Pushing onto the stack")

    def test_skipped_provider_method(self):
        rows = self.methods["testRows"]
        self.assertTrue(rows.annotations.skipped)
        self.assertEqual(rows.annotations.group, ("slow",))
        self.assertEqual(rows.annotations.data_provider, ("rows",))
        self.assertEqual(
            [d.method_name for d in rows.children],
            ['testRows with data set "first row"', 'testRows with data set "second row"'],
        )

    def test_incomplete_testwith_method(self):
        pairs = self.methods["testPairs"]
        self.assertTrue(pairs.annotations.incomplete)
        self.assertFalse(pairs.annotations.skipped)
        self.assertEqual(pairs.annotations.test_with, ("[1, 2]", "[3, 4]"))
        self.assertEqual(len(pairs.children), 2)


class TestInheritanceFixture(unittest.TestCase):
    """Test in-file ancestry resolution."""

    @classmethod
    def setUpClass(cls):
        cls.tests = parse_fixture(UNIT_DIR / "InheritanceTest.php")

    def test_only_concrete_test_case_reported(self):
        classes = self.tests[0].children
        self.assertEqual([c.id for c in classes], ["Tests\\Unit\\ChildCase"])

    def test_inherited_methods_use_child_class(self):
        child = self.tests[0].children[0]
        self.assertEqual(
            [m.id for m in child.children],
            [
                "Tests\\Unit\\ChildCase::testOverridden",
                "Tests\\Unit\\ChildCase::testUsesInheritedProvider",
                "Tests\\Unit\\ChildCase::testShared",
            ],
        )

    def test_inherited_provider_expands(self):
        child = self.tests[0].children[0]
        method = child.children[1]
        self.assertEqual(
            [d.method_name for d in method.children],
            [
                "testUsesInheritedProvider with data set #0",
                "testUsesInheritedProvider with data set #1",
            ],
        )


class TestInlineSources(unittest.TestCase):
    """Test namespace forms and edge cases on in-memory sources."""

    def test_class_without_namespace(self):
        tests = parse_text(
            "<?php\nclass CalculatorTest extends TestCase {\n"
            "    public function testAdd() {}\n}\n"
        )
        self.assertEqual(tests[0].type, TestType.CLASS)
        self.assertEqual(tests[0].id, "CalculatorTest")
        self.assertEqual(tests[0].children[0].id, "CalculatorTest::testAdd")

    def test_braced_namespaces(self):
        tests = parse_text(
            "<?php\n"
            "namespace First { class ATest extends TestCase { public function testA() {} } }\n"
            "namespace Second { class BTest extends TestCase { public function testB() {} } }\n"
        )
        self.assertEqual([t.id for t in tests], ["First", "Second"])
        self.assertEqual(tests[1].children[0].children[0].id, "Second\\BTest::testB")

    def test_no_classes_returns_none(self):
        self.assertIsNone(parse_text("<?php\nfunction add($a, $b) { return $a + $b; }\n"))

    def test_class_without_tests_returns_none(self):
        self.assertIsNone(
            parse_text("<?php\nclass EmptyTest extends TestCase {\n    public function helper() {}\n}\n")
        )

    def test_non_test_class_ignored(self):
        self.assertIsNone(parse_text("<?php\nclass Service {\n    public function testLike() {}\n}\n"))

    def test_group_marker_qualifies_class(self):
        tests = parse_text(
            "<?php\n/**\n * @group smoke\n */\nclass Smoke {\n    public function testUp() {}\n}\n"
        )
        self.assertEqual(tests[0].id, "Smoke")

    def test_duplicate_data_set_names_skipped(self):
        with self.assertLogs("discovery.dialects.phpunit", level="WARNING"):
            tests = parse_text(
                "<?php\nclass DupTest extends TestCase {\n"
                "    /** @dataProvider rows */\n"
                "    public function testRows($a) {}\n"
                "    public static function rows() { return ['a' => [1], 'a' => [2]]; }\n"
                "}\n"
            )
        self.assertEqual(len(tests[0].children[0].children), 1)

    def test_external_provider_left_unexpanded(self):
        tests = parse_text(
            "<?php\nclass ExtTest extends TestCase {\n"
            "    /** @dataProvider Other::rows */\n"
            "    public function testRows($a) {}\n"
            "}\n"
        )
        method = tests[0].children[0]
        self.assertEqual(method.annotations.data_provider, ("Other::rows",))
        self.assertEqual(method.children, ())


if __name__ == "__main__":
    unittest.main()
