"""
Configuration constants for PHP test discovery.

Defines the tree-sitter-php node type strings and the naming conventions the
dialect parsers use to recognize tests.
"""

from typing import Set

# Inline tag rewrite applied before parsing
INLINE_TAG_PATTERN: str = r"\?>\r?\n<\?"
INLINE_TAG_REPLACEMENT: str = "?>\n___PSEUDO_INLINE_PLACEHOLDER___<?"

# Top-level / container node types
NAMESPACE_NODE: str = "namespace_definition"
COMPOUND_STATEMENT: str = "compound_statement"
COMMENT_NODE: str = "comment"
EXPRESSION_STATEMENT: str = "expression_statement"

# Declarations
CLASS_NODE: str = "class_declaration"
METHOD_NODE: str = "method_declaration"
BASE_CLAUSE: str = "base_clause"
ABSTRACT_MODIFIER: str = "abstract_modifier"
VISIBILITY_MODIFIER: str = "visibility_modifier"

# Attributes
ATTRIBUTE_LIST: str = "attribute_list"
ATTRIBUTE_NODE: str = "attribute"

# Expressions
FUNCTION_CALL: str = "function_call_expression"
MEMBER_CALL: str = "member_call_expression"
ARGUMENT_NODE: str = "argument"
ARRAY_NODE: str = "array_creation_expression"
ARRAY_ELEMENT: str = "array_element_initializer"
RETURN_STATEMENT: str = "return_statement"
YIELD_EXPRESSION: str = "yield_expression"
CLASS_CONSTANT_ACCESS: str = "class_constant_access_expression"

NAME_TYPES: Set[str] = {
    "name",
    "qualified_name",
}

STRING_TYPES: Set[str] = {
    "string",
    "encapsed_string",
}

INTEGER_TYPES: Set[str] = {
    "integer",
}

# Older grammar releases used the long name for closures
CLOSURE_TYPES: Set[str] = {
    "anonymous_function",
    "anonymous_function_creation_expression",
    "arrow_function",
}

# PHPUnit conventions
TEST_CLASS_SUFFIX: str = "Test"
TEST_CASE_BASE_SUFFIX: str = "TestCase"
TEST_METHOD_PREFIX: str = "test"

# Class-level markers that turn a class into a test case on their own
CLASS_MARKER_ANNOTATIONS: Set[str] = {
    "group",
    "testdox",
}
CLASS_MARKER_ATTRIBUTES: Set[str] = {
    "Group",
    "TestDox",
    "CoversClass",
    "CoversNothing",
}

# Calls recorded as markers when found in a test body
SKIP_CALLS: Set[str] = {"markTestSkipped"}
INCOMPLETE_CALLS: Set[str] = {"markTestIncomplete"}

# Pest conventions: call name -> prefix prepended to the description
PEST_TEST_FUNCTIONS: dict = {
    "test": "",
    "it": "it",
    "arch": "arch",
}
PEST_GROUP_FUNCTIONS: Set[str] = {"describe"}

# Pest chain modifiers recorded into annotations
PEST_SKIP_MODIFIERS: Set[str] = {"skip", "skipOnWindows", "skipOnMac", "skipOnLinux"}
PEST_TODO_MODIFIERS: Set[str] = {"todo"}
PEST_GROUP_MODIFIERS: Set[str] = {"group"}
PEST_DEPENDS_MODIFIERS: Set[str] = {"depends"}
PEST_DATASET_MODIFIERS: Set[str] = {"with"}

# PHP file extensions considered by bulk discovery
PHP_EXTENSIONS: Set[str] = {
    ".php",
}

TEST_FILE_SUFFIXES: tuple = (
    "Test.php",
    "test.php",
)
