"""
PHP test discovery engine.

Tree-sitter-based PHP parser that turns PHPUnit classes and Pest call
registrations into one uniform tree of test definitions.
"""

from discovery.models import Annotations, Position, TestDefinition, TestType
from discovery.parser import (
    ParsedSource,
    PhpSyntaxError,
    SourceComment,
    count_error_nodes,
    create_parser,
    normalize_comments,
    normalize_inline_tags,
    parse_source,
)
from discovery.dialects import DialectParser, PestParser, PHPUnitParser
from discovery.events import TestEventEmitter
from discovery.engine import TestParser
from discovery.extractor import (
    DiscoveryStats,
    discover_directory,
    discover_file,
    discover_php_test_files,
    iter_discover_tests,
    iter_discover_to_dict_list,
)

__all__ = [
    # Data models
    "Annotations",
    "Position",
    "TestDefinition",
    "TestType",
    # Low-level parsing
    "ParsedSource",
    "PhpSyntaxError",
    "SourceComment",
    "count_error_nodes",
    "create_parser",
    "normalize_comments",
    "normalize_inline_tags",
    "parse_source",
    # Dialects
    "DialectParser",
    "PestParser",
    "PHPUnitParser",
    # Engine
    "TestEventEmitter",
    "TestParser",
    # High-level orchestration
    "DiscoveryStats",
    "discover_directory",
    "discover_file",
    "discover_php_test_files",
    "iter_discover_tests",
    "iter_discover_to_dict_list",
]
