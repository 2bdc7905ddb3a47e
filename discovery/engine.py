"""
Test extraction engine.

``TestParser`` owns the ordered dialect parsers and the event channel. It
normalizes source text, parses it with tree-sitter, hands the tree to each
dialect in priority order and emits the first non-empty result.
"""

import logging
from typing import List, Optional, Sequence, Union

from core.structured_logging import source_file_scope
from discovery.dialects import DialectParser, PestParser, PHPUnitParser
from discovery.events import Listener, TestEventEmitter
from discovery.models import TestDefinition, TestType
from discovery.parser import ParsedSource, PhpSyntaxError, normalize_inline_tags, parse_source

logger = logging.getLogger(__name__)


class TestParser:
    """Discovers test definitions in PHP sources.

    Both a parse failure and a file without tests yield None; callers must
    branch on ``is None`` rather than on emptiness.

    Example:
        >>> parser = TestParser(root="/path/to/project")
        >>> parser.on(TestType.METHOD, lambda test, index: print(test.id))
        >>> tests = parser.parse_file("/path/to/project/tests/ExampleTest.php")
    """

    __test__ = False

    def __init__(self, root: str = "", parsers: Optional[Sequence[DialectParser]] = None):
        self.root = root
        self.parsers: List[DialectParser] = list(parsers) if parsers is not None else [
            PHPUnitParser(),
            PestParser(),
        ]
        self.events = TestEventEmitter()

    def on(self, test_type: TestType, listener: Listener) -> None:
        """Register ``listener(definition, index)`` for nodes of ``test_type``."""
        self.events.on(test_type, listener)

    def parse_file(self, file: str) -> Optional[List[TestDefinition]]:
        """Read ``file`` as UTF-8 and parse it; unreadable files yield None."""
        try:
            with open(file, "rb") as f:
                text = f.read().decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Cannot read %s: %s", file, e)
            return None
        return self.parse(text, file)

    def parse(self, text: Union[str, bytes], file: str) -> Optional[List[TestDefinition]]:
        """Parse PHP source text (str or UTF-8 bytes) held in memory."""
        with source_file_scope(file):
            if isinstance(text, (bytes, bytearray)):
                try:
                    text = bytes(text).decode("utf-8")
                except UnicodeDecodeError as e:
                    logger.debug("Cannot decode %s: %s", file, e)
                    return None

            text = normalize_inline_tags(text)

            try:
                source = parse_source(text, file)
                tests = self._parse_tree(source, file)
            except PhpSyntaxError as e:
                logger.debug("Skipping unparsable source: %s", e)
                return None
            except Exception as e:
                logger.warning("Error extracting tests from %s: %s", file, e, exc_info=True)
                return None

            if tests is None:
                logger.debug("No tests found in %s", file)
                return None

            self.events.emit_tree(tests)
            return tests

    def _parse_tree(self, source: ParsedSource, file: str) -> Optional[List[TestDefinition]]:
        for parser in self.parsers:
            parser.set_root(self.root)
            tests = parser.parse(source, file)
            if tests:
                logger.debug("%s dialect matched %s", parser.name, file)
                return tests
        return None
