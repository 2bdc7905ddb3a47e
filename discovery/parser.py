"""
Tree-sitter parser initialization and PHP source parsing utilities.

This module wraps the tree-sitter-php grammar, applies the textual workarounds
needed before parsing and normalizes comment spans after parsing.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, List, Optional

import tree_sitter_php as tsphp
from tree_sitter import Language, Node, Parser, Tree

from discovery.config import COMMENT_NODE, INLINE_TAG_PATTERN, INLINE_TAG_REPLACEMENT
from discovery.models import Position

logger = logging.getLogger(__name__)

# Module-level language constant
PHP_LANGUAGE = Language(tsphp.language_php())

_INLINE_TAG_RE = re.compile(INLINE_TAG_PATTERN)


class PhpSyntaxError(ValueError):
    """Raised when tree-sitter reports error nodes for a PHP source."""

    def __init__(self, file_path: str, error_count: int):
        self.file_path = file_path
        self.error_count = error_count
        super().__init__(f"{file_path or '<memory>'}: {error_count} syntax error node(s)")


@dataclass(frozen=True)
class SourceComment:
    """A comment with its exact text and byte span."""

    text: str
    start_offset: int
    end_offset: int
    start_line: int
    end_line: int


@dataclass
class ParsedSource:
    """A successfully parsed PHP source with its normalized comments."""

    tree: Tree
    source_bytes: bytes
    file_path: str
    comments: List[SourceComment] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._comments_by_start: Dict[int, SourceComment] = {
            comment.start_offset: comment for comment in self.comments
        }

    @property
    def root_node(self) -> Node:
        return self.tree.root_node

    def text_of(self, node: Optional[Node]) -> str:
        if node is None:
            return ""
        return self.source_bytes[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def comment_at(self, node: Node) -> Optional[SourceComment]:
        return self._comments_by_start.get(node.start_byte)

    def docblock_for(self, node: Node) -> Optional[str]:
        """Collect the ``/** */`` docblocks immediately preceding a declaration.

        Walks backward through comment siblings, stopping at the first blank
        line gap. Returns the docblocks joined in source order, or None.
        """
        docblocks = []
        sibling = node.prev_named_sibling
        expected_end_row = node.start_point.row

        while sibling is not None and sibling.type == COMMENT_NODE:
            if expected_end_row - sibling.end_point.row > 1:
                break

            comment = self.comment_at(sibling)
            text = comment.text if comment else self.text_of(sibling)
            if text.startswith("/**"):
                docblocks.append(text)

            expected_end_row = sibling.start_point.row
            sibling = sibling.prev_named_sibling

        if not docblocks:
            return None
        docblocks.reverse()
        return "\n".join(docblocks)


def create_parser() -> Parser:
    """Create and configure a tree-sitter parser for PHP.

    Example:
        >>> parser = create_parser()
        >>> tree = parser.parse(b"<?php echo 1;")
    """
    parser = Parser(PHP_LANGUAGE)
    logger.debug("Created tree-sitter PHP parser")
    return parser


def normalize_inline_tags(text: str) -> str:
    """Insert a placeholder between ``?>`` and a reopening tag on the next line.

    The placeholder sits on the reopening line, so line numbers of every later
    declaration are unchanged.
    """
    return _INLINE_TAG_RE.sub(INLINE_TAG_REPLACEMENT, text)


def node_start(node: Node) -> Position:
    return Position(
        line=node.start_point.row + 1,
        column=node.start_point.column,
        offset=node.start_byte,
    )


def node_end(node: Node) -> Position:
    return Position(
        line=node.end_point.row + 1,
        column=node.end_point.column,
        offset=node.end_byte,
    )


def iter_nodes(node: Node) -> Iterator[Node]:
    """Iterate a subtree in pre-order without recursion."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def count_error_nodes(tree: Tree) -> int:
    """Count ERROR and MISSING nodes in a tree."""
    return sum(1 for node in iter_nodes(tree.root_node) if node.type == "ERROR" or node.is_missing)


def collect_comments(tree: Tree, source_bytes: bytes) -> List[SourceComment]:
    """Return every comment node of the tree as a SourceComment, in source order."""
    comments = []
    for node in iter_nodes(tree.root_node):
        if node.type != COMMENT_NODE:
            continue
        comments.append(
            SourceComment(
                text=source_bytes[node.start_byte:node.end_byte].decode("utf-8", errors="replace"),
                start_offset=node.start_byte,
                end_offset=node.end_byte,
                start_line=node.start_point.row + 1,
                end_line=node.end_point.row + 1,
            )
        )
    return comments


def normalize_comments(comments: List[SourceComment]) -> List[SourceComment]:
    """Strip one trailing LF and/or CR from each comment and fix its end offset.

    Single-line comments may be reported with their line terminator included;
    after this pass a comment span covers the comment text only.
    """
    normalized = []
    for comment in comments:
        text = comment.text
        end_offset = comment.end_offset
        if text.endswith("\n"):
            text = text[:-1]
            end_offset -= 1
        if text.endswith("\r"):
            text = text[:-1]
            end_offset -= 1
        if text != comment.text:
            comment = replace(comment, text=text, end_offset=end_offset)
        normalized.append(comment)
    return normalized


def parse_source(text: str, file_path: str = "") -> ParsedSource:
    """Parse PHP source text.

    Args:
        text: PHP source, already passed through ``normalize_inline_tags``.
        file_path: Path used for diagnostics only.

    Returns:
        A ParsedSource with normalized comments.

    Raises:
        PhpSyntaxError: If the tree contains error or missing nodes.
    """
    source_bytes = text.encode("utf-8")
    tree = create_parser().parse(source_bytes)

    if tree.root_node.has_error:
        error_count = count_error_nodes(tree)
        logger.debug("File %s contains %d syntax error nodes", file_path, error_count)
        raise PhpSyntaxError(file_path, error_count)

    comments = normalize_comments(collect_comments(tree, source_bytes))
    logger.debug("Parsed %d bytes of PHP from %s", len(source_bytes), file_path or "<memory>")
    return ParsedSource(tree=tree, source_bytes=source_bytes, file_path=file_path, comments=comments)
