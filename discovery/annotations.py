"""
Docblock annotation, PHP 8 attribute and literal readers.

The dialect parsers record metadata verbatim; nothing here evaluates PHP.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from tree_sitter import Node

from discovery.config import (
    ARGUMENT_NODE,
    ARRAY_ELEMENT,
    ATTRIBUTE_LIST,
    ATTRIBUTE_NODE,
    CLASS_CONSTANT_ACCESS,
    COMMENT_NODE,
    NAME_TYPES,
    STRING_TYPES,
)
from discovery.parser import ParsedSource

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"^@([A-Za-z][\w-]*)(?:\s+(.*))?$")
# Tags whose continuation lines are additional values
_MULTILINE_TAGS = {"testWith"}


@dataclass(frozen=True)
class Attribute:
    """A PHP 8 attribute with its literal arguments."""

    name: str
    arguments: Tuple[str, ...] = ()

    @property
    def short_name(self) -> str:
        return self.name.rsplit("\\", 1)[-1]


def _docblock_lines(docblock: str) -> List[str]:
    lines = []
    for raw in docblock.splitlines():
        line = raw.strip()
        if line.startswith("/**"):
            line = line[3:]
        if line.endswith("*/"):
            line = line[:-2]
        line = line.strip()
        if line.startswith("*"):
            line = line[1:].strip()
        lines.append(line)
    return lines


def parse_docblock(docblock: Optional[str]) -> Dict[str, List[str]]:
    """Parse ``@tag value`` pairs from a docblock.

    Example:
        >>> parse_docblock("/** @group slow\\n * @dataProvider rows */")
        {'group': ['slow'], 'dataProvider': ['rows']}
    """
    tags: Dict[str, List[str]] = {}
    if not docblock:
        return tags

    current: Optional[str] = None
    for line in _docblock_lines(docblock):
        match = _TAG_RE.match(line)
        if match:
            current = match.group(1)
            tags.setdefault(current, []).append((match.group(2) or "").strip())
            continue
        if line and current in _MULTILINE_TAGS:
            tags[current].append(line)
        else:
            current = None
    return tags


def unquote(text: str) -> str:
    """Strip PHP string quotes and the escapes that matter for names."""
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        quote = text[0]
        inner = text[1:-1]
        return inner.replace("\\" + quote, quote).replace("\\\\", "\\")
    return text


def named_children(node: Node) -> List[Node]:
    """Named children without interleaved comments."""
    return [child for child in node.named_children if child.type != COMMENT_NODE]


def literal_value(node: Node, source: ParsedSource) -> str:
    """Render a literal argument: strings unquoted, ``Foo::class`` as ``Foo``."""
    text = source.text_of(node)
    if node.type in STRING_TYPES:
        return unquote(text)
    if node.type == CLASS_CONSTANT_ACCESS and text.endswith("::class"):
        return text[: -len("::class")].strip()
    return text


def argument_values(arguments: Optional[Node]) -> List[Node]:
    """Value nodes of a call or attribute argument list, in order."""
    if arguments is None:
        return []
    values = []
    for argument in named_children(arguments):
        if argument.type != ARGUMENT_NODE:
            continue
        parts = named_children(argument)
        name = argument.child_by_field_name("name")
        parts = [part for part in parts if name is None or part.id != name.id]
        if parts:
            values.append(parts[-1])
    return values


def array_elements(array: Node) -> List[Tuple[Optional[Node], Node]]:
    """(key, value) pairs of an array literal; key is None for list entries."""
    elements = []
    for element in named_children(array):
        if element.type != ARRAY_ELEMENT:
            continue
        parts = named_children(element)
        if not parts:
            continue
        has_key = any(child.type == "=>" for child in element.children)
        if has_key and len(parts) >= 2:
            elements.append((parts[0], parts[-1]))
        else:
            elements.append((None, parts[-1]))
    return elements


def read_attributes(node: Node, source: ParsedSource) -> List[Attribute]:
    """Read every attribute attached to a class or method declaration."""
    attributes = []
    for attribute_list in node.children:
        if attribute_list.type != ATTRIBUTE_LIST:
            continue
        for attribute in _iter_attribute_nodes(attribute_list):
            name_node = next(
                (child for child in attribute.named_children if child.type in NAME_TYPES),
                None,
            )
            if name_node is None:
                continue
            arguments = attribute.child_by_field_name("parameters")
            values = tuple(literal_value(value, source) for value in argument_values(arguments))
            attributes.append(Attribute(name=source.text_of(name_node).lstrip("\\"), arguments=values))
    return attributes


def _iter_attribute_nodes(attribute_list: Node):
    stack = list(reversed(attribute_list.named_children))
    while stack:
        current = stack.pop()
        if current.type == ATTRIBUTE_NODE:
            yield current
        else:
            stack.extend(reversed(current.named_children))
