"""
Data models for discovered PHP test declarations.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple

from core.identifiers import generate_qualified_class, generate_unique_id


class TestType(str, Enum):
    """Kind of node in a test definition tree."""

    __test__ = False

    NAMESPACE = "namespace"
    CLASS = "class"
    METHOD = "method"
    DATASET = "dataset"


@dataclass(frozen=True)
class Position:
    """A location in the parsed source.

    Attributes:
        line: 1-indexed line number
        column: 0-indexed byte column
        offset: byte offset into the normalized source
    """

    line: int
    column: int
    offset: int


@dataclass(frozen=True)
class Annotations:
    """Execution-relevant markers, recorded verbatim and never interpreted."""

    depends: Tuple[str, ...] = ()
    data_provider: Tuple[str, ...] = ()
    group: Tuple[str, ...] = ()
    testdox: Tuple[str, ...] = ()
    test_with: Tuple[str, ...] = ()
    skipped: bool = False
    incomplete: bool = False
    todo: bool = False

    def is_empty(self) -> bool:
        return self == Annotations()

    def to_dict(self) -> Dict[str, Any]:
        """Only non-default fields, lists instead of tuples."""
        payload: Dict[str, Any] = {}
        for key, value in asdict(self).items():
            if value:
                payload[key] = list(value) if isinstance(value, tuple) else value
        return payload


@dataclass(frozen=True)
class TestDefinition:
    """One discoverable test suite, test case or parameterized data set.

    Attributes:
        type: Node kind; selects the event channel the node is emitted on
        id: Unique identifier, ``N\\C::m`` for methods
        label: Human readable name (testdox or Pest description when present)
        qualified_class: Namespace and class joined with a backslash
        namespace: Declaring namespace, if any
        class_name: Short class name, if any
        method_name: Method name or Pest test name, if any
        file: Source file path
        start: Start of the declaration
        end: End of the declaration
        children: Child nodes in source order
        annotations: Dialect metadata
    """

    __test__ = False

    type: TestType
    id: str
    label: str
    qualified_class: str = ""
    namespace: Optional[str] = None
    class_name: Optional[str] = None
    method_name: Optional[str] = None
    file: Optional[str] = None
    start: Optional[Position] = None
    end: Optional[Position] = None
    children: Tuple["TestDefinition", ...] = ()
    annotations: Annotations = field(default_factory=Annotations)

    @classmethod
    def create(
        cls,
        type: TestType,
        namespace: Optional[str] = None,
        class_name: Optional[str] = None,
        method_name: Optional[str] = None,
        label: Optional[str] = None,
        **kwargs: Any,
    ) -> "TestDefinition":
        """Build a definition whose id and qualified class derive from its names."""
        unique_id = generate_unique_id(namespace, class_name, method_name) or ""
        return cls(
            type=type,
            id=unique_id,
            label=label or method_name or class_name or namespace or "",
            qualified_class=generate_qualified_class(namespace, class_name),
            namespace=namespace,
            class_name=class_name,
            method_name=method_name,
            **kwargs,
        )

    def walk(self) -> Iterator["TestDefinition"]:
        """Yield this node and its descendants depth-first, parent first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> Dict[str, Any]:
        """Convert the definition tree to a JSON-serializable dictionary."""
        payload: Dict[str, Any] = {
            "type": self.type.value,
            "id": self.id,
            "label": self.label,
            "qualified_class": self.qualified_class,
            "namespace": self.namespace,
            "class_name": self.class_name,
            "method_name": self.method_name,
            "file": self.file,
            "start": asdict(self.start) if self.start else None,
            "end": asdict(self.end) if self.end else None,
        }
        annotations = self.annotations.to_dict()
        if annotations:
            payload["annotations"] = annotations
        if self.children:
            payload["children"] = [child.to_dict() for child in self.children]
        return payload
