"""
Classic (PHPUnit) dialect: test methods declared inside test-case classes.

A class is a test case when its name, its class-level markers or its in-file
ancestry say so. Test methods carry their metadata in docblock annotations or
PHP 8 attributes; both are recorded verbatim.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from tree_sitter import Node

from core.identifiers import NAMESPACE_SEPARATOR, generate_dataset_name, generate_qualified_class
from discovery.annotations import (
    Attribute,
    array_elements,
    literal_value,
    named_children,
    parse_docblock,
    read_attributes,
)
from discovery.config import (
    ABSTRACT_MODIFIER,
    ARRAY_ELEMENT,
    ARRAY_NODE,
    BASE_CLAUSE,
    CLASS_MARKER_ANNOTATIONS,
    CLASS_MARKER_ATTRIBUTES,
    CLASS_NODE,
    COMPOUND_STATEMENT,
    FUNCTION_CALL,
    INCOMPLETE_CALLS,
    INTEGER_TYPES,
    MEMBER_CALL,
    METHOD_NODE,
    NAME_TYPES,
    NAMESPACE_NODE,
    RETURN_STATEMENT,
    SKIP_CALLS,
    STRING_TYPES,
    TEST_CASE_BASE_SUFFIX,
    TEST_CLASS_SUFFIX,
    TEST_METHOD_PREFIX,
    VISIBILITY_MODIFIER,
    YIELD_EXPRESSION,
)
from discovery.dialects.base import DialectParser
from discovery.models import Annotations, TestDefinition, TestType
from discovery.parser import ParsedSource, iter_nodes, node_end, node_start

logger = logging.getLogger(__name__)

_CALL_TYPES = {MEMBER_CALL, FUNCTION_CALL, "scoped_call_expression"}
_SIZE_GROUPS = {"Small": "small", "Medium": "medium", "Large": "large"}


@dataclass(eq=False)
class _ClassInfo:
    """A class declaration with everything needed to qualify it."""

    node: Node
    name: str
    namespace: Optional[str]
    base: Optional[str]
    is_abstract: bool
    tags: Dict[str, List[str]]
    attributes: List[Attribute]
    methods: List[Node] = field(default_factory=list)

    @property
    def qualified_name(self) -> str:
        return generate_qualified_class(self.namespace, self.name)


def _short_name(name: str) -> str:
    return name.rsplit(NAMESPACE_SEPARATOR, 1)[-1]


def _has_child_type(node: Node, node_type: str) -> bool:
    return any(child.type == node_type for child in node.children)


def _first_value(values: List[str]) -> List[str]:
    """First whitespace-delimited token of each annotation value."""
    return [value.split()[0] for value in values if value.strip()]


def _join_reference(arguments: Tuple[str, ...]) -> str:
    return "::".join(arguments[:2])


class PHPUnitParser(DialectParser):
    """Extracts PHPUnit test classes and methods."""

    name = "phpunit"

    def parse(self, source: ParsedSource, file: str) -> Optional[List[TestDefinition]]:
        classes = self._collect_classes(source)
        if not classes:
            return None

        by_name: Dict[str, _ClassInfo] = {}
        for info in classes:
            by_name.setdefault(info.qualified_name, info)
            by_name.setdefault(info.name, info)

        roots: List[Union[TestDefinition, Tuple[str, Node, List[TestDefinition]]]] = []
        namespace_groups: Dict[str, Tuple[str, Node, List[TestDefinition]]] = {}

        for info in classes:
            if info.is_abstract or not self._is_test_case(info, by_name, set()):
                continue

            definition = self._build_class(info, by_name, source, file)
            if definition is None:
                continue

            if not info.namespace:
                roots.append(definition)
                continue

            group = namespace_groups.get(info.namespace)
            if group is None:
                group = (info.namespace, info.node, [])
                namespace_groups[info.namespace] = group
                roots.append(group)
            group[2].append(definition)

        tests = [
            item if isinstance(item, TestDefinition) else self._build_namespace(item, source, file)
            for item in roots
        ]
        logger.debug("PHPUnit dialect found %d test roots in %s", len(tests), file)
        return tests or None

    def _collect_classes(self, source: ParsedSource) -> List[_ClassInfo]:
        classes: List[_ClassInfo] = []
        namespace: Optional[str] = None

        for child in named_children(source.root_node):
            if child.type == NAMESPACE_NODE:
                name_node = child.child_by_field_name("name")
                child_namespace = source.text_of(name_node) or None
                body = child.child_by_field_name("body")
                if body is None:
                    body = next((c for c in child.named_children if c.type == COMPOUND_STATEMENT), None)
                if body is not None:
                    classes.extend(
                        self._class_info(node, child_namespace, source)
                        for node in named_children(body)
                        if node.type == CLASS_NODE
                    )
                else:
                    namespace = child_namespace
            elif child.type == CLASS_NODE:
                classes.append(self._class_info(child, namespace, source))

        return [info for info in classes if info.name]

    def _class_info(self, node: Node, namespace: Optional[str], source: ParsedSource) -> _ClassInfo:
        name = source.text_of(node.child_by_field_name("name"))

        base = None
        for child in node.named_children:
            if child.type == BASE_CLAUSE:
                base_node = next((c for c in child.named_children if c.type in NAME_TYPES), None)
                base = source.text_of(base_node) or None
                break

        body = node.child_by_field_name("body")
        methods = [m for m in named_children(body) if m.type == METHOD_NODE] if body else []

        return _ClassInfo(
            node=node,
            name=name,
            namespace=namespace,
            base=base,
            is_abstract=_has_child_type(node, ABSTRACT_MODIFIER),
            tags=parse_docblock(source.docblock_for(node)),
            attributes=read_attributes(node, source),
            methods=methods,
        )

    def _resolve_base(self, info: _ClassInfo, by_name: Dict[str, _ClassInfo]) -> Optional[_ClassInfo]:
        if not info.base:
            return None
        if info.base.startswith(NAMESPACE_SEPARATOR):
            qualified = info.base.lstrip(NAMESPACE_SEPARATOR)
        else:
            qualified = generate_qualified_class(info.namespace, info.base)
        return by_name.get(qualified) or by_name.get(_short_name(info.base))

    def _ancestors(self, info: _ClassInfo, by_name: Dict[str, _ClassInfo]) -> List[_ClassInfo]:
        ancestors: List[_ClassInfo] = []
        current = self._resolve_base(info, by_name)
        while current is not None and current is not info and current not in ancestors:
            ancestors.append(current)
            current = self._resolve_base(current, by_name)
        return ancestors

    def _is_test_case(self, info: _ClassInfo, by_name: Dict[str, _ClassInfo], seen: set) -> bool:
        if info.qualified_name in seen:
            return False
        seen.add(info.qualified_name)

        if info.name.endswith(TEST_CLASS_SUFFIX):
            return True
        if CLASS_MARKER_ANNOTATIONS.intersection(info.tags):
            return True
        if any(a.short_name in CLASS_MARKER_ATTRIBUTES for a in info.attributes):
            return True
        if not info.base:
            return False
        if _short_name(info.base).endswith(TEST_CASE_BASE_SUFFIX):
            return True

        parent = self._resolve_base(info, by_name)
        return parent is not None and self._is_test_case(parent, by_name, seen)

    def _is_test_method(self, method: Node, tags: Dict[str, List[str]], attributes: List[Attribute], source: ParsedSource) -> bool:
        visibility = next((c for c in method.children if c.type == VISIBILITY_MODIFIER), None)
        if visibility is not None and source.text_of(visibility).lower() != "public":
            return False
        if _has_child_type(method, ABSTRACT_MODIFIER) or method.child_by_field_name("body") is None:
            return False

        name = source.text_of(method.child_by_field_name("name"))
        return (
            name.startswith(TEST_METHOD_PREFIX)
            or "test" in tags
            or any(a.short_name == "Test" for a in attributes)
        )

    def _build_class(
        self,
        info: _ClassInfo,
        by_name: Dict[str, _ClassInfo],
        source: ParsedSource,
        file: str,
    ) -> Optional[TestDefinition]:
        ancestors = self._ancestors(info, by_name)
        lineage = [info] + ancestors

        seen_methods = set()
        children = []
        for owner in lineage:
            for method in owner.methods:
                method_name = source.text_of(method.child_by_field_name("name"))
                if method_name in seen_methods:
                    continue
                seen_methods.add(method_name)

                definition = self._build_method(info, method, method_name, lineage, source, file)
                if definition is not None:
                    children.append(definition)

        if not children:
            logger.debug("Class %s has no test methods", info.qualified_name)
            return None

        annotations = self._class_annotations(info)
        return TestDefinition.create(
            TestType.CLASS,
            namespace=info.namespace,
            class_name=info.name,
            label=(annotations.testdox[0] if annotations.testdox else info.name),
            file=file,
            start=node_start(info.node),
            end=node_end(info.node),
            children=tuple(children),
            annotations=annotations,
        )

    def _build_namespace(
        self,
        group: Tuple[str, Node, List[TestDefinition]],
        source: ParsedSource,
        file: str,
    ) -> TestDefinition:
        namespace, first_node, classes = group
        return TestDefinition.create(
            TestType.NAMESPACE,
            namespace=namespace,
            file=file,
            start=node_start(first_node),
            end=classes[-1].end,
            children=tuple(classes),
        )

    def _class_annotations(self, info: _ClassInfo) -> Annotations:
        groups = list(info.tags.get("group", [])) + list(info.tags.get("ticket", []))
        testdox = list(info.tags.get("testdox", []))
        for attribute in info.attributes:
            if attribute.short_name in ("Group", "Ticket"):
                groups.extend(attribute.arguments[:1])
            elif attribute.short_name in _SIZE_GROUPS:
                groups.append(_SIZE_GROUPS[attribute.short_name])
            elif attribute.short_name == "TestDox":
                testdox.extend(attribute.arguments[:1])
        return Annotations(group=tuple(groups), testdox=tuple(testdox))

    def _method_annotations(
        self,
        method: Node,
        tags: Dict[str, List[str]],
        attributes: List[Attribute],
        source: ParsedSource,
    ) -> Annotations:
        depends = _first_value(tags.get("depends", []))
        providers = _first_value(tags.get("dataProvider", []))
        groups = _first_value(tags.get("group", [])) + _first_value(tags.get("ticket", []))
        testdox = [value for value in tags.get("testdox", []) if value]
        test_with = [value for value in tags.get("testWith", []) if value]

        for attribute in attributes:
            short = attribute.short_name
            args = attribute.arguments
            if not args and short not in _SIZE_GROUPS:
                continue
            if short in ("Depends", "DependsUsingDeepClone", "DependsUsingShallowClone"):
                depends.append(args[0])
            elif short.startswith("DependsOnClass"):
                depends.append(args[0])
            elif short.startswith("DependsExternal"):
                depends.append(_join_reference(args))
            elif short == "DataProvider":
                providers.append(args[0])
            elif short == "DataProviderExternal":
                providers.append(_join_reference(args))
            elif short in ("Group", "Ticket"):
                groups.append(args[0])
            elif short in _SIZE_GROUPS:
                groups.append(_SIZE_GROUPS[short])
            elif short == "TestDox":
                testdox.append(args[0])
            elif short in ("TestWith", "TestWithJson"):
                test_with.append(args[0])

        skipped = incomplete = False
        body = method.child_by_field_name("body")
        for node in iter_nodes(body) if body is not None else ():
            if node.type not in _CALL_TYPES:
                continue
            name_node = node.child_by_field_name("name") or node.child_by_field_name("function")
            called = source.text_of(name_node)
            skipped = skipped or called in SKIP_CALLS
            incomplete = incomplete or called in INCOMPLETE_CALLS

        return Annotations(
            depends=tuple(depends),
            data_provider=tuple(providers),
            group=tuple(groups),
            testdox=tuple(testdox),
            test_with=tuple(test_with),
            skipped=skipped,
            incomplete=incomplete,
        )

    def _build_method(
        self,
        info: _ClassInfo,
        method: Node,
        method_name: str,
        lineage: List[_ClassInfo],
        source: ParsedSource,
        file: str,
    ) -> Optional[TestDefinition]:
        tags = parse_docblock(source.docblock_for(method))
        attributes = read_attributes(method, source)
        if not self._is_test_method(method, tags, attributes, source):
            return None

        annotations = self._method_annotations(method, tags, attributes, source)
        datasets = self._build_datasets(info, method, method_name, annotations, lineage, source, file)

        return TestDefinition.create(
            TestType.METHOD,
            namespace=info.namespace,
            class_name=info.name,
            method_name=method_name,
            label=(annotations.testdox[0] if annotations.testdox else method_name),
            file=file,
            start=node_start(method),
            end=node_end(method),
            children=tuple(datasets),
            annotations=annotations,
        )

    def _build_datasets(
        self,
        info: _ClassInfo,
        method: Node,
        method_name: str,
        annotations: Annotations,
        lineage: List[_ClassInfo],
        source: ParsedSource,
        file: str,
    ) -> List[TestDefinition]:
        keys: List[Tuple[Union[str, int], Node]] = [
            (index, method) for index, _ in enumerate(annotations.test_with)
        ]
        for provider in annotations.data_provider:
            provider_node = self._find_method(provider, lineage, source)
            if provider_node is None:
                logger.debug("Data provider %s for %s is not declared in this file", provider, method_name)
                continue
            offset = len(keys)
            for key, node in self._provider_keys(provider_node, source):
                keys.append((key + offset if isinstance(key, int) else key, node))

        datasets = []
        seen = set()
        for key, node in keys:
            name = generate_dataset_name(method_name, key)
            if name in seen:
                logger.warning("Duplicate data set %s in %s; keeping the first", name, file)
                continue
            seen.add(name)
            datasets.append(
                TestDefinition.create(
                    TestType.DATASET,
                    namespace=info.namespace,
                    class_name=info.name,
                    method_name=name,
                    label=name[len(method_name) + 1:],
                    file=file,
                    start=node_start(node),
                    end=node_end(node),
                )
            )
        return datasets

    def _find_method(self, reference: str, lineage: List[_ClassInfo], source: ParsedSource) -> Optional[Node]:
        if "::" in reference:
            class_name, method_name = reference.split("::", 1)
            candidates = [i for i in lineage if i.name == _short_name(class_name)]
        else:
            method_name = reference
            candidates = lineage
        for owner in candidates:
            for method in owner.methods:
                if source.text_of(method.child_by_field_name("name")) == method_name:
                    return method
        return None

    def _provider_keys(self, provider: Node, source: ParsedSource) -> List[Tuple[Union[str, int], Node]]:
        """Data set keys of a provider that returns or yields literals."""
        body = provider.child_by_field_name("body")
        if body is None:
            return []

        entries: List[Tuple[Optional[Node], Node]] = []
        for statement in named_children(body):
            if statement.type == RETURN_STATEMENT:
                value = next(iter(named_children(statement)), None)
                if value is not None and value.type == ARRAY_NODE:
                    entries.extend(array_elements(value))
                break

        if not entries:
            for node in iter_nodes(body):
                if node.type != YIELD_EXPRESSION:
                    continue
                element = next((c for c in node.named_children if c.type == ARRAY_ELEMENT), None)
                if element is not None:
                    parts = named_children(element)
                    has_key = any(c.type == "=>" for c in element.children)
                    if has_key and len(parts) >= 2:
                        entries.append((parts[0], element))
                        continue
                if not any(c.type == "from" for c in node.children):
                    entries.append((None, node))

        keys: List[Tuple[Union[str, int], Node]] = []
        next_index = 0
        for key_node, node in entries:
            if key_node is None:
                keys.append((next_index, node))
                next_index += 1
            elif key_node.type in INTEGER_TYPES:
                try:
                    index = int(source.text_of(key_node), 0)
                except ValueError:
                    index = next_index
                keys.append((index, node))
                next_index = max(next_index, index + 1)
            elif key_node.type in STRING_TYPES:
                keys.append((literal_value(key_node, source), node))
            else:
                logger.debug("Skipping non-literal data set key %s", source.text_of(key_node))
        return keys
