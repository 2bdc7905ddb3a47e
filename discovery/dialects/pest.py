"""
Functional (Pest) dialect: test cases registered with top-level calls.

Recognized shapes::

    test('adds numbers', function () { ... });
    it('adds numbers', fn () => ...)->with([[1, 2], [3, 4]])->group('math');
    describe('Math', function () {
        it('adds numbers', ...);
    });

No class or method exists for these tests, so names follow Pest's own
convention: the file path relative to the test root becomes the class and the
description (prefixed by any enclosing ``describe`` scopes) becomes the method.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from tree_sitter import Node

from core.identifiers import (
    generate_pest_class,
    generate_pest_dataset_name,
    generate_pest_describe,
    generate_pest_method,
)
from discovery.annotations import argument_values, array_elements, literal_value, named_children
from discovery.config import (
    ARRAY_NODE,
    CLOSURE_TYPES,
    COMPOUND_STATEMENT,
    EXPRESSION_STATEMENT,
    FUNCTION_CALL,
    MEMBER_CALL,
    NAMESPACE_NODE,
    PEST_DATASET_MODIFIERS,
    PEST_DEPENDS_MODIFIERS,
    PEST_GROUP_FUNCTIONS,
    PEST_GROUP_MODIFIERS,
    PEST_SKIP_MODIFIERS,
    PEST_TEST_FUNCTIONS,
    PEST_TODO_MODIFIERS,
    STRING_TYPES,
)
from discovery.dialects.base import DialectParser
from discovery.models import Annotations, TestDefinition, TestType
from discovery.parser import ParsedSource, node_end, node_start

logger = logging.getLogger(__name__)


@dataclass
class _Call:
    """A recognized registration call with its chained modifiers."""

    node: Node
    function: str
    description: str
    closure: Optional[Node]
    modifiers: List[Tuple[str, Optional[Node]]] = field(default_factory=list)


@dataclass
class _Scope:
    namespace: str
    class_name: str
    file: str
    describes: Tuple[str, ...] = ()
    seen: Set[str] = field(default_factory=set)

    def nested(self, description: str) -> "_Scope":
        return _Scope(self.namespace, self.class_name, self.file, self.describes + (description,))


class PestParser(DialectParser):
    """Extracts Pest ``test``/``it``/``describe`` registrations."""

    name = "pest"

    def parse(self, source: ParsedSource, file: str) -> Optional[List[TestDefinition]]:
        statements = []
        for child in named_children(source.root_node):
            if child.type == NAMESPACE_NODE:
                body = child.child_by_field_name("body")
                if body is not None:
                    statements.extend(named_children(body))
            else:
                statements.append(child)

        namespace, class_name = generate_pest_class(file, self.root)
        scope = _Scope(namespace=namespace, class_name=class_name, file=file)
        expressions = [
            expression
            for statement in statements
            if statement.type == EXPRESSION_STATEMENT
            for expression in named_children(statement)[:1]
        ]
        children = self._parse_expressions(expressions, scope, source)
        if not children:
            return None

        root = source.root_node
        clazz = TestDefinition.create(
            TestType.CLASS,
            namespace=namespace,
            class_name=class_name,
            file=file,
            start=node_start(root),
            end=node_end(root),
            children=tuple(children),
        )
        logger.debug("Pest dialect found %d top-level tests in %s", len(children), file)
        return [
            TestDefinition.create(
                TestType.NAMESPACE,
                namespace=namespace,
                file=file,
                start=clazz.start,
                end=clazz.end,
                children=(clazz,),
            )
        ]

    def _parse_expressions(self, expressions: List[Node], scope: _Scope, source: ParsedSource) -> List[TestDefinition]:
        definitions = []
        for expression in expressions:
            call = self._match_call(expression, source)
            if call is None:
                continue

            if call.function in PEST_GROUP_FUNCTIONS:
                definition = self._build_describe(call, scope, source)
            else:
                definition = self._build_test(call, scope, source)
            if definition is not None:
                definitions.append(definition)
        return definitions

    def _match_call(self, node: Node, source: ParsedSource) -> Optional[_Call]:
        modifiers = []
        while node.type == MEMBER_CALL:
            name = source.text_of(node.child_by_field_name("name"))
            modifiers.append((name, node.child_by_field_name("arguments")))
            node = node.child_by_field_name("object")
            if node is None:
                return None

        if node.type != FUNCTION_CALL:
            return None

        function = source.text_of(node.child_by_field_name("function")).lstrip("\\")
        function = function.rsplit("\\", 1)[-1]
        if function not in PEST_TEST_FUNCTIONS and function not in PEST_GROUP_FUNCTIONS:
            return None

        values = argument_values(node.child_by_field_name("arguments"))
        if not values or values[0].type not in STRING_TYPES:
            return None

        closure = next((value for value in values[1:] if value.type in CLOSURE_TYPES), None)
        return _Call(
            node=node,
            function=function,
            description=literal_value(values[0], source),
            closure=closure,
            modifiers=list(reversed(modifiers)),
        )

    def _unique_name(self, name: str, node: Node, scope: _Scope) -> str:
        if name in scope.seen:
            unique = f"{name}@L{node.start_point.row + 1}"
            logger.warning(
                "Duplicate Pest test name %r in %s; using %r",
                name,
                scope.file,
                unique,
            )
            name = unique
        scope.seen.add(name)
        return name

    def _annotations(self, call: _Call, source: ParsedSource) -> Annotations:
        depends: List[str] = []
        groups: List[str] = []
        datasets: List[str] = []
        skipped = False
        todo = call.closure is None and call.function not in PEST_GROUP_FUNCTIONS

        for name, arguments in call.modifiers:
            values = argument_values(arguments)
            if name in PEST_SKIP_MODIFIERS:
                skipped = True
            elif name in PEST_TODO_MODIFIERS:
                todo = True
            elif name in PEST_GROUP_MODIFIERS:
                groups.extend(literal_value(value, source) for value in values)
            elif name in PEST_DEPENDS_MODIFIERS:
                depends.extend(literal_value(value, source) for value in values)
            elif name in PEST_DATASET_MODIFIERS:
                datasets.extend(
                    literal_value(value, source) for value in values if value.type in STRING_TYPES
                )

        return Annotations(
            depends=tuple(depends),
            data_provider=tuple(datasets),
            group=tuple(groups),
            skipped=skipped,
            todo=todo,
        )

    def _closure_expressions(self, closure: Optional[Node]) -> List[Node]:
        """Top-level expressions of a closure body, in source order."""
        if closure is None:
            return []
        body = closure.child_by_field_name("body")
        if body is None:
            return []
        if body.type != COMPOUND_STATEMENT:
            # Arrow functions hold a single bare expression.
            return [body]
        return [
            expression
            for statement in named_children(body)
            if statement.type == EXPRESSION_STATEMENT
            for expression in named_children(statement)[:1]
        ]

    def _describe_scope(self, call: _Call, scope: _Scope) -> _Scope:
        """Scope for a describe block; a repeated description gets a line suffix."""
        description = call.description
        name = generate_pest_describe(scope.describes + (description,))
        if name in scope.seen:
            description = f"{description}@L{call.node.start_point.row + 1}"
            unique = generate_pest_describe(scope.describes + (description,))
            logger.warning(
                "Duplicate Pest describe %r in %s; using %r",
                name,
                scope.file,
                unique,
            )
            name = unique
        scope.seen.add(name)
        return scope.nested(description)

    def _build_describe(self, call: _Call, scope: _Scope, source: ParsedSource) -> Optional[TestDefinition]:
        # The unique segment must be known before the children are named
        inner = self._describe_scope(call, scope)
        name = generate_pest_describe(inner.describes)
        children = self._parse_expressions(self._closure_expressions(call.closure), inner, source)
        if not children:
            scope.seen.discard(name)
            return None

        return TestDefinition.create(
            TestType.CLASS,
            namespace=scope.namespace,
            class_name=scope.class_name,
            method_name=name,
            label=call.description,
            file=scope.file,
            start=node_start(call.node),
            end=node_end(call.node),
            children=tuple(children),
            annotations=self._annotations(call, source),
        )

    def _build_test(self, call: _Call, scope: _Scope, source: ParsedSource) -> TestDefinition:
        name = generate_pest_method(call.description, PEST_TEST_FUNCTIONS[call.function], scope.describes)
        name = self._unique_name(name, call.node, scope)
        annotations = self._annotations(call, source)
        start = node_start(call.node)
        end = node_end(call.node)

        datasets = []
        seen: Set[str] = set()
        for key, values, node in self._dataset_rows(call, source):
            dataset_name = generate_pest_dataset_name(name, key, values)
            if dataset_name in seen:
                dataset_name = f"{dataset_name} #{len(datasets)}"
                logger.warning("Duplicate Pest data set in %s; using %r", scope.file, dataset_name)
            seen.add(dataset_name)
            datasets.append(
                TestDefinition.create(
                    TestType.DATASET,
                    namespace=scope.namespace,
                    class_name=scope.class_name,
                    method_name=dataset_name,
                    label=dataset_name[len(name) + 1:],
                    file=scope.file,
                    start=node_start(node),
                    end=node_end(node),
                )
            )

        prefix = PEST_TEST_FUNCTIONS[call.function]
        return TestDefinition.create(
            TestType.METHOD,
            namespace=scope.namespace,
            class_name=scope.class_name,
            method_name=name,
            label=f"{prefix} {call.description}" if prefix else call.description,
            file=scope.file,
            start=start,
            end=end,
            children=tuple(datasets),
            annotations=annotations,
        )

    def _dataset_rows(self, call: _Call, source: ParsedSource) -> List[Tuple[Optional[str], List[str], Node]]:
        """Rows of a single literal ``->with([...])`` dataset."""
        literal_arrays = [
            value
            for name, arguments in call.modifiers
            if name in PEST_DATASET_MODIFIERS
            for value in argument_values(arguments)
            if value.type == ARRAY_NODE
        ]
        if len(literal_arrays) != 1:
            return []

        rows = []
        for key_node, value in array_elements(literal_arrays[0]):
            if value.type == ARRAY_NODE:
                rendered = [source.text_of(v) for _, v in array_elements(value)]
            else:
                rendered = [source.text_of(value)]
            key = literal_value(key_node, source) if key_node is not None else None
            rows.append((key, rendered, value))
        return rows

