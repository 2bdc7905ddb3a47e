"""Synchronous per-node-type event channel for discovered test definitions."""

import logging
from typing import Callable, Dict, Iterable, List, Optional

from discovery.models import TestDefinition, TestType

logger = logging.getLogger(__name__)

Listener = Callable[[TestDefinition, Optional[int]], None]


class TestEventEmitter:
    """Ordered listener lists keyed by TestType.

    Listeners run synchronously in registration order. A listener that
    raises is logged and skipped; the other listeners for the same node and
    the rest of the traversal still run. Listeners must not raise and must
    not start a nested parse on the engine that owns this emitter.
    """

    __test__ = False

    def __init__(self) -> None:
        self._listeners: Dict[TestType, List[Listener]] = {t: [] for t in TestType}

    def on(self, test_type: TestType, listener: Listener) -> None:
        self._listeners[TestType(test_type)].append(listener)

    def off(self, test_type: TestType, listener: Listener) -> None:
        listeners = self._listeners[TestType(test_type)]
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, test_type: TestType) -> int:
        return len(self._listeners[TestType(test_type)])

    def emit(self, definition: TestDefinition, index: Optional[int] = None) -> None:
        for listener in list(self._listeners[definition.type]):
            try:
                listener(definition, index)
            except Exception:
                logger.exception(
                    "Listener %r failed for %s %s",
                    listener,
                    definition.type.value,
                    definition.id,
                )

    def emit_tree(self, definitions: Iterable[TestDefinition]) -> None:
        """Emit every node depth-first, parent before children, in source order.

        Data set nodes receive their position among siblings as ``index``.
        """
        stack = [(definition, None) for definition in reversed(list(definitions))]
        while stack:
            definition, index = stack.pop()
            self.emit(definition, index)
            children = list(enumerate(definition.children))
            for position, child in reversed(children):
                stack.append((child, position if child.type is TestType.DATASET else None))
