"""Test identifier contract shared by the dialect parsers and result correlators.

The identifiers produced here are the join keys used to filter a test run
down to one test and to map streamed runner output back to a declaration.
They must be a pure function of the names involved.
"""

from __future__ import annotations

import os
import re
from typing import Iterable, Optional

NAMESPACE_SEPARATOR = "\\"
METHOD_SEPARATOR = "::"
PEST_NAMESPACE_ROOT = "P"
DESCRIBE_SEPARATOR = " → "

_WHITESPACE_RE = re.compile(r"\s+")


def generate_qualified_class(
    namespace: Optional[str] = None,
    clazz: Optional[str] = None,
) -> str:
    """Join namespace and class name, omitting empty segments."""
    return NAMESPACE_SEPARATOR.join(name for name in (namespace, clazz) if name)


def generate_unique_id(
    namespace: Optional[str] = None,
    clazz: Optional[str] = None,
    method: Optional[str] = None,
) -> Optional[str]:
    """Build the unique test identifier.

    Returns ``namespace`` when no class is given, ``N\\C`` for a class and
    ``N\\C::m`` for a method.
    """
    if not clazz:
        return namespace

    unique_id = generate_qualified_class(namespace, clazz)
    if method:
        unique_id = f"{unique_id}{METHOD_SEPARATOR}{method}"

    return unique_id


def normalize_description(description: str) -> str:
    """Collapse whitespace runs in a test description."""
    return _WHITESPACE_RE.sub(" ", description).strip()


def generate_pest_class(file_path: str, root: str = "") -> tuple[str, str]:
    """Map a Pest test file to the class name Pest generates for it.

    ``tests/Unit/ExampleTest.php`` relative to ``root`` becomes namespace
    ``P\\Tests\\Unit`` and class ``ExampleTest``. Files outside ``root`` fall
    back to their base name.
    """
    relative = file_path
    if root:
        try:
            relative = os.path.relpath(file_path, root)
        except ValueError:
            relative = os.path.basename(file_path)
        if relative.startswith(os.pardir):
            relative = os.path.basename(file_path)
    elif os.path.isabs(file_path):
        relative = os.path.basename(file_path)

    stem, _ = os.path.splitext(relative.replace("\\", "/"))
    segments = [segment[:1].upper() + segment[1:] for segment in stem.split("/") if segment]
    clazz = segments.pop() if segments else "Test"
    namespace = NAMESPACE_SEPARATOR.join([PEST_NAMESPACE_ROOT] + segments)
    return namespace, clazz


def generate_pest_method(
    description: str,
    prefix: str = "",
    describes: Iterable[str] = (),
) -> str:
    """Build a Pest test name, e.g. ```Math` → it adds numbers``."""
    name = normalize_description(description)
    if prefix:
        name = f"{prefix} {name}"
    scopes = [f"`{normalize_description(scope)}`" for scope in describes]
    return DESCRIBE_SEPARATOR.join(scopes + [name])


def generate_pest_describe(describes: Iterable[str]) -> str:
    """Build the name of a ``describe`` block, nested scopes included."""
    return DESCRIBE_SEPARATOR.join(
        f"`{normalize_description(scope)}`" for scope in describes
    )


def generate_dataset_name(method: str, key: str | int) -> str:
    """Name a parameterized invocation the way PHPUnit reports it."""
    if isinstance(key, int):
        return f"{method} with data set #{key}"
    return f'{method} with data set "{key}"'


def generate_pest_dataset_name(test: str, key: Optional[str], values: Iterable[str]) -> str:
    """Name a Pest dataset row: keyed rows by key, list rows by their values."""
    if key is not None:
        return generate_dataset_name(test, key)
    return f"{test} with ({', '.join(values)})"
