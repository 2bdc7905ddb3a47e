"""Project configuration for PHP test discovery.

Resolves the test root handed to the dialect parsers and the directories a
bulk discovery sweep should visit. Sources, in order of precedence: explicit
arguments, an optional YAML/JSON project file, the ``PHPUNIT_TEST_ROOT``
environment variable and the directory holding ``phpunit.xml``.
"""

from __future__ import annotations

import json
import logging
import os
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

TEST_ROOT_ENV = "PHPUNIT_TEST_ROOT"
PHPUNIT_XML_NAMES: tuple[str, ...] = ("phpunit.xml", "phpunit.xml.dist", "phpunit.dist.xml")
DEFAULT_EXCLUDE_DIRS: tuple[str, ...] = ("vendor", "node_modules", "storage", "bootstrap", "cache")


class ConfigValidationError(RuntimeError):
    """Raised when strict configuration validation fails."""


@dataclass(frozen=True)
class ProjectConfig:
    """Resolved discovery settings."""

    test_root: str
    test_directories: list[str] = field(default_factory=list)
    exclude_dirs: tuple[str, ...] = DEFAULT_EXCLUDE_DIRS
    strict: bool = False


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def resolve_strict_config_validation(default: bool = False) -> bool:
    """Resolve strict validation mode from ``STRICT_CONFIG_VALIDATION`` env."""
    return _env_flag("STRICT_CONFIG_VALIDATION", default=default)


def find_phpunit_xml(start: str) -> Optional[str]:
    """Walk upward from ``start`` looking for a PHPUnit configuration file."""
    current = Path(start).resolve()
    if current.is_file():
        current = current.parent

    for directory in (current, *current.parents):
        for name in PHPUNIT_XML_NAMES:
            candidate = directory / name
            if candidate.is_file():
                logger.debug("Found PHPUnit configuration at %s", candidate)
                return str(candidate)
    return None


def read_phpunit_test_directories(xml_path: str, strict: bool = False) -> list[str]:
    """Return absolute ``<testsuite><directory>`` paths from a phpunit.xml.

    In non-strict mode unreadable or malformed files yield an empty list.
    """
    try:
        tree = ET.parse(xml_path)
    except (OSError, ET.ParseError) as exc:
        msg = f"Failed to read PHPUnit configuration at {xml_path}: {exc}"
        if strict:
            raise ConfigValidationError(msg) from exc
        logger.warning("%s; continuing without test suites", msg)
        return []

    base_dir = os.path.dirname(os.path.abspath(xml_path))
    directories: list[str] = []
    for suite in tree.getroot().iter("testsuite"):
        for element in suite.findall("directory"):
            text = (element.text or "").strip()
            if not text:
                continue
            path = os.path.normpath(os.path.join(base_dir, text))
            if path not in directories:
                directories.append(path)
    return directories


def _load_payload(path: str, strict: bool) -> dict[str, Any]:
    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        msg = f"Project config file not found: {config_path}"
        if strict:
            raise ConfigValidationError(msg) from exc
        logger.warning("%s; continuing with defaults", msg)
        return {}

    try:
        if config_path.suffix.lower() == ".json":
            payload = json.loads(text)
        else:
            payload = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        msg = f"Failed to parse project config at {config_path}: {exc}"
        if strict:
            raise ConfigValidationError(msg) from exc
        logger.warning("%s; continuing with defaults", msg)
        return {}

    if payload is None:
        return {}
    if not isinstance(payload, dict):
        msg = f"Unexpected project config payload type: {type(payload).__name__}"
        if strict:
            raise ConfigValidationError(msg)
        logger.warning("%s; continuing with defaults", msg)
        return {}
    return payload


def resolve_test_root(explicit: Optional[str] = None, start: str = ".") -> str:
    """Resolve the test root: argument, env var, phpunit.xml directory, ``start``."""
    if explicit:
        return os.path.abspath(explicit)

    from_env = os.getenv(TEST_ROOT_ENV, "").strip()
    if from_env:
        return os.path.abspath(from_env)

    xml_path = find_phpunit_xml(start)
    if xml_path:
        return os.path.dirname(xml_path)

    start_path = os.path.abspath(start)
    return start_path if os.path.isdir(start_path) else os.path.dirname(start_path)


def load_project_config(
    config_path: Optional[str] = None,
    start: str = ".",
    test_root: Optional[str] = None,
    strict: Optional[bool] = None,
) -> ProjectConfig:
    """Load discovery settings, merging file values under explicit arguments."""
    if strict is None:
        strict = resolve_strict_config_validation()

    payload = _load_payload(config_path, strict) if config_path else {}

    root = resolve_test_root(test_root or payload.get("test_root"), start=start)

    raw_dirs = payload.get("test_directories")
    if raw_dirs is not None and not isinstance(raw_dirs, list):
        msg = "test_directories must be a list"
        if strict:
            raise ConfigValidationError(msg)
        logger.warning("%s; ignoring", msg)
        raw_dirs = None

    if raw_dirs:
        test_directories = [os.path.normpath(os.path.join(root, str(d))) for d in raw_dirs]
    else:
        xml_path = find_phpunit_xml(root)
        test_directories = (
            read_phpunit_test_directories(xml_path, strict=strict) if xml_path else []
        )

    raw_excludes = payload.get("exclude_dirs")
    if isinstance(raw_excludes, list):
        exclude_dirs = tuple(str(d) for d in raw_excludes)
    else:
        exclude_dirs = DEFAULT_EXCLUDE_DIRS

    config = ProjectConfig(
        test_root=root,
        test_directories=test_directories,
        exclude_dirs=exclude_dirs,
        strict=strict,
    )
    logger.debug("Resolved project config: %s", config)
    return config
