"""
High-level orchestrator for PHP test discovery.

This module provides entry points for discovering tests in single files or
entire directory trees, built on a shared ``TestParser`` instance.
"""

import logging
import os
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from core.project_config import DEFAULT_EXCLUDE_DIRS
from discovery.config import PHP_EXTENSIONS, TEST_FILE_SUFFIXES
from discovery.engine import TestParser
from discovery.models import TestDefinition

logger = logging.getLogger(__name__)


class DiscoveryStats:
    """Statistics for a discovery sweep."""

    def __init__(self):
        self.files_processed = 0
        self.files_failed = 0
        self.files_without_tests = 0
        self.definitions_found = 0

    def to_dict(self) -> Dict[str, int]:
        """Convert stats to dictionary."""
        return {
            "files_processed": self.files_processed,
            "files_failed": self.files_failed,
            "files_without_tests": self.files_without_tests,
            "definitions_found": self.definitions_found,
        }

    def __str__(self) -> str:
        return (
            f"DiscoveryStats(processed={self.files_processed}, "
            f"failed={self.files_failed}, without_tests={self.files_without_tests}, "
            f"definitions={self.definitions_found})"
        )


def is_test_file(file_name: str) -> bool:
    """PHPUnit and Pest both default to ``*Test.php`` files."""
    return file_name.endswith(TEST_FILE_SUFFIXES)


def discover_php_test_files(
    directory: str,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
) -> List[str]:
    """Recursively find PHP test files under ``directory``.

    Returns:
        Sorted absolute paths of ``*Test.php`` files.
    """
    excluded = set(exclude_dirs)
    directory = os.path.abspath(directory)
    test_files = []

    logger.info("Discovering PHP test files in %s", directory)

    for root, dirs, files in os.walk(directory):
        dirs[:] = [d for d in dirs if not d.startswith(".") and d not in excluded]
        for file in files:
            ext = os.path.splitext(file)[1]
            if ext in PHP_EXTENSIONS and is_test_file(file):
                test_files.append(os.path.join(root, file))

    logger.info("Found %d PHP test files", len(test_files))
    return sorted(test_files)


def discover_file(file_path: str, parser: Optional[TestParser] = None, root: str = "") -> Optional[List[TestDefinition]]:
    """Discover tests in one file.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    file_path = os.path.abspath(file_path)
    if not os.path.isfile(file_path):
        raise FileNotFoundError(f"File not found: {file_path}")

    parser = parser or TestParser(root=root)
    return parser.parse_file(file_path)


def _count_definitions(tests: List[TestDefinition]) -> int:
    return sum(1 for test in tests for _ in test.walk())


def iter_discover_tests(
    source: str,
    parser: Optional[TestParser] = None,
    root: str = "",
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
    stats: Optional[DiscoveryStats] = None,
    continue_on_error: bool = True,
) -> Iterator[Tuple[str, List[TestDefinition]]]:
    """Yield ``(file, tests)`` for every file under ``source`` that has tests."""
    source = os.path.abspath(source)
    parser = parser or TestParser(root=root or source)
    stats = stats if stats is not None else DiscoveryStats()

    if os.path.isfile(source):
        files = [source]
    elif os.path.isdir(source):
        files = discover_php_test_files(source, exclude_dirs)
    else:
        raise FileNotFoundError(f"Source not found: {source}")

    for file_path in files:
        try:
            tests = parser.parse_file(file_path)
        except Exception as e:
            logger.error("Unexpected error processing %s: %s", file_path, e, exc_info=True)
            stats.files_failed += 1
            if not continue_on_error:
                raise
            continue

        stats.files_processed += 1
        if tests is None:
            stats.files_without_tests += 1
            continue

        stats.definitions_found += _count_definitions(tests)
        yield file_path, tests


def discover_directory(
    directory: str,
    root: str = "",
    parser: Optional[TestParser] = None,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
    continue_on_error: bool = True,
) -> Tuple[Dict[str, List[TestDefinition]], DiscoveryStats]:
    """Discover tests in every test file under ``directory``.

    Returns:
        A mapping of file path to its test tree, and the sweep statistics.

    Raises:
        FileNotFoundError: If directory does not exist.
    """
    directory = os.path.abspath(directory)
    if not os.path.isdir(directory):
        raise FileNotFoundError(f"Directory not found: {directory}")

    stats = DiscoveryStats()
    results = dict(
        iter_discover_tests(
            directory,
            parser=parser,
            root=root,
            exclude_dirs=exclude_dirs,
            stats=stats,
            continue_on_error=continue_on_error,
        )
    )
    logger.info("Discovery complete: %s", stats)
    return results, stats


def iter_discover_to_dict_list(
    source: str,
    root: str = "",
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
    stats: Optional[DiscoveryStats] = None,
) -> Iterator[Dict[str, Any]]:
    """Yield one JSON-ready record per discovered test tree root."""
    for file_path, tests in iter_discover_tests(source, root=root, exclude_dirs=exclude_dirs, stats=stats):
        for test in tests:
            yield test.to_dict()
