#!/usr/bin/env python3
"""
Command-line PHP test discovery sweep.

Parses every PHPUnit/Pest test file under a source directory, or under the
project's phpunit.xml test suites, and writes one JSON line per discovered
test tree, plus a run report.

Usage:
    python run_discovery.py --source-dir /path/to/project/tests
    python run_discovery.py --source-dir ./tests --test-root . --output-file out/tests.jsonl
    python run_discovery.py --source-dir ./tests --config discovery.yaml
    python run_discovery.py --test-root /path/to/project   # sweep phpunit.xml suites
"""

import argparse
import json
import logging
import os
import sys
import time
from typing import List, Optional

from dotenv import load_dotenv

from core.project_config import ConfigValidationError, load_project_config
from core.run_artifacts import write_run_report
from core.structured_logging import configure_structured_logging, set_run_id

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="PHPUnit / Pest test discovery",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python run_discovery.py --source-dir ./tests\n"
            "  python run_discovery.py --source-dir ./tests --test-root . --verbose\n"
            "  python run_discovery.py --test-root /path/to/project\n"
        ),
    )

    parser.add_argument(
        "--source-dir",
        default=None,
        help=(
            "Directory (or single file) to discover tests in. "
            "Default: the <testsuite> directories of phpunit.xml."
        ),
    )
    parser.add_argument(
        "--test-root",
        default=None,
        help="Project test root. Default: directory of phpunit.xml above --source-dir (or the working directory).",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Optional YAML/JSON discovery config file.",
    )
    parser.add_argument(
        "--output-file",
        default="output/tests.jsonl",
        help="Path for the JSONL output. Default: output/tests.jsonl",
    )
    parser.add_argument(
        "--report-dir",
        default="output/discovery_reports",
        help="Directory for the JSON run report.",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Fail on configuration problems instead of falling back to defaults.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug logging.",
    )

    return parser.parse_args()


def _sweep_sources(source_dir: Optional[str], test_directories: List[str]) -> List[str]:
    """Explicit source, or the phpunit.xml suites without nested duplicates."""
    if source_dir:
        return [os.path.abspath(source_dir)]

    sources = []
    for directory in sorted(set(test_directories)):
        if any(directory.startswith(parent + os.sep) for parent in sources):
            continue
        if not os.path.isdir(directory):
            logger.warning("Test suite directory %s does not exist; skipping", directory)
            continue
        sources.append(directory)
    return sources


def run_discovery(
    source_dir: Optional[str],
    output_file: str,
    test_root: Optional[str] = None,
    config_path: Optional[str] = None,
    strict: Optional[bool] = None,
) -> dict:
    """Discover tests and stream them to ``output_file``.

    Without ``source_dir`` the ``<testsuite>`` directories of the project's
    phpunit.xml (or ``test_directories`` of the config file) are swept.

    Returns:
        The run statistics as a dictionary.

    Raises:
        FileNotFoundError: If source_dir does not exist, or no test suite
            directory could be resolved.
    """
    from discovery.engine import TestParser
    from discovery.extractor import DiscoveryStats, iter_discover_tests

    if source_dir and not os.path.exists(source_dir):
        raise FileNotFoundError(f"Source not found: {source_dir}")

    config = load_project_config(
        config_path=config_path,
        start=source_dir or ".",
        test_root=test_root,
        strict=strict,
    )
    sources = _sweep_sources(source_dir, config.test_directories)
    if not sources:
        raise FileNotFoundError(
            f"No --source-dir given and no test suite directories found under {config.test_root}"
        )

    for source in sources:
        logger.info("Source           : %s", source)
    logger.info("Test root        : %s", config.test_root)
    logger.info("Output file      : %s", os.path.abspath(output_file))

    parser = TestParser(root=config.test_root)
    stats = DiscoveryStats()

    t0 = time.time()
    os.makedirs(os.path.dirname(os.path.abspath(output_file)), exist_ok=True)
    lines_written = 0
    with open(output_file, "w", encoding="utf-8") as f:
        for source in sources:
            for _, tests in iter_discover_tests(
                source,
                parser=parser,
                exclude_dirs=config.exclude_dirs,
                stats=stats,
            ):
                for test in tests:
                    f.write(json.dumps(test.to_dict(), ensure_ascii=False) + "\n")
                    lines_written += 1

    logger.info(
        "Discovery completed in %.2fs: %s",
        time.time() - t0,
        stats,
    )
    report = stats.to_dict()
    report["lines_written"] = lines_written
    report["test_root"] = config.test_root
    report["sources"] = sources
    return report


def main() -> None:
    """Main entry point for the discovery CLI."""
    args = parse_args()
    # PHPUNIT_TEST_ROOT / STRICT_CONFIG_VALIDATION may live in a project .env
    load_dotenv()
    configure_structured_logging(logging.DEBUG if args.verbose else logging.INFO)
    run_id = set_run_id()

    try:
        report = run_discovery(
            args.source_dir,
            args.output_file,
            test_root=args.test_root,
            config_path=args.config,
            strict=args.strict,
        )
        path = write_run_report(report, run_id, output_dir=args.report_dir)
        logger.info("Run report written to %s", path)

        if report["definitions_found"] == 0:
            logger.warning("No tests discovered.")

    except FileNotFoundError as e:
        logger.error(f"File error: {e}")
        sys.exit(1)
    except ConfigValidationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Discovery failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
