"""Core shared contracts and utilities."""

from core.identifiers import (
    METHOD_SEPARATOR,
    NAMESPACE_SEPARATOR,
    generate_dataset_name,
    generate_pest_class,
    generate_pest_describe,
    generate_pest_method,
    generate_qualified_class,
    generate_unique_id,
)
from core.structured_logging import (
    configure_structured_logging,
    set_run_id,
    source_file_scope,
)
from core.project_config import (
    ConfigValidationError,
    ProjectConfig,
    find_phpunit_xml,
    load_project_config,
    read_phpunit_test_directories,
    resolve_strict_config_validation,
    resolve_test_root,
)
from core.run_artifacts import discovery_status, write_run_report

__all__ = [
    "METHOD_SEPARATOR",
    "NAMESPACE_SEPARATOR",
    "generate_dataset_name",
    "generate_pest_class",
    "generate_pest_describe",
    "generate_pest_method",
    "generate_qualified_class",
    "generate_unique_id",
    "configure_structured_logging",
    "set_run_id",
    "source_file_scope",
    "ConfigValidationError",
    "ProjectConfig",
    "find_phpunit_xml",
    "load_project_config",
    "read_phpunit_test_directories",
    "resolve_strict_config_validation",
    "resolve_test_root",
    "discovery_status",
    "write_run_report",
]
