"""Structured logging helpers with run and source-file correlation context."""

from __future__ import annotations

import contextvars
import logging
import uuid
from contextlib import contextmanager
from typing import Iterator

_RUN_ID_VAR: contextvars.ContextVar[str] = contextvars.ContextVar(
    "run_id", default="-"
)
_SOURCE_FILE_VAR: contextvars.ContextVar[str] = contextvars.ContextVar(
    "source_file", default="-"
)


class _DiscoveryContextFilter(logging.Filter):
    """Inject run id and the file being parsed into all log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = _RUN_ID_VAR.get("-")
        record.source_file = _SOURCE_FILE_VAR.get("-")
        return True


def _ensure_filter_on_root_handlers() -> None:
    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        has_filter = any(isinstance(f, _DiscoveryContextFilter) for f in handler.filters)
        if not has_filter:
            handler.addFilter(_DiscoveryContextFilter())


def configure_structured_logging(level: int = logging.INFO) -> None:
    """Configure root logging format with run/source-file context."""
    fmt = (
        "%(asctime)s | %(levelname)s | run_id=%(run_id)s | file=%(source_file)s | "
        "%(name)s | %(message)s"
    )
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(level=level, format=fmt)
    else:
        root_logger.setLevel(level)
        formatter = logging.Formatter(fmt)
        for handler in root_logger.handlers:
            handler.setFormatter(formatter)
    _ensure_filter_on_root_handlers()


def set_run_id(run_id: str | None = None) -> str:
    """Set or generate the discovery run correlation ID."""
    value = run_id or str(uuid.uuid4())
    _RUN_ID_VAR.set(value)
    return value


@contextmanager
def source_file_scope(file_path: str) -> Iterator[None]:
    """Tag every log record emitted inside the block with ``file_path``."""
    token = _SOURCE_FILE_VAR.set(file_path or "-")
    try:
        yield
    finally:
        _SOURCE_FILE_VAR.reset(token)
