"""Run report for a discovery sweep."""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Any


def discovery_status(report: dict[str, Any]) -> str:
    """Summarize sweep counters: ``failed``, ``partial``, ``empty`` or ``success``."""
    processed = report.get("files_processed", 0)
    failed = report.get("files_failed", 0)
    if failed and not processed:
        return "failed"
    if failed:
        return "partial"
    if not report.get("definitions_found", 0):
        return "empty"
    return "success"


def write_run_report(
    report: dict[str, Any],
    run_id: str,
    output_dir: str = "output/discovery_reports",
) -> str:
    """Write ``discovery-<run_id>.json`` with the sweep counters and return its path."""
    os.makedirs(output_dir, exist_ok=True)
    payload = dict(report)
    payload.setdefault("run_id", run_id)
    payload.setdefault("status", discovery_status(report))
    payload.setdefault("timestamp_utc", datetime.now(timezone.utc).isoformat())
    path = os.path.join(output_dir, f"discovery-{run_id}.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True, ensure_ascii=False)
    return path
