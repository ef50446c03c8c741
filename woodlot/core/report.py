"""Import report persistence and summaries."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from woodlot.io.project_files import ProjectFiles
from woodlot.model import ImportReport


def iso_utc(now: Optional[datetime] = None) -> str:
    """UTC ISO-8601 with milliseconds and a 'Z' suffix: 2025-01-01T12:00:00.000Z."""
    dt = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S") + f".{dt.microsecond // 1000:03d}Z"


def report_timestamp(now: Optional[datetime] = None) -> str:
    """Filename-safe form of `iso_utc`: 2025-01-01T12-00-00-000Z."""
    return iso_utc(now).replace(":", "-").replace(".", "-")


def _exists(files: ProjectFiles, project_dir: str, rel: str) -> bool:
    try:
        files.read_text_file(project_dir, rel)
    except Exception:
        return False
    return True


def write_report(
    files: ProjectFiles,
    project_dir: str,
    report: ImportReport,
    *,
    now: Optional[datetime] = None,
) -> str:
    """
    Write the report under `imports/` and return its project-relative path.

    Two runs in the same millisecond get `-1`, `-2`, ... suffixes rather than
    overwriting each other.
    """
    base = f"imports/import_report_{report_timestamp(now)}"
    rel = f"{base}.json"
    n = 0
    while _exists(files, project_dir, rel):
        n += 1
        rel = f"{base}-{n}.json"
    files.write_text_file(
        project_dir, rel, json.dumps(report.to_dict(), indent=2, ensure_ascii=False)
    )
    return rel


def load_report(files: ProjectFiles, project_dir: str, rel: str) -> ImportReport:
    return ImportReport.from_dict(json.loads(files.read_text_file(project_dir, rel)))


def report_summary(report: ImportReport) -> Dict[str, Any]:
    return {
        "imported": report.imported_count,
        "duplicates": report.duplicates,
        "unknown": len(report.unknown),
        "errors": len(report.errors),
        "warnings": len(report.warnings),
        "by_layer": dict(sorted(report.counts_by_layer.items())),
    }
