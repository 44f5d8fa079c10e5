from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ferrolint import __version__
from ferrolint.engine.types import CheckSummary, Finding, Suggestion

REPORT_SCHEMA_VERSION = 1


def render_json(summary: CheckSummary, *, project_root: Path) -> str:
    payload = {
        "schema_version": REPORT_SCHEMA_VERSION,
        "tool": {"name": "ferrolint", "version": __version__},
        "files_checked": summary.files_checked,
        "files_skipped": [display_path(p, project_root) for p in summary.files_skipped],
        "findings": [_finding_to_dict(f, project_root=project_root) for f in summary.findings],
    }
    return json.dumps(payload, indent=2, sort_keys=False)


def display_path(path: Path, project_root: Path) -> str:
    try:
        return path.resolve().relative_to(project_root.resolve()).as_posix()
    except (ValueError, OSError):
        return path.as_posix()


def _finding_to_dict(f: Finding, *, project_root: Path) -> dict[str, Any]:
    loc = None
    if f.location is not None and f.location.path is not None:
        loc = {
            "path": display_path(f.location.path, project_root),
            "start_line": f.location.start_line,
            "start_col": f.location.start_col,
            "end_line": f.location.end_line,
            "end_col": f.location.end_col,
        }

    return {
        "lint": f.lint,
        "message": f.message,
        "span": {"lo": f.span.lo, "hi": f.span.hi},
        "location": loc,
        "suggestion": _suggestion_to_dict(f.suggestion, project_root=project_root) if f.suggestion is not None else None,
    }


def _suggestion_to_dict(s: Suggestion, *, project_root: Path) -> dict[str, Any]:
    return {
        "help": s.help,
        "path": display_path(s.path, project_root) if s.path is not None else None,
        "span": {"lo": s.span.lo, "hi": s.span.hi},
        "replacement": s.replacement,
        "applicability": s.applicability.value,
    }
