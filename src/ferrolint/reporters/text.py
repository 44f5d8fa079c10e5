from __future__ import annotations

from pathlib import Path

from ferrolint.engine.types import CheckSummary, Finding
from ferrolint.reporters.json_reporter import display_path


def render_text(summary: CheckSummary, *, project_root: Path) -> str:
    """
    One `path:line:col: lint: message` line per finding, each followed by an
    indented `help:` block when the finding carries a suggestion.
    """

    lines: list[str] = []
    for finding in summary.findings:
        lines.extend(_finding_lines(finding, project_root=project_root))
    noun = "file" if summary.files_checked == 1 else "files"
    lines.append(f"{len(summary.findings)} finding(s) in {summary.files_checked} {noun} checked.")
    return "\n".join(lines)


def _finding_lines(finding: Finding, *, project_root: Path) -> list[str]:
    loc = finding.location
    if loc is not None and loc.path is not None:
        where = f"{display_path(loc.path, project_root)}:{loc.start_line or 1}:{loc.start_col or 1}"
    else:
        where = "<unknown>"
    out = [f"{where}: {finding.lint}: {finding.message}"]
    suggestion = finding.suggestion
    if suggestion is None:
        return out

    target = ""
    if suggestion.path is not None and (loc is None or suggestion.path != loc.path):
        target = f" in {display_path(suggestion.path, project_root)}"
    replacement = suggestion.replacement.strip().split("\n")
    out.append(f"    help: {suggestion.help} ({suggestion.applicability.value}){target}: {replacement[0]}")
    out.extend(f"        {line}" if line else "" for line in replacement[1:])
    return out
