from __future__ import annotations

import logging
from collections.abc import Iterable

from ferrolint.config import FerrolintConfig
from ferrolint.engine.context import FileContext, ProjectContext
from ferrolint.engine.types import Finding
from ferrolint.rules.base import BaseRule

logger = logging.getLogger(__name__)


def detect(project: ProjectContext, files: Iterable[FileContext], rules: Iterable[BaseRule]) -> list[Finding]:
    """
    Run `rules` over every file and return the surviving findings.

    Lints listed under `allow` are dropped, then in-file suppression
    comments are applied. Files are processed one at a time in the given
    order, so output is deterministic.
    """

    rules_list = list(rules)
    findings: list[Finding] = []
    for file_ctx in files:
        findings.extend(_detect_file(project.config, rules_list, file_ctx))
    return findings


def _detect_file(config: FerrolintConfig, rules: Iterable[BaseRule], file_ctx: FileContext) -> list[Finding]:
    if file_ctx.crate is None:
        logger.debug("%s: no syntax tree, skipping", file_ctx.relative_path)
        return []
    findings: list[Finding] = []
    for rule in rules:
        if not any(config.lint_enabled(meta.name) for meta in rule.lints):
            continue
        for finding in rule.check_file(file_ctx):
            if not config.lint_enabled(finding.lint):
                continue
            if _is_suppressed(file_ctx, finding):
                continue
            findings.append(finding)
    return findings


def _is_suppressed(ctx: FileContext, finding: Finding) -> bool:
    line = finding.location.start_line if finding.location else None
    return ctx.suppressions.is_suppressed(finding.lint, line=line)
