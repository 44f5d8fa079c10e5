from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Protocol

from ferrolint.engine.context import FileContext
from ferrolint.engine.types import Finding, Location, Suggestion
from ferrolint.syntax.nodes import Span


@dataclass(frozen=True, slots=True)
class LintMeta:
    name: str
    summary: str
    explanation: str


class FindingSink(Protocol):
    def emit(self, finding: Finding) -> None: ...


class FindingCollector:
    """Sink that keeps findings in emission order."""

    def __init__(self) -> None:
        self.findings: list[Finding] = []

    def emit(self, finding: Finding) -> None:
        self.findings.append(finding)


class BaseRule(ABC):
    lints: tuple[LintMeta, ...]

    @abstractmethod
    def run(self, ctx: FileContext, sink: FindingSink) -> None:
        """Visit the file's tree and emit findings."""

    def check_file(self, ctx: FileContext) -> list[Finding]:
        sink = FindingCollector()
        if ctx.crate is not None:
            self.run(ctx, sink)
        return sink.findings

    def _finding(
        self,
        ctx: FileContext,
        *,
        lint: str,
        span: Span,
        message: str,
        suggestion: Suggestion | None = None,
    ) -> Finding:
        return Finding(
            lint=lint,
            message=message,
            span=span,
            location=loc_from_span(ctx, span),
            suggestion=suggestion,
        )


def loc_from_span(ctx: FileContext, span: Span) -> Location:
    start_line, start_col = ctx.source.line_col(span.lo)
    end_line, end_col = ctx.source.line_col(span.hi)
    return Location(
        path=ctx.path,
        start_line=start_line,
        start_col=start_col,
        end_line=end_line,
        end_col=end_col,
    )
