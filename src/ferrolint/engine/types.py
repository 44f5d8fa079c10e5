from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ferrolint.syntax.nodes import Span


class Applicability(str, Enum):
    # Substituting the replacement is safe to do without review.
    MACHINE_APPLICABLE = "machine-applicable"
    # The replacement compiles in the common case but changes more than syntax.
    MAYBE_INCORRECT = "maybe-incorrect"


@dataclass(frozen=True, slots=True)
class Suggestion:
    span: Span
    replacement: str
    applicability: Applicability
    help: str = "try"
    # File the span belongs to; None for the file the finding is in.
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class Location:
    path: Path | None = None
    start_line: int | None = None  # 1-based
    start_col: int | None = None  # 1-based
    end_line: int | None = None  # 1-based
    end_col: int | None = None  # 1-based


@dataclass(frozen=True, slots=True)
class Finding:
    lint: str
    message: str
    span: Span
    location: Location | None = None
    suggestion: Suggestion | None = None


@dataclass(frozen=True, slots=True)
class CheckSummary:
    files_checked: int
    findings: tuple[Finding, ...]
    files_skipped: tuple[Path, ...] = ()
