from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ferrolint.config import FerrolintConfig
from ferrolint.suppressions import Suppressions
from ferrolint.syntax.nodes import Crate
from ferrolint.syntax.source import SourceFile


@dataclass(frozen=True, slots=True)
class ProjectContext:
    project_root: Path
    scan_path: Path
    files: tuple[Path, ...]
    config: FerrolintConfig


@dataclass(frozen=True, slots=True)
class FileContext:
    project_root: Path
    path: Path
    relative_path: str
    source: SourceFile
    suppressions: Suppressions
    crate: Crate | None = None

    @property
    def text(self) -> str:
        return self.source.text
