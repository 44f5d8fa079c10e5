from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from ferrolint.config import CONFIG_FILENAME, FerrolintConfig, load_config, path_is_ignored
from ferrolint.engine.context import FileContext, ProjectContext
from ferrolint.engine.detection import detect
from ferrolint.engine.tree_sitter import parse_rust
from ferrolint.engine.types import CheckSummary
from ferrolint.oracles.crate_index import CrateIndex
from ferrolint.oracles.hygiene import ExpansionTable
from ferrolint.rules.registry import builtin_rules
from ferrolint.suppressions import parse_suppressions
from ferrolint.syntax.lower import LoweringError, lower_tree
from ferrolint.syntax.source import SourceFile

logger = logging.getLogger(__name__)

RUST_EXTENSIONS = frozenset({".rs"})
ROOT_MARKERS = (CONFIG_FILENAME, "Cargo.toml", "pyproject.toml")

DEFAULT_SKIP_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".idea",
    ".vscode",
    "target",
    "node_modules",
    "__pycache__",
}


@dataclass(frozen=True, slots=True)
class ScanTarget:
    project_root: Path
    scan_path: Path
    config: FerrolintConfig


def prepare_target(scan_path: Path) -> ScanTarget:
    """
    Resolve project root and load configuration.

    The root is the closest directory (starting at `scan_path`) holding
    `ferrolint.toml`, `Cargo.toml` or `pyproject.toml`; otherwise the scanned
    directory itself (or the file's parent).
    """

    scan_path = scan_path.resolve()
    project_root = _detect_project_root(scan_path)
    config = load_config(project_root)
    return ScanTarget(project_root=project_root, scan_path=scan_path, config=config)


def discover_files(target: ScanTarget) -> list[Path]:
    scan_path = target.scan_path
    root = target.project_root
    ignore_patterns = target.config.ignore.paths

    if scan_path.is_file():
        if scan_path.suffix.lower() not in RUST_EXTENSIONS:
            return []
        if path_is_ignored(scan_path, project_root=root, ignore_patterns=ignore_patterns):
            return []
        return [scan_path]

    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(scan_path, topdown=True):
        dirnames[:] = [d for d in dirnames if d not in DEFAULT_SKIP_DIRS]
        base = Path(dirpath)
        for filename in filenames:
            path = base / filename
            if path.suffix.lower() not in RUST_EXTENSIONS:
                continue
            if path_is_ignored(path, project_root=root, ignore_patterns=ignore_patterns):
                continue
            files.append(path)

    return sorted(set(files))


def build_project_context(target: ScanTarget, files: list[Path]) -> ProjectContext:
    return ProjectContext(
        project_root=target.project_root,
        scan_path=target.scan_path,
        files=tuple(files),
        config=target.config,
    )


def build_file_context(project: ProjectContext, path: Path) -> FileContext | None:
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.warning("Cannot read %s: %s", path, exc)
        return None

    return build_file_context_from_text(project, path, text)


def build_file_context_from_text(project: ProjectContext, path: Path, text: str) -> FileContext:
    """
    Parse and lower `text`. When tree-sitter is unavailable or the tree is
    not a Rust source file, the context has no `crate` and yields no findings.
    """

    source = SourceFile(text, path=path)
    suppressions = parse_suppressions(text.splitlines())

    crate = None
    tree = parse_rust(text)
    if tree is not None:
        try:
            crate = lower_tree(tree, source)
        except LoweringError as exc:
            logger.debug("%s: %s", path, exc)

    return FileContext(
        project_root=project.project_root,
        path=path,
        relative_path=relative_path(path, project.project_root),
        source=source,
        suppressions=suppressions,
        crate=crate,
    )


def build_file_contexts(project: ProjectContext, paths: Iterable[Path]) -> list[FileContext]:
    contexts: list[FileContext] = []
    for path in paths:
        ctx = build_file_context(project, path)
        if ctx is not None:
            contexts.append(ctx)
    return contexts


def build_index(contexts: Iterable[FileContext], config: FerrolintConfig) -> CrateIndex:
    """Type oracle over every lowered file of the project."""

    return CrateIndex.from_sources(
        ((ctx.crate, ctx.source) for ctx in contexts if ctx.crate is not None),
        extra_default_types=config.default_types,
    )


def check_contexts(project: ProjectContext, contexts: list[FileContext]) -> CheckSummary:
    index = build_index(contexts, project.config)
    rules = builtin_rules(project.config, types=index, spans=ExpansionTable())
    findings = detect(project, contexts, rules)
    skipped = tuple(ctx.path for ctx in contexts if ctx.crate is None)
    return CheckSummary(files_checked=len(contexts), findings=tuple(findings), files_skipped=skipped)


def check_path(scan_path: Path) -> CheckSummary:
    return check_target(prepare_target(scan_path))


def check_target(target: ScanTarget) -> CheckSummary:
    files = discover_files(target)
    project = build_project_context(target, files)
    contexts = build_file_contexts(project, files)
    logger.debug("checking %d file(s) under %s", len(contexts), target.project_root)
    return check_contexts(project, contexts)


def relative_path(path: Path, root: Path) -> str:
    """POSIX-style `path` relative to `root`, or `path` itself when outside it."""

    try:
        return path.resolve().relative_to(root.resolve()).as_posix()
    except (ValueError, OSError):
        return path.as_posix()


def _detect_project_root(start: Path) -> Path:
    base = start if start.is_dir() else start.parent
    for candidate in [base, *base.parents]:
        if any((candidate / marker).is_file() for marker in ROOT_MARKERS):
            return candidate
    return base
