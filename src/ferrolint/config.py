from __future__ import annotations

import re
import tomllib
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


class ConfigError(ValueError):
    """Raised when a ferrolint configuration file is invalid."""


CONFIG_FILENAME = "ferrolint.toml"
DEFAULT_TRAIT = "core::default::Default"

# NOTE: Keep in sync with `ferrolint.rules.registry.builtin_rules()`; tests
# assert both sides agree. Kept here so configuration can be validated without
# importing the rules.
KNOWN_LINTS: tuple[str, ...] = (
    "collapsible_if",
    "new_without_default",
    "new_without_default_derive",
)

_LINT_PREFIXES = ("ferrolint::", "clippy::")
_TRAIT_PATH_RE = re.compile(r"^(::)?[A-Za-z_][A-Za-z0-9_]*(::[A-Za-z_][A-Za-z0-9_]*)*$")


@dataclass(frozen=True, slots=True)
class IgnoreConfig:
    paths: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class FerrolintConfig:
    allow: frozenset[str] = frozenset()
    default_trait: str = DEFAULT_TRAIT
    default_types: tuple[str, ...] = ()
    ignore: IgnoreConfig = field(default_factory=IgnoreConfig)

    def lint_enabled(self, lint: str) -> bool:
        return "all" not in self.allow and lint not in self.allow


def normalize_lint_name(value: str) -> str:
    name = value.strip().lower()
    for prefix in _LINT_PREFIXES:
        if name.startswith(prefix):
            name = name[len(prefix) :]
    return name.replace("-", "_")


def find_config_file(project_dir: Path) -> Path | None:
    """Return the file that configures `project_dir`, if any."""

    dedicated = project_dir / CONFIG_FILENAME
    if dedicated.is_file():
        return dedicated
    pyproject = project_dir / "pyproject.toml"
    if pyproject.is_file():
        return pyproject
    return None


def load_config(project_dir: Path | str = ".") -> FerrolintConfig:
    """
    Load configuration for `project_dir`.

    `ferrolint.toml` (top-level keys) wins over a `[tool.ferrolint]` table in
    `pyproject.toml`. Without either, returns defaults.
    """

    path = find_config_file(Path(project_dir))
    if path is None:
        return FerrolintConfig()

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
    except OSError as exc:  # pragma: no cover (race with deletion / permissions)
        raise ConfigError(f"Cannot read {path}: {exc}") from exc

    if path.name == CONFIG_FILENAME:
        return parse_config_table(data, prefix="")

    tool_table = data.get("tool", {})
    if not isinstance(tool_table, dict):
        return FerrolintConfig()
    table = tool_table.get("ferrolint", {})
    if not isinstance(table, dict) or not table:
        return FerrolintConfig()
    return parse_config_table(table, prefix="tool.ferrolint.")


def parse_config_table(table: dict[str, Any], *, prefix: str) -> FerrolintConfig:
    allow = _parse_allow(table.get("allow", []), field_name=f"{prefix}allow")

    default_trait = table.get("default-trait", table.get("default_trait", DEFAULT_TRAIT))
    if not isinstance(default_trait, str) or not _TRAIT_PATH_RE.match(default_trait.strip()):
        raise ConfigError(f"`{prefix}default-trait` must be a path such as `core::default::Default`.")

    default_types = _validate_str_list(
        table.get("default-types", table.get("default_types", [])),
        field_name=f"{prefix}default-types",
    )
    ignore = _parse_ignore_config(table.get("ignore", {}), field_name=f"{prefix}ignore")

    return FerrolintConfig(
        allow=allow,
        default_trait=default_trait.strip(),
        default_types=tuple(t for t in default_types if t),
        ignore=ignore,
    )


def _validate_str_list(value: Any, *, field_name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or any(not isinstance(v, str) for v in value):
        raise ConfigError(f"`{field_name}` must be a list of strings.")
    return tuple(v.strip() for v in value)


def _parse_allow(value: Any, *, field_name: str) -> frozenset[str]:
    names: set[str] = set()
    for raw in _validate_str_list(value, field_name=field_name):
        if not raw:
            continue
        name = normalize_lint_name(raw)
        if name != "all" and name not in KNOWN_LINTS:
            valid = ", ".join(KNOWN_LINTS)
            raise ConfigError(f"`{field_name}` contains unknown lint {raw!r}. Valid lints: {valid}, all.")
        names.add(name)
    return frozenset(names)


def _parse_ignore_config(value: Any, *, field_name: str) -> IgnoreConfig:
    if value is None:
        return IgnoreConfig()
    if not isinstance(value, dict):
        raise ConfigError(f"`{field_name}` must be a table.")
    paths = _validate_str_list(value.get("paths", []), field_name=f"{field_name}.paths")
    return IgnoreConfig(paths=paths)


def path_is_ignored(path: Path, *, project_root: Path, ignore_patterns: Iterable[str]) -> bool:
    """
    Return True if `path` matches any ignore pattern.

    Patterns are matched against the POSIX-style path relative to
    `project_root`: a trailing "/" is a directory prefix, a pattern without
    "/" is a basename glob, anything else is a full relative-path glob.
    """

    import fnmatch

    try:
        relative = path.resolve().relative_to(project_root.resolve())
    except (ValueError, OSError, RuntimeError):
        return False

    rel_posix = relative.as_posix()
    basename = relative.name

    for raw_pattern in ignore_patterns:
        pattern = raw_pattern.strip().replace("\\", "/")
        if not pattern:
            continue
        if pattern.startswith("./"):
            pattern = pattern[2:]

        if pattern.endswith("/"):
            if rel_posix.startswith(pattern):
                return True
            continue

        if "/" in pattern:
            if fnmatch.fnmatch(rel_posix, pattern):
                return True
        elif fnmatch.fnmatch(basename, pattern) or fnmatch.fnmatch(rel_posix, pattern):
            return True

    return False
