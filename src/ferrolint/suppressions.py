from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType

from ferrolint.config import normalize_lint_name

ALL = "all"


@dataclass(frozen=True, slots=True)
class Suppressions:
    """
    Lint suppressions taken from comments in the file.

    Directives (case-insensitive, anywhere in a line):
    - `ferrolint: allow-file=collapsible_if` silences a lint for the whole file
    - `ferrolint: allow=collapsible_if` silences it on the same line
    - `ferrolint: allow-next-line=new_without_default` silences it on the next line
    """

    allowed_in_file: frozenset[str]
    allowed_on_line: Mapping[int, frozenset[str]]

    def is_suppressed(self, lint: str, *, line: int | None) -> bool:
        if ALL in self.allowed_in_file or lint in self.allowed_in_file:
            return True
        if line is None:
            return False
        allowed = self.allowed_on_line.get(line)
        if not allowed:
            return False
        return ALL in allowed or lint in allowed


NO_SUPPRESSIONS = Suppressions(allowed_in_file=frozenset(), allowed_on_line=MappingProxyType({}))

_NAMES = r"(?P<names>[a-z0-9_:,\-\s]+)"
_ALLOW_FILE_RE = re.compile(r"ferrolint:\s*allow[-_]file\s*=\s*" + _NAMES, re.IGNORECASE)
_ALLOW_NEXT_RE = re.compile(r"ferrolint:\s*allow[-_]next[-_]line\s*=\s*" + _NAMES, re.IGNORECASE)
_ALLOW_RE = re.compile(r"ferrolint:\s*allow\s*=\s*" + _NAMES, re.IGNORECASE)


def parse_suppressions(lines: Sequence[str]) -> Suppressions:
    allowed_in_file: set[str] = set()
    allowed_on_line: dict[int, set[str]] = {}

    for idx, line in enumerate(lines, start=1):
        if "ferrolint" not in line.lower():
            continue

        match_file = _ALLOW_FILE_RE.search(line)
        if match_file:
            allowed_in_file.update(_parse_names(match_file.group("names")))

        match = _ALLOW_RE.search(line)
        if match:
            allowed_on_line.setdefault(idx, set()).update(_parse_names(match.group("names")))

        match_next = _ALLOW_NEXT_RE.search(line)
        if match_next:
            allowed_on_line.setdefault(idx + 1, set()).update(_parse_names(match_next.group("names")))

    frozen = {line: frozenset(names) for line, names in allowed_on_line.items()}
    return Suppressions(allowed_in_file=frozenset(allowed_in_file), allowed_on_line=MappingProxyType(frozen))


def _parse_names(value: str) -> set[str]:
    names: set[str] = set()
    for token in re.split(r"[,\s]+", value.strip()):
        if token:
            names.add(normalize_lint_name(token))
    return names
