from __future__ import annotations

from pathlib import Path

from ferrolint.syntax.nodes import Span

DEFAULT_SNIPPET = "..."


class SourceFile:
    """
    Read-only access to the text behind spans.

    Spans are byte offsets (tree-sitter reports bytes), so slicing happens on
    the UTF-8 encoding and is decoded afterwards.
    """

    def __init__(self, text: str, *, path: Path | None = None) -> None:
        self.path = path
        self.text = text
        self._data = text.encode("utf-8", errors="replace")
        self._line_starts = _line_starts(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def snippet(self, span: Span, default: str = DEFAULT_SNIPPET) -> str:
        if not (0 <= span.lo <= span.hi <= len(self._data)):
            return default
        return self._data[span.lo : span.hi].decode("utf-8", errors="replace")

    def snippet_block(self, span: Span, default: str = DEFAULT_SNIPPET) -> str:
        """
        Snippet of a block-like construct with the common indentation of its
        continuation lines removed, so it can be re-embedded at any depth.
        """

        return trim_multiline(self.snippet(span, default), ignore_first=True)

    def indent_of(self, span: Span) -> str:
        """Leading whitespace of the line `span` starts on."""

        if not (0 <= span.lo <= len(self._data)):
            return ""
        start = self._line_starts[self._line_index(span.lo)]
        line = self._data[start:span.lo]
        width = len(line) - len(line.lstrip(b" \t"))
        return line[:width].decode("utf-8", errors="replace")

    def line_col(self, offset: int) -> tuple[int, int]:
        """1-based (line, column) of a byte offset; columns count characters."""

        offset = max(0, min(offset, len(self._data)))
        idx = self._line_index(offset)
        start = self._line_starts[idx]
        col = len(self._data[start:offset].decode("utf-8", errors="replace")) + 1
        return idx + 1, col

    def _line_index(self, offset: int) -> int:
        lo, hi = 0, len(self._line_starts) - 1
        while lo < hi:
            mid = (lo + hi + 1) // 2
            if self._line_starts[mid] <= offset:
                lo = mid
            else:
                hi = mid - 1
        return lo


def _line_starts(data: bytes) -> list[int]:
    starts = [0]
    pos = data.find(b"\n")
    while pos != -1:
        starts.append(pos + 1)
        pos = data.find(b"\n", pos + 1)
    return starts


def trim_multiline(text: str, *, ignore_first: bool) -> str:
    trimmed = _trim_multiline_inner(text, ignore_first, " ")
    trimmed = _trim_multiline_inner(trimmed, ignore_first, "\t")
    return _trim_multiline_inner(trimmed, ignore_first, " ")


def _trim_multiline_inner(text: str, ignore_first: bool, ch: str) -> str:
    lines = text.split("\n")
    candidates = lines[1:] if ignore_first else lines
    widths = [len(line) - len(line.lstrip(ch)) for line in candidates if line]
    width = min(widths, default=0)
    if width == 0:
        return text
    out: list[str] = []
    for idx, line in enumerate(lines):
        if (ignore_first and idx == 0) or not line:
            out.append(line)
        else:
            out.append(line[width:])
    return "\n".join(out)


def reindent(text: str, indent: str) -> str:
    """Prefix every line but the first with `indent` (blank lines stay blank)."""

    if not indent:
        return text
    lines = text.split("\n")
    return "\n".join([lines[0], *(f"{indent}{line}" if line else line for line in lines[1:])])
