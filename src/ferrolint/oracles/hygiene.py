from __future__ import annotations

from ferrolint.syntax.nodes import Span

ROOT_CTXT = 0


class ExpansionTable:
    """
    Span oracle backed by the expansion context ids stamped on spans.

    The tree-sitter front end never lowers macro bodies (they stay token
    trees), so every span it produces is in the root context. Front ends that
    do expand macros stamp a non-zero `ctxt` per expansion.
    """

    def in_macro(self, span: Span) -> bool:
        return span.ctxt != ROOT_CTXT

    def same_ctxt(self, a: Span, b: Span) -> bool:
        return a.ctxt == b.ctxt
