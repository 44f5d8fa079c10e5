from __future__ import annotations

from pathlib import Path

import pytest
from helpers import apply, block, call_stmt, ident, in_fn, make_ctx, span_of, tail, whole

from ferrolint.engine.types import Applicability
from ferrolint.oracles.hygiene import ExpansionTable
from ferrolint.rules.collapsible_if import (
    ELSE_IF_MESSAGE,
    NESTED_IF_MESSAGE,
    NO_MATCH,
    CollapsibleElse,
    CollapsibleIf,
    CollapsibleNested,
    match_collapsible,
)
from ferrolint.syntax.nodes import Binary, Block, ExprStmt, If, IfLet, Opaque, Span


def _nested(src: str, outer_cond, inner_cond) -> If:
    """`if <outer> { if <inner> { d(); } }` with spans taken from `src`."""

    inner_then = block(src, "{ d(); }", call_stmt(src, "d"))
    inner_start = src.index("if", 2)
    inner = If(cond=inner_cond, then=inner_then, els=None, span=Span(inner_start, inner_then.span.hi))
    outer_then = Block(stmts=(tail(inner),), span=Span(src.index("{ if"), len(src)))
    return If(cond=outer_cond, then=outer_then, els=None, span=whole(src))


def test_nested_if_is_collapsed_into_and(tmp_path: Path) -> None:
    src = "if x { if y { z(); } }"
    inner = If(cond=ident(src, "y"), then=block(src, "{ z(); }", call_stmt(src, "z")), els=None, span=span_of(src, "if y { z(); }"))
    outer = If(cond=ident(src, "x"), then=block(src, "{ if y { z(); } }", tail(inner)), els=None, span=whole(src))
    ctx = make_ctx(tmp_path, src, in_fn(src, tail(outer)))

    findings = CollapsibleIf().check_file(ctx)

    assert len(findings) == 1
    finding = findings[0]
    assert finding.lint == "collapsible_if"
    assert finding.message == NESTED_IF_MESSAGE
    assert finding.span == outer.span
    assert finding.location is not None
    assert (finding.location.start_line, finding.location.start_col) == (1, 1)
    assert finding.suggestion is not None
    assert finding.suggestion.replacement == "if x && y { z(); }"
    assert finding.suggestion.applicability is Applicability.MACHINE_APPLICABLE
    assert apply(src, finding.suggestion.span, finding.suggestion.replacement) == "if x && y { z(); }"


def test_else_block_holding_only_an_if_becomes_else_if(tmp_path: Path) -> None:
    src = "if x { a(); } else { if y { b(); } }"
    inner = If(cond=ident(src, "y"), then=block(src, "{ b(); }", call_stmt(src, "b")), els=None, span=span_of(src, "if y { b(); }"))
    els = block(src, "{ if y { b(); } }", tail(inner))
    outer = If(cond=ident(src, "x"), then=block(src, "{ a(); }", call_stmt(src, "a")), els=els, span=whole(src))
    ctx = make_ctx(tmp_path, src, in_fn(src, tail(outer)))

    findings = CollapsibleIf().check_file(ctx)

    assert len(findings) == 1
    finding = findings[0]
    assert finding.message == ELSE_IF_MESSAGE
    assert finding.span == els.span
    assert finding.suggestion is not None
    assert finding.suggestion.span == els.span
    assert finding.suggestion.replacement == "if y { b(); }"
    assert finding.suggestion.applicability is Applicability.MACHINE_APPLICABLE
    assert apply(src, finding.suggestion.span, finding.suggestion.replacement) == "if x { a(); } else if y { b(); }"


def test_else_block_holding_if_let_is_collapsed(tmp_path: Path) -> None:
    src = "if x { a(); } else { if let Some(v) = y { b(); } }"
    inner = IfLet(
        pat=span_of(src, "Some(v)"),
        scrutinee=ident(src, "y"),
        then=block(src, "{ b(); }", call_stmt(src, "b")),
        els=None,
        span=span_of(src, "if let Some(v) = y { b(); }"),
    )
    els = block(src, "{ if let Some(v) = y { b(); } }", tail(inner))
    outer = If(cond=ident(src, "x"), then=block(src, "{ a(); }", call_stmt(src, "a")), els=els, span=whole(src))
    ctx = make_ctx(tmp_path, src, in_fn(src, tail(outer)))

    findings = CollapsibleIf().check_file(ctx)

    assert [f.suggestion.replacement for f in findings if f.suggestion] == ["if let Some(v) = y { b(); }"]


@pytest.mark.parametrize(
    ("src", "outer_op", "inner_op", "expected"),
    [
        ("if a || b { if c { d(); } }", "||", None, "if (a || b) && c { d(); }"),
        ("if a { if b || c { d(); } }", None, "||", "if a && (b || c) { d(); }"),
        ("if a && b { if c { d(); } }", "&&", None, "if a && b && c { d(); }"),
        ("if a { if b && c { d(); } }", None, "&&", "if a && b && c { d(); }"),
        ("if a == b { if c { d(); } }", "==", None, "if a == b && c { d(); }"),
    ],
)
def test_combined_condition_respects_precedence(
    tmp_path: Path,
    src: str,
    outer_op: str | None,
    inner_op: str | None,
    expected: str,
) -> None:
    def cond(op: str | None, first: str, second: str):
        if op is None:
            return ident(src, first)
        return Binary(op=op, lhs=ident(src, first), rhs=ident(src, second), span=span_of(src, f"{first} {op} {second}"))

    outer_cond = cond(outer_op, "a", "b")
    inner_cond = cond(inner_op, "b" if outer_op is None else "c", "c")
    node = _nested(src, outer_cond, inner_cond)
    ctx = make_ctx(tmp_path, src, in_fn(src, tail(node)))

    findings = CollapsibleIf().check_file(ctx)

    assert len(findings) == 1
    assert findings[0].suggestion is not None
    assert findings[0].suggestion.replacement == expected


def test_multiline_body_is_reindented_to_block_granularity(tmp_path: Path) -> None:
    src = "fn f() {\n    if x {\n        if y {\n            z();\n        }\n    }\n}\n"
    inner_then = block(src, "{\n            z();\n        }", call_stmt(src, "z"))
    inner = If(cond=ident(src, "y"), then=inner_then, els=None, span=span_of(src, "if y {\n            z();\n        }"))
    outer_then = block(src, "{\n        if y {\n            z();\n        }\n    }", tail(inner))
    outer = If(
        cond=ident(src, "x"),
        then=outer_then,
        els=None,
        span=span_of(src, "if x {\n        if y {\n            z();\n        }\n    }"),
    )
    ctx = make_ctx(tmp_path, src, in_fn(src, tail(outer)))

    findings = CollapsibleIf().check_file(ctx)

    assert len(findings) == 1
    assert findings[0].suggestion is not None
    assert findings[0].suggestion.replacement == "if x && y {\n    z();\n}"
    assert findings[0].location is not None
    assert (findings[0].location.start_line, findings[0].location.start_col) == (2, 5)


def test_semicolon_terminated_inner_if_still_matches(tmp_path: Path) -> None:
    src = "if x { if y { z(); }; }"
    inner = If(cond=ident(src, "y"), then=block(src, "{ z(); }", call_stmt(src, "z")), els=None, span=span_of(src, "if y { z(); }"))
    stmt = ExprStmt(expr=inner, semi=True, span=span_of(src, "if y { z(); };"))
    outer = If(cond=ident(src, "x"), then=block(src, "{ if y { z(); }; }", stmt), els=None, span=whole(src))
    ctx = make_ctx(tmp_path, src, in_fn(src, tail(outer)))

    findings = CollapsibleIf().check_file(ctx)

    assert [f.suggestion.replacement for f in findings if f.suggestion] == ["if x && y { z(); }"]


def test_inner_if_with_else_is_not_collapsed(tmp_path: Path) -> None:
    src = "if x { if y { a(); } else { b(); } }"
    inner = If(
        cond=ident(src, "y"),
        then=block(src, "{ a(); }", call_stmt(src, "a")),
        els=block(src, "{ b(); }", call_stmt(src, "b")),
        span=span_of(src, "if y { a(); } else { b(); }"),
    )
    outer = If(cond=ident(src, "x"), then=block(src, "{ if y", tail(inner)), els=None, span=whole(src))
    ctx = make_ctx(tmp_path, src, in_fn(src, tail(outer)))

    assert CollapsibleIf().check_file(ctx) == []


def test_then_block_with_more_than_one_statement_is_not_collapsed(tmp_path: Path) -> None:
    src = "if x { a(); if y { b(); } }"
    inner = If(cond=ident(src, "y"), then=block(src, "{ b(); }", call_stmt(src, "b")), els=None, span=span_of(src, "if y { b(); }"))
    outer = If(cond=ident(src, "x"), then=block(src, "{ a(); if y { b(); } }", call_stmt(src, "a"), tail(inner)), els=None, span=whole(src))
    ctx = make_ctx(tmp_path, src, in_fn(src, tail(outer)))

    assert CollapsibleIf().check_file(ctx) == []


def test_outer_if_let_is_never_merged_with_inner_if(tmp_path: Path) -> None:
    src = "if let Some(v) = x { if y { b(); } }"
    inner = If(cond=ident(src, "y"), then=block(src, "{ b(); }", call_stmt(src, "b")), els=None, span=span_of(src, "if y { b(); }"))
    outer = IfLet(
        pat=span_of(src, "Some(v)"),
        scrutinee=ident(src, "x"),
        then=block(src, "{ if y { b(); } }", tail(inner)),
        els=None,
        span=whole(src),
    )
    ctx = make_ctx(tmp_path, src, in_fn(src, tail(outer)))

    assert CollapsibleIf().check_file(ctx) == []


def test_nested_ifs_from_different_expansion_contexts_are_skipped(tmp_path: Path) -> None:
    src = "if x { if y { z(); } }"
    inner = If(
        cond=ident(src, "y"),
        then=block(src, "{ z(); }", call_stmt(src, "z")),
        els=None,
        span=span_of(src, "if y { z(); }", ctxt=1),
    )
    outer = If(cond=ident(src, "x"), then=block(src, "{ if y { z(); } }", tail(inner)), els=None, span=whole(src))
    ctx = make_ctx(tmp_path, src, in_fn(src, tail(outer)))

    assert match_collapsible(outer, ExpansionTable()) is NO_MATCH
    assert CollapsibleIf().check_file(ctx) == []


def test_else_if_from_macro_expansion_is_skipped(tmp_path: Path) -> None:
    src = "if x { a(); } else { if y { b(); } }"
    inner = If(
        cond=ident(src, "y"),
        then=block(src, "{ b(); }", call_stmt(src, "b")),
        els=None,
        span=span_of(src, "if y { b(); }", ctxt=3),
    )
    els = block(src, "{ if y { b(); } }", tail(inner))
    outer = If(cond=ident(src, "x"), then=block(src, "{ a(); }", call_stmt(src, "a")), els=els, span=whole(src))
    ctx = make_ctx(tmp_path, src, in_fn(src, tail(outer)))

    assert CollapsibleIf().check_file(ctx) == []


def test_if_expanded_from_macro_is_not_inspected(tmp_path: Path) -> None:
    src = "if x { if y { z(); } }"
    inner = If(
        cond=ident(src, "y"),
        then=block(src, "{ z(); }", call_stmt(src, "z")),
        els=None,
        span=span_of(src, "if y { z(); }", ctxt=2),
    )
    outer = If(
        cond=ident(src, "x"),
        then=block(src, "{ if y { z(); } }", tail(inner)),
        els=None,
        span=span_of(src, src, ctxt=2),
    )
    ctx = make_ctx(tmp_path, src, in_fn(src, tail(outer)))

    assert CollapsibleIf().check_file(ctx) == []


def test_else_chain_reports_every_collapsible_level(tmp_path: Path) -> None:
    src = "if a {} else { if b {} else { if c {} } }"
    innermost = If(cond=ident(src, "c"), then=block(src, "{}", nth=2), els=None, span=span_of(src, "if c {}"))
    mid_els = block(src, "{ if c {} }", tail(innermost))
    mid = If(cond=ident(src, "b"), then=block(src, "{}", nth=1), els=mid_els, span=span_of(src, "if b {} else { if c {} }"))
    outer_els = block(src, "{ if b {} else { if c {} } }", tail(mid))
    outer = If(cond=ident(src, "a"), then=block(src, "{}"), els=outer_els, span=whole(src))
    ctx = make_ctx(tmp_path, src, in_fn(src, tail(outer)))

    findings = CollapsibleIf().check_file(ctx)

    assert [f.span for f in findings] == [outer_els.span, mid_els.span]
    assert [f.suggestion.replacement for f in findings if f.suggestion] == ["if b {} else { if c {} }", "if c {}"]
    assert all(f.message == ELSE_IF_MESSAGE for f in findings)


def test_deep_else_chain_does_not_recurse(tmp_path: Path) -> None:
    depth = 3000
    src = "x"
    cond = Opaque(kind="identifier", span=Span(0, 1))
    empty = Block(stmts=(), span=Span(0, 1))
    node = If(cond=cond, then=empty, els=None, span=Span(0, 1))
    for _ in range(depth):
        els = Block(stmts=(ExprStmt(expr=node, semi=False, span=Span(0, 1)),), span=Span(0, 1))
        node = If(cond=cond, then=empty, els=els, span=Span(0, 1))
    ctx = make_ctx(tmp_path, src, in_fn(src, tail(node)))

    assert len(CollapsibleIf().check_file(ctx)) == depth


def test_matcher_is_idempotent() -> None:
    src = "if x { a(); } else { if y { b(); } }"
    inner = If(cond=ident(src, "y"), then=block(src, "{ b(); }", call_stmt(src, "b")), els=None, span=span_of(src, "if y { b(); }"))
    els = block(src, "{ if y { b(); } }", tail(inner))
    outer = If(cond=ident(src, "x"), then=block(src, "{ a(); }", call_stmt(src, "a")), els=els, span=whole(src))
    spans = ExpansionTable()

    first = match_collapsible(outer, spans)
    second = match_collapsible(outer, spans)

    assert isinstance(first, CollapsibleElse)
    assert first == second
    assert first.inner is inner
    assert match_collapsible(inner, spans) is NO_MATCH
    assert match_collapsible(inner, spans) is NO_MATCH


def test_nested_verdict_captures_sub_nodes_of_matched_node() -> None:
    src = "if x { if y { z(); } }"
    inner = If(cond=ident(src, "y"), then=block(src, "{ z(); }", call_stmt(src, "z")), els=None, span=span_of(src, "if y { z(); }"))
    outer = If(cond=ident(src, "x"), then=block(src, "{ if y { z(); } }", tail(inner)), els=None, span=whole(src))

    verdict = match_collapsible(outer, ExpansionTable())

    assert isinstance(verdict, CollapsibleNested)
    assert verdict.outer is outer
    assert verdict.inner is inner
    assert outer.span.contains(verdict.inner.span)
