"""
`collapsible_if`: nested `if` statements that can be merged.

Catches

    if x {
        if y {
            ..
        }
    }

which reads better as `if x && y { .. }`, and

    if x {
        ..
    } else {
        if y {
            ..
        }
    }

which reads better as `} else if y {`. Only the shape of the tree is
inspected; no type information is needed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ferrolint.engine.context import FileContext
from ferrolint.engine.types import Applicability, Suggestion
from ferrolint.oracles.hygiene import ExpansionTable
from ferrolint.oracles.protocols import SpanOracle
from ferrolint.rules.base import BaseRule, FindingSink, LintMeta
from ferrolint.rules.sugg import Sugg
from ferrolint.syntax.nodes import Block, ElseBranch, Expr, ExprStmt, If, IfLet, Span
from ferrolint.syntax.source import SourceFile
from ferrolint.syntax.visit import iter_exprs

COLLAPSIBLE_IF = LintMeta(
    name="collapsible_if",
    summary="`if`s that can be collapsed (e.g. `if x { if y { .. } }` and `else { if x { .. } }`)",
    explanation=(
        "Each `if` adds a level of nesting. An `if` whose only content is another `if` can "
        "`&&`-combine the two conditions, and an `else` block whose only content is an `if` "
        "can be written as `else if`."
    ),
)

ELSE_IF_MESSAGE = "this `else { if .. }` block can be collapsed"
NESTED_IF_MESSAGE = "this if statement can be collapsed"


@dataclass(frozen=True, slots=True)
class NoMatch:
    pass


NO_MATCH = NoMatch()


@dataclass(frozen=True, slots=True)
class CollapsibleElse:
    """`else { if .. }`: the else block holds nothing but `inner`."""

    else_block: Block
    inner: If | IfLet

    @property
    def span(self) -> Span:
        return self.else_block.span

    @property
    def message(self) -> str:
        return ELSE_IF_MESSAGE


@dataclass(frozen=True, slots=True)
class CollapsibleNested:
    """`if a { if b { .. } }` with neither `if` having an else branch."""

    outer: If
    inner: If

    @property
    def span(self) -> Span:
        return self.outer.span

    @property
    def message(self) -> str:
        return NESTED_IF_MESSAGE


MatchVerdict = NoMatch | CollapsibleElse | CollapsibleNested


def expr_block(block: Block) -> Expr | None:
    """The block's expression if it consists of exactly one expression statement."""

    if len(block.stmts) != 1:
        return None
    stmt = block.stmts[0]
    if isinstance(stmt, ExprStmt):
        return stmt.expr
    return None


def match_collapsible(node: Expr, spans: SpanOracle) -> MatchVerdict:
    if isinstance(node, If | IfLet) and node.els is not None:
        return match_collapsible_else(node.els, spans)
    if isinstance(node, If):
        return match_collapsible_nested(node, spans)
    return NO_MATCH


def match_collapsible_else(els: ElseBranch, spans: SpanOracle) -> MatchVerdict:
    # `else if` is already collapsed; only a literal `else { .. }` block qualifies.
    if not isinstance(els, Block):
        return NO_MATCH
    inner = expr_block(els)
    if not isinstance(inner, If | IfLet):
        return NO_MATCH
    if spans.in_macro(inner.span):
        return NO_MATCH
    return CollapsibleElse(else_block=els, inner=inner)


def match_collapsible_nested(outer: If, spans: SpanOracle) -> MatchVerdict:
    if outer.els is not None:
        return NO_MATCH
    inner = expr_block(outer.then)
    if not isinstance(inner, If) or inner.els is not None:
        return NO_MATCH
    # The nesting crosses a macro boundary; merging would rewrite generated code.
    if not spans.same_ctxt(outer.span, inner.span):
        return NO_MATCH
    return CollapsibleNested(outer=outer, inner=inner)


def suggest_collapse(verdict: CollapsibleElse | CollapsibleNested, source: SourceFile) -> Suggestion:
    if isinstance(verdict, CollapsibleElse):
        return Suggestion(
            span=verdict.else_block.span,
            replacement=source.snippet_block(verdict.inner.span),
            applicability=Applicability.MACHINE_APPLICABLE,
        )
    lhs = Sugg.from_expr(verdict.outer.cond, source)
    rhs = Sugg.from_expr(verdict.inner.cond, source)
    body = source.snippet_block(verdict.inner.then.span)
    return Suggestion(
        span=verdict.outer.span,
        replacement=f"if {lhs.and_(rhs)} {body}",
        applicability=Applicability.MACHINE_APPLICABLE,
    )


@dataclass(frozen=True, slots=True)
class CollapsibleIf(BaseRule):
    lints = (COLLAPSIBLE_IF,)

    spans: SpanOracle = field(default_factory=ExpansionTable)

    def run(self, ctx: FileContext, sink: FindingSink) -> None:
        assert ctx.crate is not None
        for expr in iter_exprs(ctx.crate):
            if self.spans.in_macro(expr.span):
                continue
            verdict = match_collapsible(expr, self.spans)
            if isinstance(verdict, NoMatch):
                continue
            sink.emit(
                self._finding(
                    ctx,
                    lint=COLLAPSIBLE_IF.name,
                    span=verdict.span,
                    message=verdict.message,
                    suggestion=suggest_collapse(verdict, ctx.source),
                )
            )
