"""
Textual suggestion building with operator-precedence awareness.

A `Sugg` is a source snippet plus, when the snippet is itself a binary-like
expression, the operator at its root. Combining two suggestions with an
operator adds parentheses exactly where Rust's precedence would otherwise
regroup the operands.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from ferrolint.syntax.nodes import Assign, Binary, Cast, Expr, Range
from ferrolint.syntax.source import DEFAULT_SNIPPET, SourceFile

Associativity = Literal["both", "left", "right", "none"]

_ASSIGN_OPS = frozenset({"=", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<=", ">>="})

_PRECEDENCE: dict[str, int] = {
    "as": 14,
    "*": 13,
    "/": 13,
    "%": 13,
    "+": 12,
    "-": 12,
    "<<": 11,
    ">>": 11,
    "&": 10,
    "^": 9,
    "|": 8,
    "<": 7,
    ">": 7,
    "<=": 7,
    ">=": 7,
    "==": 7,
    "!=": 7,
    "&&": 6,
    "||": 5,
    "..": 4,
    "..=": 4,
    **{op: 2 for op in _ASSIGN_OPS},
}

_ASSOCIATIVITY: dict[str, Associativity] = {
    **{op: "both" for op in ("+", "&", "|", "^", "&&", "||", "*", "as")},
    **{op: "left" for op in ("/", "%", "-", "<<", ">>", "<", ">", "<=", ">=", "==", "!=")},
    **{op: "right" for op in _ASSIGN_OPS},
    "..": "none",
    "..=": "none",
}

_ARITH = frozenset({"+", "-", "*", "/", "%"})
_SHIFT = frozenset({"<<", ">>"})


@dataclass(frozen=True, slots=True)
class Sugg:
    text: str
    op: str | None = None

    @classmethod
    def from_expr(cls, expr: Expr, source: SourceFile, default: str = DEFAULT_SNIPPET) -> Sugg:
        text = source.snippet(expr.span, default)
        if isinstance(expr, Binary):
            return cls(text, expr.op)
        if isinstance(expr, Assign):
            return cls(text, expr.op if expr.op in _ASSIGN_OPS else "=")
        if isinstance(expr, Range):
            return cls(text, "..=" if expr.op in {"..=", "..."} else "..")
        if isinstance(expr, Cast):
            return cls(text, "as")
        return cls(text)

    def and_(self, other: Sugg) -> Sugg:
        """`self && other`, parenthesising whichever side binds looser than `&&`."""

        return make_binop("&&", self, other)

    def __str__(self) -> str:
        return self.text


def make_binop(op: str, lhs: Sugg, rhs: Sugg) -> Sugg:
    lhs_text = _paren(lhs.text) if lhs.op is not None and needs_paren(op, lhs.op, "left") else lhs.text
    rhs_text = _paren(rhs.text) if rhs.op is not None and needs_paren(op, rhs.op, "right") else rhs.text
    return Sugg(f"{lhs_text} {op} {rhs_text}", op)


def needs_paren(op: str, other: str, direction: Associativity) -> bool:
    """
    Whether an operand rooted at `other` needs parentheses on the `direction`
    side of `op`.
    """

    prec_op = _PRECEDENCE[op]
    prec_other = _PRECEDENCE.get(other, prec_op)
    if prec_other < prec_op:
        return True
    if prec_other == prec_op:
        assoc = _ASSOCIATIVITY[op]
        if op != other and assoc != direction:
            return True
        if op == other and assoc != "both":
            return True
    return (op in _SHIFT and other in _ARITH) or (other in _SHIFT and op in _ARITH)


def _paren(text: str) -> str:
    return f"({text})"
