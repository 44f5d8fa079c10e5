from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ferrolint.engine.context import FileContext
from ferrolint.suppressions import parse_suppressions
from ferrolint.syntax.nodes import (
    NO_GENERICS,
    Block,
    Call,
    Crate,
    Expr,
    ExprStmt,
    FnItem,
    FnSig,
    Item,
    Opaque,
    Span,
    Stmt,
    TyRef,
)
from ferrolint.syntax.source import SourceFile


def span_of(src: str, needle: str, nth: int = 0, *, ctxt: int = 0) -> Span:
    """Byte span of the `nth` occurrence of `needle` in `src`."""

    data = src.encode("utf-8")
    pattern = needle.encode("utf-8")
    start = -1
    for _ in range(nth + 1):
        start = data.find(pattern, start + 1)
        if start == -1:
            raise AssertionError(f"occurrence {nth} of {needle!r} not found")
    return Span(start, start + len(pattern), ctxt)


def ident(src: str, name: str, nth: int = 0, *, ctxt: int = 0) -> Opaque:
    return Opaque(kind="identifier", span=span_of(src, name, nth, ctxt=ctxt))


def call_stmt(src: str, name: str, nth: int = 0) -> ExprStmt:
    """`name();` as a statement."""

    call = Call(func=ident(src, name, nth), args=(), span=span_of(src, f"{name}()", nth))
    return ExprStmt(expr=call, semi=True, span=span_of(src, f"{name}();", nth))


def block(src: str, text: str, *stmts: Stmt, nth: int = 0, ctxt: int = 0) -> Block:
    return Block(stmts=stmts, span=span_of(src, text, nth, ctxt=ctxt))


def tail(expr: Expr) -> ExprStmt:
    return ExprStmt(expr=expr, semi=False, span=expr.span)


def path_ty(src: str, name: str, nth: int = 0, *, args: tuple[TyRef, ...] = (), text: str | None = None) -> TyRef:
    shown = text if text is not None else name
    return TyRef(kind="path", name=name, span=span_of(src, shown, nth), args=args, text=shown)


def self_ty(src: str, nth: int = 0) -> TyRef:
    return TyRef(kind="self", name="Self", span=span_of(src, "Self", nth), text="Self")


def whole(src: str) -> Span:
    return Span(0, len(src.encode("utf-8")))


def crate_of(src: str, *items: Item) -> Crate:
    return Crate(items=items, span=whole(src))


def in_fn(src: str, *stmts: Stmt) -> Crate:
    """Wrap statements in a private `fn f()` spanning the whole source."""

    sig = FnSig(name="f", param_count=0, has_self=False, is_const=False, generics=NO_GENERICS, ret=None)
    fn = FnItem(sig=sig, vis="", body=Block(stmts=stmts, span=whole(src)), span=whole(src))
    return crate_of(src, fn)


def make_ctx(project_root: Path, text: str, crate: Crate | None, *, relpath: str = "src/lib.rs") -> FileContext:
    path = project_root / relpath
    return FileContext(
        project_root=project_root,
        path=path,
        relative_path=relpath,
        source=SourceFile(text, path=path),
        suppressions=parse_suppressions(text.splitlines()),
        crate=crate,
    )


def apply(text: str, span: Span, replacement: str) -> str:
    data = text.encode("utf-8")
    return (data[: span.lo] + replacement.encode("utf-8") + data[span.hi :]).decode("utf-8")


@dataclass
class FakeTree:
    root_node: object


class FakeNode:
    """Stands in for a tree-sitter node: only the attributes lowering reads."""

    def __init__(
        self,
        node_type: str,
        *,
        children: list[FakeNode] | None = None,
        start_byte: int = 0,
        end_byte: int = 0,
        is_named: bool = True,
    ) -> None:
        self.type = node_type
        self.children = children or []
        self.start_byte = start_byte
        self.end_byte = end_byte
        self.is_named = is_named


class NodeBuilder:
    """Fake tree-sitter nodes whose byte ranges are located in `src`."""

    def __init__(self, src: str) -> None:
        self.src = src

    def leaf(self, node_type: str, text: str, nth: int = 0, *, named: bool = True) -> FakeNode:
        span = span_of(self.src, text, nth)
        return FakeNode(node_type, start_byte=span.lo, end_byte=span.hi, is_named=named)

    def tok(self, text: str, nth: int = 0) -> FakeNode:
        return self.leaf(text, text, nth, named=False)

    def node(self, node_type: str, *children: FakeNode) -> FakeNode:
        return FakeNode(
            node_type,
            children=list(children),
            start_byte=min(c.start_byte for c in children),
            end_byte=max(c.end_byte for c in children),
        )


def nested_if_tree(src: str) -> FakeTree:
    """Tree for `fn f() { if x { if y { z(); } } }` (exact spacing)."""

    b = NodeBuilder(src)
    call = b.node("call_expression", b.leaf("identifier", "z"), b.node("arguments", b.tok("(", 1), b.tok(")", 1)))
    inner_block = b.node("block", b.tok("{", 2), b.node("expression_statement", call, b.tok(";")), b.tok("}", 0))
    inner_if = b.node("if_expression", b.tok("if", 1), b.leaf("identifier", "y"), inner_block)
    outer_block = b.node("block", b.tok("{", 1), b.node("expression_statement", inner_if), b.tok("}", 1))
    outer_if = b.node("if_expression", b.tok("if", 0), b.leaf("identifier", "x"), outer_block)
    body = b.node("block", b.tok("{", 0), b.node("expression_statement", outer_if), b.tok("}", 2))
    fn = b.node(
        "function_item",
        b.tok("fn"),
        b.leaf("identifier", "f", 1),
        b.node("parameters", b.tok("(", 0), b.tok(")", 0)),
        body,
    )
    return FakeTree(root_node=b.node("source_file", fn))
