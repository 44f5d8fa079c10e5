from __future__ import annotations

from collections.abc import Iterator

from ferrolint.syntax.nodes import (
    Assign,
    Binary,
    Block,
    BlockExpr,
    Call,
    Cast,
    Closure,
    Crate,
    EnumDef,
    Expr,
    ExprStmt,
    FnItem,
    If,
    IfLet,
    ImplBlock,
    Item,
    ItemStmt,
    LocalStmt,
    MethodCall,
    ModItem,
    Opaque,
    OtherItem,
    Paren,
    Range,
    StructDef,
    TraitDef,
    Unary,
    UnionDef,
)

Node = Crate | Item | Block | ExprStmt | LocalStmt | ItemStmt | Expr

_EXPR_TYPES = (If, IfLet, BlockExpr, Binary, Unary, Cast, Assign, Range, Closure, Paren, Call, MethodCall, Opaque)
_ITEM_TYPES = (StructDef, EnumDef, UnionDef, TraitDef, FnItem, ImplBlock, ModItem, OtherItem)


def iter_nodes(root: Node) -> Iterator[Node]:
    """
    Yield `root` and every node below it in document pre-order.

    Uses an explicit stack so arbitrarily deep `else { if .. }` chains never
    hit the interpreter recursion limit.
    """

    stack: list[Node] = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(children_of(node)))


def iter_exprs(root: Node) -> Iterator[Expr]:
    for node in iter_nodes(root):
        if isinstance(node, _EXPR_TYPES):
            yield node


def iter_items(root: Node) -> Iterator[Item]:
    for node in iter_nodes(root):
        if isinstance(node, _ITEM_TYPES):
            yield node


def children_of(node: Node) -> list[Node]:
    if isinstance(node, Crate | ModItem):
        return list(node.items)
    if isinstance(node, ImplBlock):
        return list(node.items)
    if isinstance(node, FnItem):
        return [node.body] if node.body is not None else []
    if isinstance(node, Block):
        return list(node.stmts)
    if isinstance(node, ExprStmt):
        return [node.expr]
    if isinstance(node, LocalStmt):
        return _present(node.init, node.els)
    if isinstance(node, ItemStmt):
        return [node.item]
    if isinstance(node, If):
        return _present(node.cond, node.then, node.els)
    if isinstance(node, IfLet):
        return _present(node.scrutinee, node.then, node.els)
    if isinstance(node, BlockExpr):
        return [node.block]
    if isinstance(node, Binary | Assign):
        return [node.lhs, node.rhs]
    if isinstance(node, Unary):
        return [node.operand]
    if isinstance(node, Cast):
        return [node.expr]
    if isinstance(node, Range):
        return _present(node.lo, node.hi)
    if isinstance(node, Closure):
        return [node.body]
    if isinstance(node, Paren):
        return [node.inner]
    if isinstance(node, Call):
        return [node.func, *node.args]
    if isinstance(node, MethodCall):
        return [node.receiver, *node.args]
    if isinstance(node, Opaque):
        return list(node.children)
    return []


def _present(*nodes: Node | None) -> list[Node]:
    return [n for n in nodes if n is not None]
