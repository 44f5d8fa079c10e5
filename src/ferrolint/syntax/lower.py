from __future__ import annotations

import re
from typing import Any

from ferrolint.syntax.nodes import (
    NO_GENERICS,
    Assign,
    Binary,
    Block,
    BlockExpr,
    Call,
    Cast,
    Closure,
    Crate,
    ElseBranch,
    EnumDef,
    Expr,
    ExprStmt,
    FieldDef,
    FnItem,
    FnSig,
    GenericParam,
    Generics,
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
    Span,
    Stmt,
    StructDef,
    TraitDef,
    TyRef,
    Unary,
    UnionDef,
)
from ferrolint.syntax.source import SourceFile

# tree-sitter nodes are treated structurally: `type`, `children`, `is_named`,
# `start_byte`, `end_byte`. Test doubles only need those attributes.
TsNode = Any

_COMMENTS = frozenset({"line_comment", "block_comment"})
_ITEM_KINDS = frozenset(
    {
        "struct_item",
        "enum_item",
        "union_item",
        "trait_item",
        "impl_item",
        "function_item",
        "function_signature_item",
        "mod_item",
        "const_item",
        "static_item",
        "type_item",
        "use_declaration",
        "extern_crate_declaration",
        "foreign_mod_item",
        "macro_definition",
        "associated_type",
    }
)
_EXPR_LIKE = frozenset(
    {
        "identifier",
        "scoped_identifier",
        "self",
        "metavariable",
        "generic_function",
        "macro_invocation",
        "block",
        "unsafe_block",
        "async_block",
        "const_block",
        "try_block",
    }
)
_RANGE_OPS = ("..=", "...", "..")

_DERIVE_RE = re.compile(r"^#\s*\[\s*derive\s*\((?P<names>.*)\)\s*\]$", re.DOTALL)


class LoweringError(ValueError):
    """Raised when a tree-sitter tree is not a Rust `source_file`."""


def lower_tree(tree: Any, source: SourceFile) -> Crate:
    return Lowerer(source).lower(tree.root_node)


class Lowerer:
    """
    Lower a tree-sitter Rust CST into the closed node set in `nodes`.

    Handles both grammar generations: `if_let_expression` (tree-sitter-rust
    <= 0.20.1) and `if_expression` with a `let_condition` (later releases).
    Macro invocations stay opaque; their token trees are never lowered.
    """

    def __init__(self, source: SourceFile) -> None:
        self.source = source

    def lower(self, root: TsNode) -> Crate:
        if root.type != "source_file":
            raise LoweringError(f"expected a Rust source_file, got {root.type!r}")
        return Crate(items=self._items(root, exported=True), span=_span(root))

    # -- items --------------------------------------------------------------

    def _items(self, container: TsNode, *, exported: bool) -> tuple[Item, ...]:
        items: list[Item] = []
        attrs: list[TsNode] = []
        for child in _named(container):
            if child.type == "attribute_item":
                attrs.append(child)
                continue
            if child.type in _ITEM_KINDS or child.type == "macro_invocation":
                items.append(self._item(child, attrs, exported=exported))
            attrs = []
        return tuple(items)

    def _item(self, node: TsNode, attrs: list[TsNode], *, exported: bool) -> Item:
        kind = node.type
        if kind == "struct_item":
            return self._struct(node, attrs, exported=exported)
        if kind == "enum_item":
            return EnumDef(
                name=self._name(node, "type_identifier"),
                generics=self._generics(node),
                derives=self._derives(attrs),
                vis=self._vis(node),
                span=_span(node),
                exported=exported,
            )
        if kind == "union_item":
            body = _child(node, "field_declaration_list")
            return UnionDef(
                name=self._name(node, "type_identifier"),
                generics=self._generics(node),
                fields=self._named_fields(body) if body is not None else (),
                derives=self._derives(attrs),
                vis=self._vis(node),
                span=_span(node),
                exported=exported,
            )
        if kind == "trait_item":
            return TraitDef(name=self._name(node, "type_identifier"), vis=self._vis(node), span=_span(node))
        if kind == "impl_item":
            return self._impl(node, exported=exported)
        if kind == "function_item":
            return self._fn(node, exported=exported)
        if kind == "mod_item":
            vis = self._vis(node)
            body = _child(node, "declaration_list")
            items = self._items(body, exported=exported and vis == "pub") if body is not None else ()
            return ModItem(name=self._name(node, "identifier"), vis=vis, items=items, span=_span(node))
        return OtherItem(kind=kind, span=_span(node))

    def _struct(self, node: TsNode, attrs: list[TsNode], *, exported: bool) -> StructDef:
        named_body = _child(node, "field_declaration_list")
        tuple_body = _child(node, "ordered_field_declaration_list")
        if named_body is not None:
            shape = "named"
            fields = self._named_fields(named_body)
        elif tuple_body is not None:
            shape = "tuple"
            fields = self._tuple_fields(tuple_body)
        else:
            shape = "unit"
            fields = ()
        return StructDef(
            name=self._name(node, "type_identifier"),
            generics=self._generics(node),
            shape=shape,
            fields=fields,
            derives=self._derives(attrs),
            vis=self._vis(node),
            span=_span(node),
            exported=exported,
        )

    def _named_fields(self, body: TsNode) -> tuple[FieldDef, ...]:
        fields: list[FieldDef] = []
        for decl in _named(body):
            if decl.type != "field_declaration":
                continue
            name_node = _child(decl, "field_identifier")
            ty_node = _field(decl, "type") or _last_type_child(decl)
            if ty_node is None:
                continue
            fields.append(
                FieldDef(
                    name=self._text(name_node) if name_node is not None else None,
                    ty=self.lower_type(ty_node),
                    span=_span(decl),
                )
            )
        return tuple(fields)

    def _tuple_fields(self, body: TsNode) -> tuple[FieldDef, ...]:
        return tuple(
            FieldDef(name=None, ty=self.lower_type(child), span=_span(child))
            for child in _named(body)
            if child.type not in {"visibility_modifier", "attribute_item"}
        )

    def _impl(self, node: TsNode, *, exported: bool) -> ImplBlock:
        trait_node = _field(node, "trait")
        self_node = _field(node, "type")
        if self_node is None:
            type_nodes = [c for c in _named(node) if c.type not in {"type_parameters", "where_clause", "declaration_list"}]
            has_for = any(c.type == "for" for c in node.children)
            if has_for and len(type_nodes) >= 2:
                trait_node, self_node = type_nodes[0], type_nodes[1]
            elif type_nodes:
                self_node = type_nodes[0]
        if self_node is None:
            raise LoweringError("impl block without a self type")

        body = _child(node, "declaration_list")
        items: list[Item] = []
        if body is not None:
            for child in _named(body):
                if child.type == "function_item":
                    items.append(self._fn(child, exported=exported))
                elif child.type in _ITEM_KINDS or child.type == "macro_invocation":
                    items.append(OtherItem(kind=child.type, span=_span(child)))
        return ImplBlock(
            generics=self._generics(node),
            trait=self.lower_type(trait_node) if trait_node is not None else None,
            self_ty=self.lower_type(self_node),
            items=tuple(items),
            span=_span(node),
            exported=exported,
        )

    def _fn(self, node: TsNode, *, exported: bool) -> FnItem:
        params = _child(node, "parameters")
        has_self = False
        param_count = 0
        if params is not None:
            for p in _named(params):
                if p.type == "self_parameter":
                    has_self = True
                elif p.type in {"parameter", "variadic_parameter"}:
                    param_count += 1
        modifiers = _child(node, "function_modifiers")
        is_const = modifiers is not None and any(c.type == "const" for c in modifiers.children)

        ret_node = _field(node, "return_type")
        if ret_node is None:
            children = list(node.children)
            for idx, child in enumerate(children):
                if child.type == "->" and idx + 1 < len(children):
                    ret_node = children[idx + 1]
                    break

        body_node = _child(node, "block")
        return FnItem(
            sig=FnSig(
                name=self._name(node, "identifier"),
                param_count=param_count,
                has_self=has_self,
                is_const=is_const,
                generics=self._generics(node),
                ret=self.lower_type(ret_node) if ret_node is not None else None,
            ),
            vis=self._vis(node),
            body=self.lower_block(body_node) if body_node is not None else None,
            span=_span(node),
            exported=exported,
        )

    def _generics(self, node: TsNode) -> Generics:
        tp = _child(node, "type_parameters")
        if tp is None:
            return NO_GENERICS
        params: list[GenericParam] = []
        for child in _named(tp):
            kind = child.type
            if kind == "type_identifier":
                params.append(GenericParam("type", self._text(child)))
            elif kind in {"type_parameter", "constrained_type_parameter", "optional_type_parameter"}:
                name_node = _field(child, "name") or _field(child, "left") or _child(child, "type_identifier")
                params.append(GenericParam("type", self._text(name_node) if name_node is not None else ""))
            elif kind in {"lifetime", "lifetime_parameter"}:
                params.append(GenericParam("lifetime", self._text(child)))
            elif kind == "const_parameter":
                name_node = _child(child, "identifier")
                params.append(GenericParam("const", self._text(name_node) if name_node is not None else ""))
        return Generics(params=tuple(params), text=self._text(tp))

    def _derives(self, attrs: list[TsNode]) -> tuple[str, ...]:
        names: list[str] = []
        for attr in attrs:
            match = _DERIVE_RE.match(self._text(attr).strip())
            if not match:
                continue
            for raw in match.group("names").split(","):
                name = "".join(raw.split())
                if name:
                    names.append(name.rsplit("::", 1)[-1])
        return tuple(names)

    def _vis(self, node: TsNode) -> str:
        vis = _child(node, "visibility_modifier")
        return "".join(self._text(vis).split()) if vis is not None else ""

    def _name(self, node: TsNode, kind: str) -> str:
        name_node = _field(node, "name") or _child(node, kind)
        return self._text(name_node) if name_node is not None else ""

    # -- types --------------------------------------------------------------

    def lower_type(self, node: TsNode) -> TyRef:
        kind = node.type
        span = _span(node)
        text = self._text(node)
        if kind == "type_identifier":
            if text == "Self":
                return TyRef(kind="self", name="Self", span=span, text=text)
            return TyRef(kind="path", name=text, span=span, text=text)
        if kind == "primitive_type":
            return TyRef(kind="path", name=text, span=span, text=text)
        if kind == "scoped_type_identifier":
            name_node = _field(node, "name") or _last_named(node)
            name = self._text(name_node) if name_node is not None else text
            return TyRef(kind="path", name=name, span=span, text=text)
        if kind == "generic_type":
            base_node = _field(node, "type") or _first_named(node)
            args_node = _child(node, "type_arguments")
            base = self.lower_type(base_node) if base_node is not None else None
            args: tuple[TyRef, ...] = ()
            if args_node is not None:
                args = tuple(
                    self.lower_type(a)
                    for a in _named(args_node)
                    if a.type not in {"lifetime", "type_binding", "trait_bounds", "block"}
                )
            name = base.name if base is not None else text
            return TyRef(kind="path", name=name, span=span, args=args, text=text)
        if kind == "reference_type":
            mutable = any(c.type == "mutable_specifier" for c in node.children)
            target_node = _field(node, "type") or _last_named(node)
            target = (self.lower_type(target_node),) if target_node is not None else ()
            return TyRef(kind="ref", name="&mut" if mutable else "&", span=span, args=target, text=text)
        if kind == "unit_type":
            return TyRef(kind="tuple", name="()", span=span, text=text)
        if kind == "tuple_type":
            elems = tuple(self.lower_type(c) for c in _named(node))
            return TyRef(kind="tuple", name="()", span=span, args=elems, text=text)
        if kind == "array_type":
            elem_node = _field(node, "element") or _first_named(node)
            elem = (self.lower_type(elem_node),) if elem_node is not None else ()
            is_array = any(c.type == ";" for c in node.children)
            return TyRef(kind="array" if is_array else "slice", name="[]", span=span, args=elem, text=text)
        if kind == "never_type":
            return TyRef(kind="never", name="!", span=span, text=text)
        return TyRef(kind="other", name=kind, span=span, text=text)

    # -- blocks and statements ----------------------------------------------

    def lower_block(self, node: TsNode) -> Block:
        stmts: list[Stmt] = []
        attrs: list[TsNode] = []
        for child in _named(node):
            kind = child.type
            if kind == "attribute_item":
                attrs.append(child)
                continue
            stmt = self._stmt(child, attrs)
            attrs = []
            if stmt is not None:
                stmts.append(stmt)
        return Block(stmts=tuple(stmts), span=_span(node))

    def _stmt(self, node: TsNode, attrs: list[TsNode]) -> Stmt | None:
        kind = node.type
        if kind in {"empty_statement", "inner_attribute_item", "label"}:
            return None
        if kind == "expression_statement":
            inner = _first_named(node)
            if inner is None:
                return None
            semi = any(c.type == ";" for c in node.children)
            return ExprStmt(expr=self.lower_expr(inner), semi=semi, span=_span(node))
        if kind == "let_declaration":
            value = _field(node, "value")
            if value is None:
                value = _after_token(node, "=")
            alt = _field(node, "alternative") or _after_token(node, "else")
            return LocalStmt(
                init=self.lower_expr(value) if value is not None else None,
                els=self.lower_block(alt) if alt is not None else None,
                span=_span(node),
            )
        if kind in _ITEM_KINDS:
            return ItemStmt(item=self._item(node, attrs, exported=False), span=_span(node))
        return ExprStmt(expr=self.lower_expr(node), semi=False, span=_span(node))

    # -- expressions --------------------------------------------------------

    def lower_expr(self, node: TsNode) -> Expr:
        kind = node.type
        span = _span(node)
        if kind == "if_expression":
            return self._if(node)
        if kind == "if_let_expression":
            return self._if_let_legacy(node)
        if kind == "block":
            return BlockExpr(block=self.lower_block(node), span=span)
        if kind == "binary_expression":
            lhs, op, rhs = self._binary_parts(node)
            return Binary(op=op, lhs=self.lower_expr(lhs), rhs=self.lower_expr(rhs), span=span)
        if kind in {"assignment_expression", "compound_assignment_expr"}:
            lhs, op, rhs = self._binary_parts(node)
            return Assign(op=op, lhs=self.lower_expr(lhs), rhs=self.lower_expr(rhs), span=span)
        if kind == "unary_expression":
            operand = _last_named(node)
            op = self._text(node.children[0]) if node.children else ""
            if operand is None:
                return Opaque(kind=kind, span=span)
            return Unary(op=op, operand=self.lower_expr(operand), span=span)
        if kind == "reference_expression":
            operand = _field(node, "value") or _last_named(node)
            mutable = any(c.type == "mutable_specifier" for c in node.children)
            if operand is None:
                return Opaque(kind=kind, span=span)
            return Unary(op="&mut" if mutable else "&", operand=self.lower_expr(operand), span=span)
        if kind == "type_cast_expression":
            value = _field(node, "value") or _first_named(node)
            ty = _field(node, "type") or _last_named(node)
            if value is None or ty is None:
                return Opaque(kind=kind, span=span)
            return Cast(expr=self.lower_expr(value), ty=self.lower_type(ty), span=span)
        if kind == "range_expression":
            return self._range(node)
        if kind == "closure_expression":
            body = _field(node, "body") or _last_named(node)
            if body is None:
                return Opaque(kind=kind, span=span)
            return Closure(body=self.lower_expr(body), span=span)
        if kind == "parenthesized_expression":
            inner = _first_named(node)
            if inner is None:
                return Opaque(kind=kind, span=span)
            return Paren(inner=self.lower_expr(inner), span=span)
        if kind == "call_expression":
            return self._call(node)
        if kind == "macro_invocation":
            return Opaque(kind=kind, span=span)
        return Opaque(kind=kind, span=span, children=self._flat_children(node))

    def _if(self, node: TsNode) -> Expr:
        cond = _field(node, "condition")
        then = _field(node, "consequence") or _child(node, "block")
        alt = _field(node, "alternative") or _child(node, "else_clause")
        if cond is None:
            cond = next((c for c in _named(node) if c is not then and c is not alt), None)
        if cond is None or then is None:
            return Opaque(kind=node.type, span=_span(node), children=self._flat_children(node))

        els = self._else(alt) if alt is not None else None
        if cond.type == "let_condition":
            pattern = _field(cond, "pattern") or _first_named(cond)
            value = _field(cond, "value") or _last_named(cond)
            assert value is not None
            return IfLet(
                pat=_span(pattern) if pattern is not None else _span(cond),
                scrutinee=self.lower_expr(value),
                then=self.lower_block(then),
                els=els,
                span=_span(node),
            )
        if cond.type == "let_chain":
            # `if a && let P = e` never combines with another condition.
            return IfLet(
                pat=_span(cond),
                scrutinee=Opaque(kind="let_chain", span=_span(cond), children=self._flat_children(cond)),
                then=self.lower_block(then),
                els=els,
                span=_span(node),
            )
        return If(cond=self.lower_expr(cond), then=self.lower_block(then), els=els, span=_span(node))

    def _if_let_legacy(self, node: TsNode) -> IfLet:
        pattern = _field(node, "pattern")
        value = _field(node, "value")
        then = _field(node, "consequence") or _child(node, "block")
        alt = _field(node, "alternative") or _child(node, "else_clause")
        if pattern is None or value is None:
            rest = [c for c in _named(node) if c is not then and c is not alt]
            if len(rest) >= 2:
                pattern, value = rest[0], rest[-1]
        if pattern is None or value is None or then is None:
            raise LoweringError("malformed if-let expression")
        return IfLet(
            pat=_span(pattern),
            scrutinee=self.lower_expr(value),
            then=self.lower_block(then),
            els=self._else(alt) if alt is not None else None,
            span=_span(node),
        )

    def _else(self, clause: TsNode) -> ElseBranch | None:
        target = _first_named(clause)
        if target is None:
            return None
        if target.type == "block":
            return self.lower_block(target)
        if target.type == "if_expression":
            lowered = self._if(target)
            return lowered if isinstance(lowered, If | IfLet) else None
        if target.type == "if_let_expression":
            return self._if_let_legacy(target)
        return None

    def _binary_parts(self, node: TsNode) -> tuple[TsNode, str, TsNode]:
        lhs = _field(node, "left")
        rhs = _field(node, "right")
        op_node = _field(node, "operator")
        children = [c for c in node.children if c.type not in _COMMENTS]
        if lhs is None or rhs is None:
            lhs, rhs = children[0], children[-1]
        if op_node is None:
            op_node = next(c for c in children if not _is_named(c))
        return lhs, self._text(op_node), rhs

    def _range(self, node: TsNode) -> Range:
        lo: Expr | None = None
        hi: Expr | None = None
        op = ".."
        seen_op = False
        for child in node.children:
            if child.type in _COMMENTS:
                continue
            if not _is_named(child) and child.type in _RANGE_OPS:
                op = child.type
                seen_op = True
            elif seen_op:
                hi = self.lower_expr(child)
            else:
                lo = self.lower_expr(child)
        return Range(lo=lo, hi=hi, op=op, span=_span(node))

    def _call(self, node: TsNode) -> Call | MethodCall:
        func = _field(node, "function") or _first_named(node)
        args_node = _field(node, "arguments") or _child(node, "arguments")
        args = tuple(self.lower_expr(a) for a in _named(args_node) if a.type != "attribute_item") if args_node else ()
        span = _span(node)
        if func is not None and func.type == "field_expression":
            receiver = _field(func, "value") or _first_named(func)
            method = _field(func, "field") or _last_named(func)
            if receiver is not None and method is not None:
                return MethodCall(receiver=self.lower_expr(receiver), method=self._text(method), args=args, span=span)
        if func is None:
            func_expr: Expr = Opaque(kind="unknown", span=span)
        else:
            func_expr = self.lower_expr(func)
        return Call(func=func_expr, args=args, span=span)

    def _flat_children(self, node: TsNode) -> tuple[Expr | Block, ...]:
        """Expression-like descendants of a node the rules treat as opaque."""

        out: list[Expr | Block] = []
        stack = list(reversed(_named(node)))
        while stack:
            child = stack.pop()
            kind = child.type
            if kind in _ITEM_KINDS or kind == "attribute_item":
                continue
            if kind == "block":
                out.append(self.lower_block(child))
            elif kind.endswith("_expression") or kind.endswith("_literal") or kind in _EXPR_LIKE:
                out.append(self.lower_expr(child))
            else:
                stack.extend(reversed(_named(child)))
        return tuple(out)

    def _text(self, node: TsNode) -> str:
        return self.source.snippet(_span(node), default="")


def _span(node: TsNode) -> Span:
    return Span(int(node.start_byte), int(node.end_byte))


def _is_named(node: TsNode) -> bool:
    return bool(getattr(node, "is_named", True))


def _named(node: TsNode | None) -> list[TsNode]:
    if node is None:
        return []
    return [c for c in node.children if _is_named(c) and c.type not in _COMMENTS]


def _child(node: TsNode, kind: str) -> TsNode | None:
    for child in node.children:
        if child.type == kind:
            return child
    return None


def _field(node: TsNode, name: str) -> TsNode | None:
    getter = getattr(node, "child_by_field_name", None)
    if getter is None:
        return None
    return getter(name)


def _first_named(node: TsNode) -> TsNode | None:
    named = _named(node)
    return named[0] if named else None


def _last_named(node: TsNode) -> TsNode | None:
    named = _named(node)
    return named[-1] if named else None


def _last_type_child(node: TsNode) -> TsNode | None:
    candidates = [c for c in _named(node) if c.type not in {"field_identifier", "visibility_modifier", "attribute_item"}]
    return candidates[-1] if candidates else None


def _after_token(node: TsNode, token: str) -> TsNode | None:
    seen = False
    for child in node.children:
        if child.type == token and not _is_named(child):
            seen = True
        elif seen and _is_named(child) and child.type not in _COMMENTS:
            return child
    return None
