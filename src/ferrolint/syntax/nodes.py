from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

Visibility = str  # "" (private), "pub", "pub(crate)", "pub(super)", ...
StructShape = Literal["named", "tuple", "unit"]
TyKind = Literal["path", "self", "tuple", "ref", "array", "slice", "never", "other"]
GenericKind = Literal["type", "lifetime", "const"]


@dataclass(frozen=True, slots=True)
class Span:
    """
    Byte range into one source file.

    `ctxt` identifies the macro expansion that produced the node; 0 is the
    root context (code the user wrote).
    """

    lo: int
    hi: int
    ctxt: int = 0

    def shrink_to_lo(self) -> Span:
        return Span(self.lo, self.lo, self.ctxt)

    def shrink_to_hi(self) -> Span:
        return Span(self.hi, self.hi, self.ctxt)

    def contains(self, other: Span) -> bool:
        return self.lo <= other.lo and other.hi <= self.hi


# --- types -----------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TyRef:
    kind: TyKind
    name: str
    span: Span
    args: tuple[TyRef, ...] = ()
    text: str = ""

    def display(self) -> str:
        if self.text:
            return self.text
        if not self.args:
            return self.name
        return f"{self.name}<{', '.join(a.display() for a in self.args)}>"


@dataclass(frozen=True, slots=True)
class GenericParam:
    kind: GenericKind
    name: str


@dataclass(frozen=True, slots=True)
class Generics:
    params: tuple[GenericParam, ...] = ()
    text: str = ""

    @property
    def type_params(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.params if p.kind == "type")


NO_GENERICS = Generics()


# --- expressions -----------------------------------------------------------


@dataclass(frozen=True, slots=True)
class If:
    cond: Expr
    then: Block
    els: ElseBranch | None
    span: Span


@dataclass(frozen=True, slots=True)
class IfLet:
    pat: Span
    scrutinee: Expr
    then: Block
    els: ElseBranch | None
    span: Span


@dataclass(frozen=True, slots=True)
class BlockExpr:
    block: Block
    span: Span


@dataclass(frozen=True, slots=True)
class Binary:
    op: str
    lhs: Expr
    rhs: Expr
    span: Span


@dataclass(frozen=True, slots=True)
class Unary:
    op: str
    operand: Expr
    span: Span


@dataclass(frozen=True, slots=True)
class Cast:
    expr: Expr
    ty: TyRef
    span: Span


@dataclass(frozen=True, slots=True)
class Assign:
    op: str  # "=" or a compound operator such as "+="
    lhs: Expr
    rhs: Expr
    span: Span


@dataclass(frozen=True, slots=True)
class Range:
    lo: Expr | None
    hi: Expr | None
    op: str  # ".." or "..="
    span: Span


@dataclass(frozen=True, slots=True)
class Closure:
    body: Expr
    span: Span


@dataclass(frozen=True, slots=True)
class Paren:
    inner: Expr
    span: Span


@dataclass(frozen=True, slots=True)
class Call:
    func: Expr
    args: tuple[Expr, ...]
    span: Span


@dataclass(frozen=True, slots=True)
class MethodCall:
    receiver: Expr
    method: str
    args: tuple[Expr, ...]
    span: Span


@dataclass(frozen=True, slots=True)
class Opaque:
    """Any expression shape the rules never look inside (paths, literals, macros, loops, ...)."""

    kind: str
    span: Span
    children: tuple[Expr | Block, ...] = ()


Expr = If | IfLet | BlockExpr | Binary | Unary | Cast | Assign | Range | Closure | Paren | Call | MethodCall | Opaque


# --- blocks and statements -------------------------------------------------


@dataclass(frozen=True, slots=True)
class Block:
    stmts: tuple[Stmt, ...]
    span: Span


ElseBranch = Block | If | IfLet


@dataclass(frozen=True, slots=True)
class ExprStmt:
    expr: Expr
    semi: bool
    span: Span


@dataclass(frozen=True, slots=True)
class LocalStmt:
    init: Expr | None
    span: Span
    els: Block | None = None


@dataclass(frozen=True, slots=True)
class ItemStmt:
    item: Item
    span: Span


Stmt = ExprStmt | LocalStmt | ItemStmt


# --- items -----------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FieldDef:
    name: str | None
    ty: TyRef
    span: Span


@dataclass(frozen=True, slots=True)
class StructDef:
    name: str
    generics: Generics
    shape: StructShape
    fields: tuple[FieldDef, ...]
    derives: tuple[str, ...]
    vis: Visibility
    span: Span
    exported: bool = True


@dataclass(frozen=True, slots=True)
class EnumDef:
    name: str
    generics: Generics
    derives: tuple[str, ...]
    vis: Visibility
    span: Span
    exported: bool = True


@dataclass(frozen=True, slots=True)
class UnionDef:
    name: str
    generics: Generics
    fields: tuple[FieldDef, ...]
    derives: tuple[str, ...]
    vis: Visibility
    span: Span
    exported: bool = True


@dataclass(frozen=True, slots=True)
class TraitDef:
    name: str
    vis: Visibility
    span: Span


@dataclass(frozen=True, slots=True)
class FnSig:
    name: str
    param_count: int
    has_self: bool
    is_const: bool
    generics: Generics
    ret: TyRef | None


@dataclass(frozen=True, slots=True)
class FnItem:
    sig: FnSig
    vis: Visibility
    body: Block | None
    span: Span
    exported: bool = True


@dataclass(frozen=True, slots=True)
class ImplBlock:
    generics: Generics
    trait: TyRef | None
    self_ty: TyRef
    items: tuple[Item, ...]
    span: Span
    exported: bool = True


@dataclass(frozen=True, slots=True)
class ModItem:
    name: str
    vis: Visibility
    items: tuple[Item, ...]
    span: Span


@dataclass(frozen=True, slots=True)
class OtherItem:
    kind: str
    span: Span


Item = StructDef | EnumDef | UnionDef | TraitDef | FnItem | ImplBlock | ModItem | OtherItem


@dataclass(frozen=True, slots=True)
class Crate:
    """Root of one lowered source file."""

    items: tuple[Item, ...]
    span: Span
