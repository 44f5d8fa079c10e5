from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from ferrolint.syntax.nodes import Span, TyRef
from ferrolint.syntax.source import SourceFile


@dataclass(frozen=True, slots=True)
class TraitId:
    """Canonical identity of a trait, e.g. `core::default::Default`."""

    path: str

    @property
    def name(self) -> str:
        return self.path.rsplit("::", 1)[-1]


class SpanOracle(Protocol):
    """Macro hygiene queries."""

    def in_macro(self, span: Span) -> bool: ...

    def same_ctxt(self, a: Span, b: Span) -> bool: ...


class TypeOracle(Protocol):
    """Type and trait resolution queries used by the semantic rules."""

    def resolve_trait_id(self, path: str) -> TraitId | None: ...

    def implements_trait(self, ty: TyRef, trait_id: TraitId, type_args: Sequence[TyRef] = ()) -> bool: ...

    def structural_fields_of(self, ty: TyRef) -> tuple[TyRef, ...] | None:
        """Field types in declaration order, or None when `ty` is not a plain struct."""
        ...

    def definition_span(self, ty: TyRef) -> Span | None: ...

    def definition_source(self, ty: TyRef) -> SourceFile | None:
        """The file holding the definition of `ty`, when it was indexed with one."""
        ...

    def is_exported(self, ty: TyRef) -> bool:
        """Whether `ty` is `pub` and every module enclosing it is too."""
        ...

    def types_equal(self, a: TyRef, b: TyRef) -> bool: ...
