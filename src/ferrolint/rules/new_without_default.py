"""
`new_without_default` / `new_without_default_derive`: a public `fn new() -> Self`
on a type that does not implement `Default`.

Users expect `Type::default()` to exist wherever `Type::new()` takes no
arguments; generic code (`unwrap_or_default()`, `#[derive(Default)]` on
containing structs) can only use the former. When every field of a plain
struct is itself `Default`, deriving is enough; otherwise a manual impl that
delegates to `new()` is suggested.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ferrolint.config import DEFAULT_TRAIT
from ferrolint.engine.context import FileContext
from ferrolint.engine.types import Applicability, Suggestion
from ferrolint.oracles.hygiene import ExpansionTable
from ferrolint.oracles.protocols import SpanOracle, TraitId, TypeOracle
from ferrolint.rules.base import BaseRule, FindingSink, LintMeta
from ferrolint.syntax.nodes import FnItem, ImplBlock, Span, StructDef, TyRef
from ferrolint.syntax.source import SourceFile, reindent
from ferrolint.syntax.visit import iter_items

logger = logging.getLogger(__name__)

NEW_WITHOUT_DEFAULT = LintMeta(
    name="new_without_default",
    summary="`fn new() -> Self` method without `Default` implementation",
    explanation=(
        "A public zero-argument `new` constructor on a type without a `Default` impl. "
        "Add `impl Default for T { fn default() -> Self { Self::new() } }`."
    ),
)
NEW_WITHOUT_DEFAULT_DERIVE = LintMeta(
    name="new_without_default_derive",
    summary="`fn new() -> Self` without `#[derive]`able `Default` implementation",
    explanation=(
        "A public zero-argument `new` constructor on a struct whose fields are all `Default`. "
        "Prepend `#[derive(Default)]` to the struct definition."
    ),
)

CONSTRUCTOR_NAME = "new"

_MANUAL_IMPL_TEMPLATE = """\
impl{generics} {trait} for {ty} {{
    fn default() -> Self {{
        Self::new()
    }}
}}"""


@dataclass(frozen=True, slots=True)
class ConstructorCandidate:
    method_name: str
    has_self_param: bool
    param_count: int
    is_const: bool
    generic_type_params: tuple[str, ...]
    return_type: TyRef | None
    enclosing_type: TyRef
    reachable: bool
    span: Span

    @classmethod
    def from_method(cls, method: FnItem, impl: ImplBlock) -> ConstructorCandidate:
        return cls(
            method_name=method.sig.name,
            has_self_param=method.sig.has_self,
            param_count=method.sig.param_count,
            is_const=method.sig.is_const,
            generic_type_params=method.sig.generics.type_params,
            return_type=method.sig.ret,
            enclosing_type=impl.self_ty,
            reachable=method.vis == "pub" and method.exported,
            span=method.span,
        )

    def skip_reason(self) -> str | None:
        """Why this method cannot be a `Default`-worthy constructor, or None."""

        if self.method_name != CONSTRUCTOR_NAME:
            return "not named `new`"
        if self.has_self_param:
            return "takes `self`"
        if self.param_count:
            return "takes arguments"
        if self.is_const:
            return "`const fn`"
        if self.generic_type_params:
            return "generic over types"
        if not self.reachable:
            return "not reachable from outside the crate"
        if self.return_type is None:
            return "returns `()`"
        return None

    def resolved_return_type(self) -> TyRef | None:
        if self.return_type is None:
            return None
        if self.return_type.kind == "self":
            return self.enclosing_type
        return self.return_type


@dataclass(frozen=True, slots=True)
class Derivable:
    span: Span


@dataclass(frozen=True, slots=True)
class NotDerivable:
    pass


NOT_DERIVABLE = NotDerivable()

DerivabilityResult = Derivable | NotDerivable


def can_derive(ty: TyRef, trait_id: TraitId, oracle: TypeOracle) -> DerivabilityResult:
    fields = oracle.structural_fields_of(ty)
    if fields is None:
        return NOT_DERIVABLE
    for field_ty in fields:
        if not oracle.implements_trait(field_ty, trait_id):
            return NOT_DERIVABLE
    span = oracle.definition_span(ty)
    if span is None:
        return NOT_DERIVABLE
    return Derivable(span)


def derive_suggestion(definition: Span, source: SourceFile, trait_id: TraitId) -> Suggestion:
    indent = source.indent_of(definition)
    return Suggestion(
        span=definition.shrink_to_lo(),
        replacement=f"#[derive({trait_id.name})]\n{indent}",
        applicability=Applicability.MAYBE_INCORRECT,
        path=source.path,
    )


def manual_impl_suggestion(impl: ImplBlock, source: SourceFile, trait_id: TraitId) -> Suggestion:
    text = _MANUAL_IMPL_TEMPLATE.format(
        generics=impl.generics.text,
        trait=trait_id.name,
        ty=impl.self_ty.display(),
    )
    indent = source.indent_of(impl.span)
    return Suggestion(
        span=impl.span.shrink_to_hi(),
        replacement=f"\n\n{indent}{reindent(text, indent)}",
        applicability=Applicability.MAYBE_INCORRECT,
    )


@dataclass(frozen=True, slots=True)
class NewWithoutDefault(BaseRule):
    lints = (NEW_WITHOUT_DEFAULT, NEW_WITHOUT_DEFAULT_DERIVE)

    types: TypeOracle
    spans: SpanOracle = field(default_factory=ExpansionTable)
    default_trait: str = DEFAULT_TRAIT

    def run(self, ctx: FileContext, sink: FindingSink) -> None:
        assert ctx.crate is not None
        for item in iter_items(ctx.crate):
            if not isinstance(item, ImplBlock) or item.trait is not None:
                continue
            for method in item.items:
                if not isinstance(method, FnItem) or self.spans.in_macro(method.span):
                    continue
                candidate = ConstructorCandidate.from_method(method, item)
                reason = candidate.skip_reason()
                if reason is not None:
                    logger.debug("%s:%s: skipping `%s`: %s", ctx.relative_path, method.span.lo, candidate.method_name, reason)
                    continue
                try:
                    self._check_candidate(ctx, sink, item, candidate)
                except Exception:
                    logger.debug(
                        "%s: type query failed for `%s::new`",
                        ctx.relative_path,
                        item.self_ty.display(),
                        exc_info=True,
                    )

    def _check_candidate(
        self,
        ctx: FileContext,
        sink: FindingSink,
        impl: ImplBlock,
        candidate: ConstructorCandidate,
    ) -> None:
        self_ty = candidate.enclosing_type
        ret = candidate.resolved_return_type()
        if ret is None or not self.types.types_equal(self_ty, ret):
            return
        # Names the index cannot pin to one definition are left alone.
        if self.types.definition_span(self_ty) is None:
            return
        # An inherent impl is only as reachable as its self type.
        if not self.types.is_exported(self_ty):
            logger.debug("%s: skipping `%s::new`: type is not exported", ctx.relative_path, self_ty.display())
            return
        trait_id = self.types.resolve_trait_id(self.default_trait)
        if trait_id is None:
            return
        if self.types.implements_trait(self_ty, trait_id):
            return

        ty_name = self_ty.display()
        verdict = can_derive(self_ty, trait_id, self.types)
        if isinstance(verdict, Derivable):
            # The struct may live in another file; the edit goes there.
            home = (
                ctx.source
                if _defines_type(ctx, self_ty.name, verdict.span)
                else self.types.definition_source(self_ty)
            )
            suggestion = derive_suggestion(verdict.span, home, trait_id) if home is not None else None
            sink.emit(
                self._finding(
                    ctx,
                    lint=NEW_WITHOUT_DEFAULT_DERIVE.name,
                    span=candidate.span,
                    message=f"you should consider deriving a `Default` implementation for `{ty_name}`",
                    suggestion=suggestion,
                )
            )
            return
        sink.emit(
            self._finding(
                ctx,
                lint=NEW_WITHOUT_DEFAULT.name,
                span=candidate.span,
                message=f"you should consider adding a `Default` implementation for `{ty_name}`",
                suggestion=manual_impl_suggestion(impl, ctx.source, trait_id),
            )
        )


def _defines_type(ctx: FileContext, name: str, span: Span) -> bool:
    assert ctx.crate is not None
    return any(
        isinstance(item, StructDef) and item.name == name and item.span == span for item in iter_items(ctx.crate)
    )
