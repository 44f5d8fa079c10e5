from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence

from ferrolint.oracles.protocols import TraitId
from ferrolint.syntax.nodes import Crate, EnumDef, ImplBlock, Span, StructDef, TraitDef, TyRef, UnionDef
from ferrolint.syntax.source import SourceFile
from ferrolint.syntax.visit import iter_items

logger = logging.getLogger(__name__)

DEFAULT_TRAIT_PATH = "core::default::Default"

# Traits from the standard prelude, keyed by their bare name.
_PRELUDE_TRAITS: dict[str, str] = {
    "Default": DEFAULT_TRAIT_PATH,
    "Clone": "core::clone::Clone",
    "Copy": "core::marker::Copy",
    "Debug": "core::fmt::Debug",
    "PartialEq": "core::cmp::PartialEq",
    "Eq": "core::cmp::Eq",
    "PartialOrd": "core::cmp::PartialOrd",
    "Ord": "core::cmp::Ord",
    "Hash": "core::hash::Hash",
}
_STD_CRATES = ("core", "std", "alloc")

_INTEGERS = ("i8", "i16", "i32", "i64", "i128", "isize", "u8", "u16", "u32", "u64", "u128", "usize")

# Standard types whose `Default` impl has no bounds on their type arguments.
_STD_DEFAULT: frozenset[str] = frozenset(
    {
        "bool",
        "char",
        "f32",
        "f64",
        *_INTEGERS,
        "String",
        "Vec",
        "VecDeque",
        "LinkedList",
        "HashMap",
        "HashSet",
        "BTreeMap",
        "BTreeSet",
        "BinaryHeap",
        "Option",
        "PhantomData",
        "PhantomPinned",
        "Duration",
        "PathBuf",
        "OsString",
        "CString",
        "OnceCell",
        "OnceLock",
        "Weak",
        "AtomicBool",
        *(f"Atomic{t.upper()[0]}{t[1:]}" for t in _INTEGERS),
    }
)
# Standard wrappers that are `Default` when every type argument is.
_STD_DEFAULT_IF_ARGS: frozenset[str] = frozenset(
    {"Box", "Rc", "Arc", "Cell", "RefCell", "UnsafeCell", "Mutex", "RwLock", "Wrapping", "Saturating", "Reverse", "ManuallyDrop"}
)


class CrateIndex:
    """
    Type oracle answering from the items of the files being linted plus a
    table of standard library `Default` implementations.

    Anything it cannot see (foreign types, bare generic parameters, names
    defined twice) answers conservatively: not implemented, not a struct.
    """

    def __init__(self, *, extra_default_types: Iterable[str] = ()) -> None:
        self._types: dict[str, list[StructDef | EnumDef | UnionDef]] = defaultdict(list)
        self._homes: dict[str, list[SourceFile | None]] = defaultdict(list)
        self._traits: dict[str, list[TraitDef]] = defaultdict(list)
        self._impls: dict[str, set[str]] = defaultdict(set)
        self._extra_default = frozenset(_normalize_path(t) for t in extra_default_types)

    @classmethod
    def from_crates(cls, crates: Iterable[Crate], *, extra_default_types: Iterable[str] = ()) -> CrateIndex:
        index = cls(extra_default_types=extra_default_types)
        for crate in crates:
            index.add_crate(crate)
        return index

    @classmethod
    def from_sources(
        cls,
        files: Iterable[tuple[Crate, SourceFile]],
        *,
        extra_default_types: Iterable[str] = (),
    ) -> CrateIndex:
        """Like `from_crates`, remembering which file each definition came from."""

        index = cls(extra_default_types=extra_default_types)
        for crate, source in files:
            index.add_crate(crate, source=source)
        return index

    def add_crate(self, crate: Crate, *, source: SourceFile | None = None) -> None:
        pending_impls: list[ImplBlock] = []
        for item in iter_items(crate):
            if isinstance(item, StructDef | EnumDef | UnionDef):
                self._types[item.name].append(item)
                self._homes[item.name].append(source)
            elif isinstance(item, TraitDef):
                self._traits[item.name].append(item)
            elif isinstance(item, ImplBlock) and item.trait is not None:
                pending_impls.append(item)

        for items in self._types.values():
            for definition in items:
                for derived in definition.derives:
                    self._impls[self._canonical_trait(derived)].add(definition.name)
        for impl in pending_impls:
            assert impl.trait is not None
            self._impls[self._canonical_trait(impl.trait.name)].add(impl.self_ty.name)
        logger.debug("indexed %d type names, %d trait names", len(self._types), len(self._traits))

    # -- TypeOracle ---------------------------------------------------------

    def resolve_trait_id(self, path: str) -> TraitId | None:
        normalized = _normalize_path(path)
        segments = normalized.split("::")
        name = segments[-1]
        if not name:
            return None
        local = self._traits.get(name, [])
        if len(segments) == 1 or segments[0] in {"crate", "self", "super"}:
            if len(local) == 1:
                return TraitId(f"crate::{name}")
            if len(segments) == 1 and name in _PRELUDE_TRAITS and not local:
                return TraitId(_PRELUDE_TRAITS[name])
            return None
        if segments[0] in _STD_CRATES and _PRELUDE_TRAITS.get(name, "").split("::")[1:] == segments[1:]:
            return TraitId(_PRELUDE_TRAITS[name])
        return None

    def implements_trait(self, ty: TyRef, trait_id: TraitId, type_args: Sequence[TyRef] = ()) -> bool:
        is_default = trait_id.path == DEFAULT_TRAIT_PATH
        if ty.kind == "path":
            if self._unique_type(ty.name) is not None:
                return ty.name in self._impls.get(trait_id.path, ())
            if ty.name in self._types:
                # Ambiguous local name: refuse to guess.
                return False
            if ty.name in self._impls.get(trait_id.path, ()):
                return True
            if is_default:
                return self._std_default(ty)
            return False
        if not is_default:
            return False
        if ty.kind == "tuple":
            return all(self.implements_trait(arg, trait_id) for arg in ty.args)
        if ty.kind == "array":
            return bool(ty.args) and self.implements_trait(ty.args[0], trait_id)
        if ty.kind == "ref":
            # Only `&str`, `&[T]` and `&mut [T]` have a `Default` impl.
            target = ty.args[0] if ty.args else None
            if target is None:
                return False
            if target.kind == "slice":
                return True
            return target.kind == "path" and target.name == "str" and ty.name == "&"
        return False

    def structural_fields_of(self, ty: TyRef) -> tuple[TyRef, ...] | None:
        if ty.kind != "path":
            return None
        definition = self._unique_type(ty.name)
        if not isinstance(definition, StructDef):
            return None
        params = definition.generics.type_params
        if len(params) != len(ty.args):
            subst: dict[str, TyRef] = {}
        else:
            subst = dict(zip(params, ty.args, strict=True))
        return tuple(_substitute(field.ty, subst) for field in definition.fields)

    def definition_span(self, ty: TyRef) -> Span | None:
        if ty.kind != "path":
            return None
        definition = self._unique_type(ty.name)
        return definition.span if definition is not None else None

    def definition_source(self, ty: TyRef) -> SourceFile | None:
        if ty.kind != "path" or self._unique_type(ty.name) is None:
            return None
        return self._homes[ty.name][0]

    def is_exported(self, ty: TyRef) -> bool:
        if ty.kind != "path":
            return False
        definition = self._unique_type(ty.name)
        return definition is not None and definition.vis == "pub" and definition.exported

    def types_equal(self, a: TyRef, b: TyRef) -> bool:
        if a.kind != b.kind:
            return False
        if a.kind == "other":
            return _squash(a.text) == _squash(b.text)
        if a.name != b.name or len(a.args) != len(b.args):
            return False
        return all(self.types_equal(x, y) for x, y in zip(a.args, b.args, strict=True))

    # -- helpers ------------------------------------------------------------

    def _unique_type(self, name: str) -> StructDef | EnumDef | UnionDef | None:
        found = self._types.get(name)
        if not found or len(found) != 1:
            return None
        return found[0]

    def _canonical_trait(self, name: str) -> str:
        bare = _normalize_path(name).rsplit("::", 1)[-1]
        if bare in self._traits:
            return f"crate::{bare}"
        return _PRELUDE_TRAITS.get(bare, f"crate::{bare}")

    def _std_default(self, ty: TyRef) -> bool:
        if ty.text and _normalize_path(ty.text) in self._extra_default:
            return True
        if ty.name in self._extra_default:
            return True
        if ty.name in _STD_DEFAULT:
            return True
        if ty.name in _STD_DEFAULT_IF_ARGS:
            default_id = TraitId(DEFAULT_TRAIT_PATH)
            return bool(ty.args) and all(self.implements_trait(arg, default_id) for arg in ty.args)
        return False


def _substitute(ty: TyRef, subst: dict[str, TyRef]) -> TyRef:
    if not subst:
        return ty
    if ty.kind == "path" and not ty.args and ty.name in subst:
        return subst[ty.name]
    if not ty.args:
        return ty
    return TyRef(
        kind=ty.kind,
        name=ty.name,
        span=ty.span,
        args=tuple(_substitute(arg, subst) for arg in ty.args),
        text="",
    )


def _normalize_path(path: str) -> str:
    stripped = _squash(path)
    if stripped.startswith("::"):
        stripped = stripped[2:]
    return stripped


def _squash(text: str) -> str:
    return "".join(text.split())
