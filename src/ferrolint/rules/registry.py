from __future__ import annotations

from ferrolint.config import FerrolintConfig
from ferrolint.oracles.crate_index import CrateIndex
from ferrolint.oracles.hygiene import ExpansionTable
from ferrolint.oracles.protocols import SpanOracle, TypeOracle
from ferrolint.rules.base import BaseRule, LintMeta
from ferrolint.rules.collapsible_if import COLLAPSIBLE_IF, CollapsibleIf
from ferrolint.rules.new_without_default import NEW_WITHOUT_DEFAULT, NEW_WITHOUT_DEFAULT_DERIVE, NewWithoutDefault

_LINTS: tuple[LintMeta, ...] = (COLLAPSIBLE_IF, NEW_WITHOUT_DEFAULT, NEW_WITHOUT_DEFAULT_DERIVE)


def builtin_rules(
    config: FerrolintConfig | None = None,
    *,
    types: TypeOracle | None = None,
    spans: SpanOracle | None = None,
) -> tuple[BaseRule, ...]:
    """
    Instantiate every built-in rule with its oracles.

    Without a type oracle, an empty `CrateIndex` is used: it knows only the
    standard library, so `new_without_default` stays silent.
    """

    cfg = config or FerrolintConfig()
    span_oracle = spans or ExpansionTable()
    type_oracle = types or CrateIndex(extra_default_types=cfg.default_types)

    rules: tuple[BaseRule, ...] = (
        CollapsibleIf(spans=span_oracle),
        NewWithoutDefault(types=type_oracle, spans=span_oracle, default_trait=cfg.default_trait),
    )

    # Defensive: ensure no lint is declared twice.
    seen: set[str] = set()
    for rule in rules:
        for meta in rule.lints:
            if meta.name in seen:  # pragma: no cover
                raise RuntimeError(f"Duplicate lint name: {meta.name}")
            seen.add(meta.name)
    return rules


def lint_metas() -> tuple[LintMeta, ...]:
    return tuple(sorted(_LINTS, key=lambda m: m.name))

