"""
Rust syntax trees from tree-sitter, when the `treesitter` extra is installed.

Without it `parse_rust` returns None and the scanner reports the file as
skipped instead of failing.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from functools import lru_cache
from typing import Any, Protocol, cast

logger = logging.getLogger(__name__)

GRAMMAR_NAME = "rust"


class SyntaxTree(Protocol):
    root_node: Any


class _RustParser(Protocol):
    def set_language(self, language: object) -> None: ...

    def parse(self, source: bytes) -> object: ...


Parser: type[_RustParser] | None
get_language: Callable[[str], object] | None

try:  # pragma: no cover
    import tree_sitter
    import tree_sitter_languages
except (ImportError, OSError):  # pragma: no cover
    Parser = None
    get_language = None
else:  # pragma: no cover
    Parser = cast(type[_RustParser], tree_sitter.Parser)
    get_language = cast(Callable[[str], object], tree_sitter_languages.get_language)

_TREE_SITTER_AVAILABLE = Parser is not None and get_language is not None


class GrammarError(RuntimeError):
    """The installed grammar pack has no usable Rust grammar."""


@lru_cache(maxsize=1)
def _rust_grammar() -> object:
    assert get_language is not None
    try:
        return get_language(GRAMMAR_NAME)
    except (AttributeError, KeyError, ValueError, RuntimeError) as exc:  # pragma: no cover (depends on installed grammars)
        raise GrammarError(f"no {GRAMMAR_NAME!r} grammar in tree-sitter-languages") from exc


_PARSER_LOCAL = threading.local()


def _rust_parser() -> _RustParser:
    # tree-sitter parsers are not thread-safe; keep one per thread.
    parser: _RustParser | None = getattr(_PARSER_LOCAL, "parser", None)
    if parser is None:
        grammar = _rust_grammar()
        assert Parser is not None
        parser = Parser()
        parser.set_language(grammar)
        _PARSER_LOCAL.parser = parser
    return parser


def parse_rust(text: str) -> SyntaxTree | None:
    """Parse Rust `text`, or None when tree-sitter is missing or cannot parse it."""

    if not _TREE_SITTER_AVAILABLE:
        return None
    try:
        tree = _rust_parser().parse(text.encode("utf-8", errors="replace"))
    except (GrammarError, ValueError, TypeError, RuntimeError) as exc:
        logger.debug("tree-sitter failed: %s", exc)
        return None
    return cast(SyntaxTree, tree)


def is_available() -> bool:
    return _TREE_SITTER_AVAILABLE
