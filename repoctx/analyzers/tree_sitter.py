"""Tree-sitter grammar loading and parsing with an owned, memoised cache."""

from __future__ import annotations

import threading
from typing import Callable, Dict, Optional

from tree_sitter import Language as Grammar
from tree_sitter import Parser, Tree
from tree_sitter_language_pack import get_language

from ..logging import get_logger
from .language import Language

_LOGGER = get_logger("grammars")

GrammarLoader = Callable[[str], Grammar]


class GrammarError(RuntimeError):
    """Base class for grammar adapter failures."""


class NotInitializedError(GrammarError):
    """Raised when the registry is used before :meth:`GrammarRegistry.initialize`."""

    def __init__(self) -> None:
        super().__init__("Grammar registry not initialized. Call initialize() first.")


class LanguageLoadError(GrammarError):
    """Raised when a grammar cannot be loaded; the cause is chained."""

    def __init__(self, language: Language, cause: BaseException | None = None) -> None:
        detail = f" - {cause}" if cause is not None else ""
        super().__init__(f"Failed to load grammar for {language.value}{detail}")
        self.language = language
        self.cause = cause


class GrammarRegistry:
    """Loads tree-sitter grammars lazily and caches them per language.

    One registry is constructed per process or per ranking session and owned
    by whoever drives extraction; it is never shared implicitly. Loading is
    guarded by a lock so each grammar is loaded at most once.
    """

    def __init__(self, loader: Optional[GrammarLoader] = None) -> None:
        self._loader: GrammarLoader = loader or get_language  # type: ignore[assignment]
        self._grammars: Dict[Language, Grammar] = {}
        self._lock = threading.Lock()
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """Prepare the registry for use. Safe to call repeatedly."""
        with self._lock:
            if self._initialized:
                return
            self._initialized = True
        _LOGGER.debug("Grammar registry initialized")

    def load_language(self, language: Language) -> Grammar:
        """Return the grammar for ``language``, loading it on first use."""
        self._require_initialized()
        with self._lock:
            cached = self._grammars.get(language)
            if cached is not None:
                return cached
            try:
                grammar = self._loader(language.value)
            except Exception as exc:
                raise LanguageLoadError(language, exc) from exc
            self._grammars[language] = grammar
        _LOGGER.debug("Loaded %s grammar", language.value)
        return grammar

    def create_parser(self, language: Language) -> Parser:
        self._require_initialized()
        return Parser(self.load_language(language))

    def parse(self, source: str | bytes, language: Language) -> Tree:
        """Parse ``source`` into a syntax tree for ``language``."""
        parser = self.create_parser(language)
        source_bytes = source.encode("utf-8") if isinstance(source, str) else source
        return parser.parse(source_bytes)

    def is_loaded(self, language: Language) -> bool:
        return language in self._grammars

    def clear_cache(self) -> None:
        with self._lock:
            self._grammars.clear()

    def reset(self) -> None:
        """Drop cached grammars and return to the uninitialized state."""
        with self._lock:
            self._grammars.clear()
            self._initialized = False

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise NotInitializedError()


__all__ = [
    "GrammarError",
    "GrammarRegistry",
    "LanguageLoadError",
    "NotInitializedError",
]
