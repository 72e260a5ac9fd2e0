"""Language detection, path heuristics and symbol extraction."""

from __future__ import annotations

from .heuristics import classify, score
from .language import SUPPORTED_EXTENSIONS, Language, detect_language
from .symbols import SymbolExtractor
from .tree_sitter import GrammarRegistry

__all__ = [
    "GrammarRegistry",
    "Language",
    "SUPPORTED_EXTENSIONS",
    "SymbolExtractor",
    "classify",
    "detect_language",
    "score",
]
