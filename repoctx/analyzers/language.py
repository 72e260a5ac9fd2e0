"""Supported source languages and extension lookup."""

from __future__ import annotations

from enum import Enum
from pathlib import PurePosixPath
from typing import Dict, FrozenSet, Optional


class Language(str, Enum):
    """Closed set of languages with a structured extraction path.

    Values double as the grammar names understood by tree-sitter-language-pack.
    """

    TYPESCRIPT = "typescript"
    TSX = "tsx"
    JAVASCRIPT = "javascript"
    PYTHON = "python"
    GO = "go"
    RUST = "rust"
    JAVA = "java"

    @property
    def is_ecmascript(self) -> bool:
        return self in {Language.TYPESCRIPT, Language.TSX, Language.JAVASCRIPT}


_LANGUAGE_BY_SUFFIX: Dict[str, Language] = {
    ".ts": Language.TYPESCRIPT,
    ".mts": Language.TYPESCRIPT,
    ".cts": Language.TYPESCRIPT,
    ".tsx": Language.TSX,
    ".js": Language.JAVASCRIPT,
    ".jsx": Language.JAVASCRIPT,
    ".mjs": Language.JAVASCRIPT,
    ".cjs": Language.JAVASCRIPT,
    ".py": Language.PYTHON,
    ".pyi": Language.PYTHON,
    ".go": Language.GO,
    ".rs": Language.RUST,
    ".java": Language.JAVA,
}

SUPPORTED_EXTENSIONS: FrozenSet[str] = frozenset(_LANGUAGE_BY_SUFFIX)


def language_for_extension(ext: str) -> Optional[Language]:
    """Map an extension (with or without the leading dot) to a language."""
    if not ext:
        return None
    normalised = ext if ext.startswith(".") else f".{ext}"
    return _LANGUAGE_BY_SUFFIX.get(normalised.lower())


def detect_language(path: str) -> Optional[Language]:
    """Return the language for ``path`` or None when its extension is unsupported."""
    return language_for_extension(PurePosixPath(path.replace("\\", "/")).suffix)


def is_extension_supported(ext: str) -> bool:
    return language_for_extension(ext) is not None


__all__ = [
    "Language",
    "SUPPORTED_EXTENSIONS",
    "detect_language",
    "is_extension_supported",
    "language_for_extension",
]
