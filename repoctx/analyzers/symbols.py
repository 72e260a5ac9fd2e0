"""Symbol, import and export extraction for a single source file."""

from __future__ import annotations

from typing import Optional

from ..logging import get_logger
from ..models import ParsedFile
from . import patterns
from .extractors import extract_structured
from .language import Language, detect_language
from .tree_sitter import GrammarRegistry, LanguageLoadError

_LOGGER = get_logger("symbols")


class SymbolExtractor:
    """Extracts a ParsedFile by trying the syntax tree first, then regexes.

    The two strategies stay separate: :func:`extract_structured` walks the
    tree and :mod:`repoctx.analyzers.patterns` scans text. This class only
    decides which one answers.
    """

    def __init__(self, registry: GrammarRegistry) -> None:
        self.registry = registry

    def extract(self, path: str, content: str) -> Optional[ParsedFile]:
        """Return the ParsedFile for ``path`` or None when it cannot be trusted.

        None means the extension is unsupported or the source does not parse
        cleanly.
        """
        language = detect_language(path)
        if language is None:
            return None
        try:
            return self._extract_structured(path, content, language)
        except LanguageLoadError as exc:
            _LOGGER.warning("%s; using pattern extraction for %s", exc, path)
            return patterns.extract_with_patterns(path, content, language)

    def _extract_structured(
        self, path: str, content: str, language: Language
    ) -> Optional[ParsedFile]:
        source = content.encode("utf-8")
        tree = self.registry.parse(source, language)
        result = extract_structured(tree, source, language)
        if result is None:
            _LOGGER.debug("Skipping %s: syntax errors in %s source", path, language.value)
            return None

        imports = result.imports or patterns.extract_imports(content, language)
        return ParsedFile(
            path=path,
            language=language.value,
            functions=tuple(result.functions),
            classes=tuple(result.classes),
            imports=tuple(imports),
            exports=tuple(result.exports),
            has_tests=patterns.detect_tests(path, content, language),
        )


__all__ = ["SymbolExtractor"]
