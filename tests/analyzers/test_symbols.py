"""Tests for the extractor that picks between syntax trees and regexes."""

from __future__ import annotations

import logging

import pytest

from repoctx.analyzers import symbols as symbols_module
from repoctx.analyzers.extractors import StructuredResult
from repoctx.analyzers.symbols import SymbolExtractor
from repoctx.analyzers.tree_sitter import GrammarRegistry


def _failing_loader(name: str) -> object:
    raise OSError(f"no grammar named {name}")


@pytest.fixture
def extractor() -> SymbolExtractor:
    registry = GrammarRegistry()
    registry.initialize()
    return SymbolExtractor(registry)


def test_structured_extraction_produces_parsed_file(extractor: SymbolExtractor) -> None:
    content = "import os\n\n\ndef run() -> None:\n    pass\n\n\nclass Service:\n    pass\n"

    parsed = extractor.extract("app/main.py", content)

    assert parsed is not None
    assert parsed.language == "python"
    assert [symbol.name for symbol in parsed.functions] == ["run"]
    assert [symbol.name for symbol in parsed.classes] == ["Service"]
    assert parsed.imports == ("os",)
    assert parsed.export_count == 2
    assert parsed.has_tests is False


def test_syntax_errors_yield_none(extractor: SymbolExtractor) -> None:
    assert extractor.extract("app/broken.py", "def broken(:\n    return\n") is None


def test_unsupported_extension_yields_none(extractor: SymbolExtractor) -> None:
    assert extractor.extract("docs/guide.md", "# Guide\n") is None


def test_test_files_are_flagged(extractor: SymbolExtractor) -> None:
    content = "import pytest\n\n\ndef test_it() -> None:\n    assert True\n"

    parsed = extractor.extract("lib/check.py", content)

    assert parsed is not None and parsed.has_tests


def test_grammar_load_failure_falls_back_to_patterns(
    caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(logging.getLogger("repoctx"), "propagate", True)
    registry = GrammarRegistry(loader=_failing_loader)
    registry.initialize()
    extractor = SymbolExtractor(registry)

    with caplog.at_level(logging.WARNING, logger="repoctx"):
        parsed = extractor.extract("src/api.ts", "export function handler() {}\n")

    assert parsed is not None
    assert parsed.exports == ("handler",)
    assert [symbol.name for symbol in parsed.functions] == ["handler"]
    assert "pattern extraction" in caplog.text


def test_regex_imports_fill_gaps_in_structured_result(
    extractor: SymbolExtractor, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        symbols_module,
        "extract_structured",
        lambda tree, source, language: StructuredResult(),
    )

    parsed = extractor.extract("src/app.js", "const express = require('express');\n")

    assert parsed is not None
    assert parsed.imports == ("express",)
