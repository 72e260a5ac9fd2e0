"""Regex-based extraction used when no syntax tree is available.

These patterns are line oriented and intentionally forgiving. They back the
structured extractor in two places: recovering imports the tree walk missed,
and producing a whole ParsedFile when a grammar cannot be loaded.
"""

from __future__ import annotations

import re
from dataclasses import replace
from pathlib import PurePosixPath
from typing import Callable, Dict, Iterable, List, Optional, Pattern, Set, Tuple

from ..models import ExtractedSymbol, ParsedFile, SymbolKind
from .language import Language, detect_language

_MAX_SIGNATURE_CHARS = 200


# -- imports ---------------------------------------------------------------

_ES_IMPORT = re.compile(
    r"""\bimport\s+(?:type\s+)?(?:(?:\{[^}]*\}|[\w$*]+(?:\s+as\s+[\w$]+)?)"""
    r"""(?:\s*,\s*(?:\{[^}]*\}|\*\s+as\s+[\w$]+))?\s+from\s+)?['"]([^'"]+)['"]"""
)
_ES_EXPORT_FROM = re.compile(r"""\bexport\s+(?:type\s+)?(?:\*(?:\s+as\s+[\w$]+)?|\{[^}]*\})\s+from\s+['"]([^'"]+)['"]""")
_ES_REQUIRE = re.compile(r"""\brequire\s*\(\s*['"]([^'"]+)['"]\s*\)""")
_PY_FROM_IMPORT = re.compile(r"^[ \t]*from\s+(\.*[\w.]*)\s+import\b", re.MULTILINE)
_PY_IMPORT = re.compile(r"^[ \t]*import\s+([\w.]+(?:\s+as\s+\w+)?(?:\s*,\s*[\w.]+(?:\s+as\s+\w+)?)*)", re.MULTILINE)
_GO_IMPORT_SINGLE = re.compile(r"""^[ \t]*import\s+(?:[\w.]+\s+)?["`]([^"`]+)["`]""", re.MULTILINE)
_GO_IMPORT_BLOCK = re.compile(r"^[ \t]*import\s*\(([^)]*)\)", re.MULTILINE)
_GO_QUOTED = re.compile(r"""["`]([^"`]+)["`]""")
_RUST_USE = re.compile(r"^[ \t]*(?:pub(?:\([^)]*\))?\s+)?use\s+(?:::)?(\w+)", re.MULTILINE)
_RUST_EXTERN_CRATE = re.compile(r"^[ \t]*(?:pub\s+)?extern\s+crate\s+(\w+)", re.MULTILINE)
_RUST_INTERNAL_ROOTS = {"self", "super", "crate"}
_JAVA_IMPORT = re.compile(r"^[ \t]*import\s+(?:static\s+)?([\w.]+)(?:\.\*)?\s*;", re.MULTILINE)


def _unique(values: Iterable[str]) -> List[str]:
    seen: Set[str] = set()
    result: List[str] = []
    for value in values:
        value = value.strip()
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


def _python_module(name: str) -> str:
    if name.startswith("."):
        return name
    return name.split(".", 1)[0]


def _ecmascript_imports(content: str) -> List[str]:
    found = [match.group(1) for match in _ES_IMPORT.finditer(content)]
    found.extend(match.group(1) for match in _ES_EXPORT_FROM.finditer(content))
    found.extend(match.group(1) for match in _ES_REQUIRE.finditer(content))
    return found


def _python_imports(content: str) -> List[str]:
    found = [_python_module(match.group(1)) for match in _PY_FROM_IMPORT.finditer(content)]
    for match in _PY_IMPORT.finditer(content):
        for item in match.group(1).split(","):
            module = item.split(" as ", 1)[0].strip()
            if module:
                found.append(_python_module(module))
    return found


def _go_imports(content: str) -> List[str]:
    found = [match.group(1) for match in _GO_IMPORT_SINGLE.finditer(content)]
    for block in _GO_IMPORT_BLOCK.finditer(content):
        found.extend(match.group(1) for match in _GO_QUOTED.finditer(block.group(1)))
    return found


def _rust_imports(content: str) -> List[str]:
    found = [
        match.group(1)
        for match in _RUST_USE.finditer(content)
        if match.group(1) not in _RUST_INTERNAL_ROOTS
    ]
    found.extend(match.group(1) for match in _RUST_EXTERN_CRATE.finditer(content))
    return found


def _java_imports(content: str) -> List[str]:
    return [match.group(1) for match in _JAVA_IMPORT.finditer(content)]


_IMPORT_EXTRACTORS: Dict[Language, Callable[[str], List[str]]] = {
    Language.TYPESCRIPT: _ecmascript_imports,
    Language.TSX: _ecmascript_imports,
    Language.JAVASCRIPT: _ecmascript_imports,
    Language.PYTHON: _python_imports,
    Language.GO: _go_imports,
    Language.RUST: _rust_imports,
    Language.JAVA: _java_imports,
}


def extract_imports(content: str, language: Language) -> List[str]:
    """Return import specifiers found by regex, in first-seen order."""
    return _unique(_IMPORT_EXTRACTORS[language](content))


# -- symbols ---------------------------------------------------------------

_ES_FUNCTION = re.compile(
    r"^[ \t]*(export\s+)?(?:default\s+)?(async\s+)?function\s*\*?\s*([A-Za-z_$][\w$]*)",
    re.MULTILINE,
)
_ES_ARROW = re.compile(
    r"^[ \t]*(export\s+)?(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*(?::[^=]+)?=\s*(async\s+)?"
    r"(?:function\b|\([^)]*\)\s*(?::[^=]+)?=>|[A-Za-z_$][\w$]*\s*=>)",
    re.MULTILINE,
)
_ES_TYPES = re.compile(
    r"^[ \t]*(export\s+)?(?:default\s+)?(?:declare\s+)?(?:abstract\s+)?"
    r"(class|interface|(?:const\s+)?enum)\s+([A-Za-z_$][\w$]*)",
    re.MULTILINE,
)
_PY_DEF = re.compile(r"^([ \t]*)(async\s+)?def\s+([A-Za-z_]\w*)", re.MULTILINE)
_PY_CLASS = re.compile(r"^[ \t]*class\s+([A-Za-z_]\w*)", re.MULTILINE)
_GO_FUNC = re.compile(r"^func\s+(\([^)]*\)\s*)?([A-Za-z_]\w*)", re.MULTILINE)
_GO_TYPE = re.compile(r"^(?:type\s+|[ \t]+)([A-Za-z_]\w*)\s+(struct|interface)\s*\{", re.MULTILINE)
_RUST_FN = re.compile(
    r"^([ \t]*)(pub(?:\([^)]*\))?\s+)?((?:(?:const|async|unsafe|extern(?:\s+\"[^\"]*\")?)\s+)*)fn\s+(\w+)",
    re.MULTILINE,
)
_RUST_TYPE = re.compile(
    r"^[ \t]*(pub(?:\([^)]*\))?\s+)?(struct|union|enum|trait)\s+(\w+)", re.MULTILINE
)
_JAVA_TYPE = re.compile(
    r"^[ \t]*((?:(?:public|protected|private|static|final|abstract|sealed|non-sealed|strictfp)\s+)*)"
    r"(class|interface|enum|record|@interface)\s+(\w+)",
    re.MULTILINE,
)
_JAVA_METHOD = re.compile(
    r"^[ \t]+((?:(?:public|protected|private|static|final|abstract|synchronized|native|default)\s+)*)"
    r"(?:<[^>]+>\s+)?(?:[\w.\[\]<>?,]+\s+)?(\w+)\s*\([^)]*\)\s*(?:throws\s+[\w.,\s]+)?\{",
    re.MULTILINE,
)
_JAVA_KEYWORDS = {"if", "for", "while", "switch", "catch", "synchronized", "return", "new", "else", "try"}

_ES_TYPE_KINDS = {"class": SymbolKind.CLASS, "interface": SymbolKind.INTERFACE}
_RUST_TYPE_KINDS = {
    "struct": SymbolKind.STRUCT,
    "union": SymbolKind.STRUCT,
    "enum": SymbolKind.ENUM,
    "trait": SymbolKind.TRAIT,
}
_JAVA_TYPE_KINDS = {
    "class": SymbolKind.CLASS,
    "record": SymbolKind.CLASS,
    "interface": SymbolKind.INTERFACE,
    "@interface": SymbolKind.INTERFACE,
    "enum": SymbolKind.ENUM,
}


Symbols = Tuple[List[ExtractedSymbol], List[ExtractedSymbol]]


def _line_of(content: str, offset: int) -> int:
    return content.count("\n", 0, offset) + 1


def signature_from_line(line: str) -> Optional[str]:
    """Cut a declaration line at its body opener: ``{``, ``=>`` or ``:``."""
    text = line.strip()
    if not text:
        return None
    for marker in ("{", "=>"):
        index = text.find(marker)
        if index > 0:
            return text[:index].strip()[:_MAX_SIGNATURE_CHARS]
    index = text.rfind(":")
    if index > 0 and text.startswith(("def ", "async def ", "class ")):
        return text[:index].strip()[:_MAX_SIGNATURE_CHARS]
    return text[:_MAX_SIGNATURE_CHARS]


class _SymbolSink:
    def __init__(self, content: str) -> None:
        self.content = content
        self.functions: List[ExtractedSymbol] = []
        self.classes: List[ExtractedSymbol] = []
        self._keys: Set[Tuple[str, int]] = set()

    def add(
        self,
        match: "re.Match[str]",
        name: str,
        kind: SymbolKind,
        *,
        exported: bool = False,
        is_async: bool = False,
    ) -> None:
        line = _line_of(self.content, match.start())
        if (name, line) in self._keys:
            return
        self._keys.add((name, line))
        line_start = self.content.rfind("\n", 0, match.start()) + 1
        line_end = self.content.find("\n", match.start())
        text = self.content[line_start : line_end if line_end != -1 else len(self.content)]
        symbol = ExtractedSymbol(
            name=name,
            kind=kind,
            line=line,
            signature=signature_from_line(text),
            is_async=is_async,
            is_exported=exported,
        )
        if kind in (SymbolKind.FUNCTION, SymbolKind.METHOD):
            self.functions.append(symbol)
        else:
            self.classes.append(symbol)

    def result(self) -> Symbols:
        self.functions.sort(key=lambda symbol: symbol.line)
        self.classes.sort(key=lambda symbol: symbol.line)
        return self.functions, self.classes


def _ecmascript_symbols(content: str) -> Symbols:
    sink = _SymbolSink(content)
    for match in _ES_FUNCTION.finditer(content):
        sink.add(match, match.group(3), SymbolKind.FUNCTION, exported=bool(match.group(1)), is_async=bool(match.group(2)))
    for match in _ES_ARROW.finditer(content):
        sink.add(match, match.group(2), SymbolKind.FUNCTION, exported=bool(match.group(1)), is_async=bool(match.group(3)))
    for match in _ES_TYPES.finditer(content):
        keyword = match.group(2).split()[-1]
        kind = _ES_TYPE_KINDS.get(keyword, SymbolKind.ENUM)
        sink.add(match, match.group(3), kind, exported=bool(match.group(1)))
    return sink.result()


def _python_symbols(content: str) -> Symbols:
    sink = _SymbolSink(content)
    for match in _PY_DEF.finditer(content):
        kind = SymbolKind.METHOD if match.group(1) else SymbolKind.FUNCTION
        sink.add(match, match.group(3), kind, is_async=bool(match.group(2)))
    for match in _PY_CLASS.finditer(content):
        sink.add(match, match.group(1), SymbolKind.CLASS)
    return sink.result()


def _go_symbols(content: str) -> Symbols:
    sink = _SymbolSink(content)
    for match in _GO_FUNC.finditer(content):
        name = match.group(2)
        kind = SymbolKind.METHOD if match.group(1) else SymbolKind.FUNCTION
        sink.add(match, name, kind, exported=name[0].isupper())
    for match in _GO_TYPE.finditer(content):
        name = match.group(1)
        kind = SymbolKind.STRUCT if match.group(2) == "struct" else SymbolKind.INTERFACE
        sink.add(match, name, kind, exported=name[0].isupper())
    return sink.result()


def _rust_is_pub(visibility: Optional[str]) -> bool:
    return bool(visibility) and visibility.strip() == "pub"


def _rust_symbols(content: str) -> Symbols:
    sink = _SymbolSink(content)
    for match in _RUST_FN.finditer(content):
        kind = SymbolKind.METHOD if match.group(1) else SymbolKind.FUNCTION
        sink.add(
            match,
            match.group(4),
            kind,
            exported=_rust_is_pub(match.group(2)),
            is_async="async" in match.group(3).split(),
        )
    for match in _RUST_TYPE.finditer(content):
        sink.add(match, match.group(3), _RUST_TYPE_KINDS[match.group(2)], exported=_rust_is_pub(match.group(1)))
    return sink.result()


def _java_symbols(content: str) -> Symbols:
    sink = _SymbolSink(content)
    for match in _JAVA_TYPE.finditer(content):
        public = "public" in match.group(1).split()
        sink.add(match, match.group(3), _JAVA_TYPE_KINDS[match.group(2)], exported=public)
    for match in _JAVA_METHOD.finditer(content):
        name = match.group(2)
        if name in _JAVA_KEYWORDS:
            continue
        sink.add(match, name, SymbolKind.METHOD, exported="public" in match.group(1).split())
    return sink.result()


_SYMBOL_EXTRACTORS: Dict[Language, Callable[[str], Symbols]] = {
    Language.TYPESCRIPT: _ecmascript_symbols,
    Language.TSX: _ecmascript_symbols,
    Language.JAVASCRIPT: _ecmascript_symbols,
    Language.PYTHON: _python_symbols,
    Language.GO: _go_symbols,
    Language.RUST: _rust_symbols,
    Language.JAVA: _java_symbols,
}


def extract_symbols(content: str, language: Language) -> Symbols:
    """Return ``(functions, classes)`` found by regex."""
    return _SYMBOL_EXTRACTORS[language](content)


# -- exports ---------------------------------------------------------------

_ES_EXPORT_DECLARATION = re.compile(
    r"\bexport\s+(?:default\s+)?(?:declare\s+)?(?:async\s+)?(?:abstract\s+)?"
    r"(?:function\s*\*?|class|const|let|var|interface|type|(?:const\s+)?enum)\s+([A-Za-z_$][\w$]*)"
)
_ES_EXPORT_CLAUSE = re.compile(r"\bexport\s+(?:type\s+)?\{([^}]*)\}")
_ES_EXPORT_STAR = re.compile(r"""\bexport\s+\*\s+from\s+['"]([^'"]+)['"]""")
_ES_EXPORT_NAMESPACE = re.compile(r"\bexport\s+\*\s+as\s+([A-Za-z_$][\w$]*)")
_ES_EXPORT_DEFAULT = re.compile(r"\bexport\s+default\s+(?!(?:async\s+)?(?:function\s*\*?|abstract\s+class|class)\s+[A-Za-z_$])")
_COMMONJS_EXPORT = re.compile(r"\b(?:module\.)?exports\.([A-Za-z_$][\w$]*)\s*=")
_PY_ALL = re.compile(r"^__all__\s*=\s*[\[(]([^\])]*)[\])]", re.MULTILINE)
_PY_QUOTED = re.compile(r"""['"]([^'"]+)['"]""")
_PY_TOP_LEVEL = re.compile(r"^(?:async\s+)?(?:def|class)\s+([A-Za-z][\w]*)", re.MULTILINE)
_GO_EXPORTED_FUNC = re.compile(r"^func\s+(?:\([^)]+\)\s*)?([A-Z]\w*)", re.MULTILINE)
_GO_EXPORTED_TYPE = re.compile(r"^(?:type\s+|[ \t]+)([A-Z]\w*)\s+(?:struct|interface)\b", re.MULTILINE)
_GO_EXPORTED_TYPE_DECL = re.compile(r"^type\s+([A-Z]\w*)", re.MULTILINE)
_RUST_PUB_ITEM = re.compile(r"^[ \t]*pub\s+(?:mod|const|static|type)\s+(\w+)", re.MULTILINE)
_RUST_PUB_USE = re.compile(r"^[ \t]*pub\s+use\s+([^;]+);", re.MULTILINE)
_JAVA_PUBLIC_TYPE = re.compile(
    r"\bpublic\s+(?:(?:static|final|abstract|sealed)\s+)*(?:class|interface|enum|record)\s+(\w+)"
)


def _ecmascript_exports(content: str) -> List[str]:
    found = [match.group(1) for match in _ES_EXPORT_DECLARATION.finditer(content)]
    for clause in _ES_EXPORT_CLAUSE.finditer(content):
        for item in clause.group(1).split(","):
            item = item.strip()
            if not item:
                continue
            found.append(item.split(" as ", 1)[-1].strip())
    found.extend(match.group(1) for match in _ES_EXPORT_NAMESPACE.finditer(content))
    found.extend(f"* from {match.group(1)}" for match in _ES_EXPORT_STAR.finditer(content))
    if _ES_EXPORT_DEFAULT.search(content):
        found.append("default")
    found.extend(match.group(1) for match in _COMMONJS_EXPORT.finditer(content))
    return found


def _python_exports(content: str) -> List[str]:
    declared = _PY_ALL.search(content)
    if declared is not None:
        return [match.group(1) for match in _PY_QUOTED.finditer(declared.group(1))]
    return [
        match.group(1)
        for match in _PY_TOP_LEVEL.finditer(content)
        if not match.group(1).startswith("_")
    ]


def _go_exports(content: str) -> List[str]:
    found = [match.group(1) for match in _GO_EXPORTED_FUNC.finditer(content)]
    found.extend(match.group(1) for match in _GO_EXPORTED_TYPE_DECL.finditer(content))
    found.extend(match.group(1) for match in _GO_EXPORTED_TYPE.finditer(content))
    return found


def _rust_exports(content: str) -> List[str]:
    found = [match.group(1) for match in _RUST_PUB_ITEM.finditer(content)]
    found.extend(
        f"* from {' '.join(match.group(1).split())}" for match in _RUST_PUB_USE.finditer(content)
    )
    return found


def _java_exports(content: str) -> List[str]:
    return [match.group(1) for match in _JAVA_PUBLIC_TYPE.finditer(content)]


_EXPORT_EXTRACTORS: Dict[Language, Callable[[str], List[str]]] = {
    Language.TYPESCRIPT: _ecmascript_exports,
    Language.TSX: _ecmascript_exports,
    Language.JAVASCRIPT: _ecmascript_exports,
    Language.PYTHON: _python_exports,
    Language.GO: _go_exports,
    Language.RUST: _rust_exports,
    Language.JAVA: _java_exports,
}


def extract_exports(content: str, language: Language) -> List[str]:
    """Return exported names found by regex, including implicit export rules."""
    return _unique(_EXPORT_EXTRACTORS[language](content))


# -- test detection --------------------------------------------------------

_TEST_DIR_SEGMENTS = {"test", "tests", "__tests__", "spec", "specs"}
_TEST_NAME_MARKERS = ("_test.", ".test.", ".spec.", "_spec.")

_ES_TEST_CONTENT = (
    re.compile(r"\b(?:describe|it|test|expect)\s*\("),
    re.compile(r"""\bimport\s+.*\bfrom\s+['"](?:@testing-library[^'"]*|jest|vitest|mocha|chai)['"]"""),
    re.compile(r"""\brequire\s*\(\s*['"](?:@testing-library[^'"]*|jest|vitest|mocha|chai)['"]\s*\)"""),
)
_TEST_CONTENT: Dict[Language, Tuple[Pattern[str], ...]] = {
    Language.TYPESCRIPT: _ES_TEST_CONTENT,
    Language.TSX: _ES_TEST_CONTENT,
    Language.JAVASCRIPT: _ES_TEST_CONTENT,
    Language.PYTHON: (
        re.compile(r"\bdef\s+test_"),
        re.compile(r"\bclass\s+Test"),
        re.compile(r"\bimport\s+(?:pytest|unittest)\b"),
        re.compile(r"\bfrom\s+(?:pytest|unittest)\s+import\b"),
    ),
    Language.RUST: (
        re.compile(r"#\[test\]"),
        re.compile(r"#\[cfg\(test\)\]"),
    ),
    Language.GO: (
        re.compile(r"\bfunc\s+Test[A-Z]"),
        re.compile(r"\btesting\.T\b"),
    ),
    Language.JAVA: (
        re.compile(r"@Test\b"),
        re.compile(r"@TestCase\b"),
        re.compile(r"\bimport\s+.*junit"),
    ),
}


def is_test_path(path: str) -> bool:
    """Return True when the path itself marks a test file."""
    normalised = PurePosixPath(path.replace("\\", "/").lower())
    filename = normalised.name
    if filename.startswith("test_") or any(marker in filename for marker in _TEST_NAME_MARKERS):
        return True
    return any(part in _TEST_DIR_SEGMENTS for part in normalised.parts[:-1])


def detect_tests(path: str, content: str, language: Optional[Language] = None) -> bool:
    """Return True when the path or the content looks like test code."""
    if is_test_path(path):
        return True
    language = language or detect_language(path)
    if language is None:
        return False
    return any(pattern.search(content) for pattern in _TEST_CONTENT[language])


# -- whole-file fallback ---------------------------------------------------


def extract_with_patterns(path: str, content: str, language: Language) -> ParsedFile:
    """Build a ParsedFile from regex matches alone."""
    functions, classes = extract_symbols(content, language)
    exports = extract_exports(content, language)
    if language is Language.PYTHON:
        exported = set(exports)
        functions = [
            replace(symbol, is_exported=symbol.kind is SymbolKind.FUNCTION and symbol.name in exported)
            for symbol in functions
        ]
        classes = [replace(symbol, is_exported=symbol.name in exported) for symbol in classes]
    return ParsedFile(
        path=path,
        language=language.value,
        functions=tuple(functions),
        classes=tuple(classes),
        imports=tuple(extract_imports(content, language)),
        exports=tuple(exports),
        has_tests=detect_tests(path, content, language),
    )


__all__ = [
    "detect_tests",
    "extract_exports",
    "extract_imports",
    "extract_symbols",
    "extract_with_patterns",
    "is_test_path",
    "signature_from_line",
]
