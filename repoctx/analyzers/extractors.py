"""Structured extraction of symbols, imports and exports from syntax trees.

Each supported language has one traversal function. ``extract_structured``
dispatches on :class:`~repoctx.analyzers.language.Language` and refuses trees
that contain syntax errors, since partial data would skew ranking.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple

from tree_sitter import Node, Tree

from ..models import ExtractedSymbol, SymbolKind
from .language import Language

_MAX_SIGNATURE_CHARS = 200
_WHITESPACE = re.compile(r"\s+")
_TRAILING_OPENER = re.compile(r"\s*(?:=>|[{:])\s*$")
_PUBLIC_MODIFIER = re.compile(r"\bpublic\b")
_RUST_PATH_SPLIT = re.compile(r"::|[\s{},]+")
_RUST_INTERNAL_ROOTS = {"self", "super", "crate"}


@dataclass
class StructuredResult:
    """Raw extraction output before it is wrapped in a ParsedFile."""

    functions: List[ExtractedSymbol] = field(default_factory=list)
    classes: List[ExtractedSymbol] = field(default_factory=list)
    imports: List[str] = field(default_factory=list)
    exports: List[str] = field(default_factory=list)


class _Collector:
    def __init__(self, source: bytes) -> None:
        self.source = source
        self.result = StructuredResult()
        self._symbol_keys: Set[Tuple[str, int]] = set()
        self._imports: Set[str] = set()
        self._exports: Set[str] = set()

    def text(self, node: Optional[Node]) -> str:
        if node is None:
            return ""
        return self.source[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")

    def add_symbol(
        self,
        node: Node,
        name_node: Optional[Node],
        kind: SymbolKind,
        *,
        exported: bool = False,
        is_async: bool = False,
    ) -> None:
        name = self.text(name_node).strip()
        if not name or name_node is None:
            return
        line = name_node.start_point[0] + 1
        key = (name, line)
        if key in self._symbol_keys:
            return
        self._symbol_keys.add(key)
        symbol = ExtractedSymbol(
            name=name,
            kind=kind,
            line=line,
            signature=self.signature(node),
            is_async=is_async,
            is_exported=exported,
        )
        if kind in (SymbolKind.FUNCTION, SymbolKind.METHOD):
            self.result.functions.append(symbol)
        else:
            self.result.classes.append(symbol)

    def add_import(self, module: str) -> None:
        module = module.strip()
        if module and module not in self._imports:
            self._imports.add(module)
            self.result.imports.append(module)

    def add_export(self, name: str) -> None:
        name = name.strip()
        if name and name not in self._exports:
            self._exports.add(name)
            self.result.exports.append(name)

    def signature(self, node: Node) -> Optional[str]:
        body = node.child_by_field_name("body")
        if body is None:
            value = node.child_by_field_name("value")
            if value is not None:
                body = value.child_by_field_name("body")
        end = body.start_byte if body is not None else node.end_byte
        raw = self.source[node.start_byte : end].decode("utf-8", errors="ignore")
        if body is None:
            raw = raw.splitlines()[0] if raw else raw
        parent = node.parent
        if node.type == "variable_declarator" and parent is not None and parent.children:
            # Declarators start at their name; restore the const/let/var keyword.
            raw = f"{self.text(parent.children[0])} {raw}"
        collapsed = _TRAILING_OPENER.sub("", _WHITESPACE.sub(" ", raw).strip())
        if not collapsed:
            return None
        return collapsed[:_MAX_SIGNATURE_CHARS]


def _walk(root: Node) -> Iterator[Node]:
    """Pre-order traversal without recursion, so deep trees cannot overflow."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _has_child(node: Node, child_type: str) -> bool:
    return any(child.type == child_type for child in node.children)


def _first_child(node: Node, *types: str) -> Optional[Node]:
    for child in node.children:
        if child.type in types:
            return child
    return None


def _nearest_ancestor(node: Node, types: Set[str]) -> Optional[Node]:
    current = node.parent
    while current is not None:
        if current.type in types:
            return current
        current = current.parent
    return None


def _unquote(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in {"'", '"', "`"}:
        return text[1:-1]
    return text


# TypeScript / TSX / JavaScript

_ES_FUNCTION_DECLARATIONS = {"function_declaration", "generator_function_declaration"}
_ES_FUNCTION_VALUES = {"arrow_function", "function_expression", "function", "generator_function"}
_ES_CLASS_KINDS = {
    "class_declaration": SymbolKind.CLASS,
    "abstract_class_declaration": SymbolKind.CLASS,
    "interface_declaration": SymbolKind.INTERFACE,
    "enum_declaration": SymbolKind.ENUM,
}
_ES_NAMED_DECLARATIONS = (
    _ES_FUNCTION_DECLARATIONS
    | set(_ES_CLASS_KINDS)
    | {"type_alias_declaration", "module", "internal_module"}
)
_ES_VARIABLE_DECLARATIONS = {"lexical_declaration", "variable_declaration"}
_COMMONJS_EXPORT_OBJECTS = {"exports", "module.exports"}


def _es_is_exported(declaration: Node) -> bool:
    parent = declaration.parent
    return parent is not None and parent.type == "export_statement"


def _es_declaration_names(declaration: Node, c: _Collector) -> List[str]:
    if declaration.type in _ES_NAMED_DECLARATIONS:
        name = c.text(declaration.child_by_field_name("name"))
        return [name] if name else []
    if declaration.type in _ES_VARIABLE_DECLARATIONS:
        names = []
        for declarator in declaration.named_children:
            if declarator.type != "variable_declarator":
                continue
            name_node = declarator.child_by_field_name("name")
            if name_node is not None and name_node.type == "identifier":
                names.append(c.text(name_node))
        return names
    if declaration.type == "ambient_declaration":
        names = []
        for child in declaration.named_children:
            names.extend(_es_declaration_names(child, c))
        return names
    return []


def _es_collect_export(node: Node, c: _Collector) -> None:
    source = node.child_by_field_name("source")
    module = _unquote(c.text(source)) if source is not None else ""
    if module:
        c.add_import(module)

    declaration = node.child_by_field_name("declaration")
    is_default = _has_child(node, "default")
    if declaration is not None:
        names = _es_declaration_names(declaration, c)
        for name in names:
            c.add_export(name)
        if is_default and not names:
            c.add_export("default")
        return
    if is_default or _has_child(node, "="):
        c.add_export("default")
        return

    clause = _first_child(node, "export_clause")
    if clause is not None:
        for specifier in clause.named_children:
            if specifier.type != "export_specifier":
                continue
            alias = specifier.child_by_field_name("alias")
            target = alias if alias is not None else specifier.child_by_field_name("name")
            c.add_export(_unquote(c.text(target)))
        return

    namespace = _first_child(node, "namespace_export")
    if namespace is not None:
        named = namespace.named_children
        if named:
            c.add_export(_unquote(c.text(named[-1])))
        return

    if module and _has_child(node, "*"):
        c.add_export(f"* from {module}")


def _es_collect_call(node: Node, c: _Collector) -> None:
    function = node.child_by_field_name("function")
    if function is None:
        return
    if function.type != "import" and c.text(function) != "require":
        return
    arguments = node.child_by_field_name("arguments")
    if arguments is None:
        return
    first = next(iter(arguments.named_children), None)
    if first is not None and first.type == "string":
        c.add_import(_unquote(c.text(first)))


def _es_collect_commonjs(node: Node, c: _Collector) -> None:
    left = node.child_by_field_name("left")
    if left is None or left.type != "member_expression":
        return
    target = c.text(left.child_by_field_name("object"))
    if target in _COMMONJS_EXPORT_OBJECTS:
        c.add_export(c.text(left.child_by_field_name("property")))


def _extract_ecmascript(root: Node, c: _Collector) -> None:
    for node in _walk(root):
        kind = node.type
        if kind in _ES_FUNCTION_DECLARATIONS:
            c.add_symbol(
                node,
                node.child_by_field_name("name"),
                SymbolKind.FUNCTION,
                exported=_es_is_exported(node),
                is_async=_has_child(node, "async"),
            )
        elif kind == "method_definition":
            c.add_symbol(
                node,
                node.child_by_field_name("name"),
                SymbolKind.METHOD,
                is_async=_has_child(node, "async"),
            )
        elif kind in _ES_CLASS_KINDS:
            c.add_symbol(
                node,
                node.child_by_field_name("name"),
                _ES_CLASS_KINDS[kind],
                exported=_es_is_exported(node),
            )
        elif kind == "variable_declarator":
            value = node.child_by_field_name("value")
            if value is None or value.type not in _ES_FUNCTION_VALUES:
                continue
            declaration = node.parent
            c.add_symbol(
                node,
                node.child_by_field_name("name"),
                SymbolKind.FUNCTION,
                exported=declaration is not None and _es_is_exported(declaration),
                is_async=_has_child(value, "async"),
            )
        elif kind == "import_statement":
            source = node.child_by_field_name("source")
            if source is not None:
                c.add_import(_unquote(c.text(source)))
        elif kind == "export_statement":
            _es_collect_export(node, c)
        elif kind == "call_expression":
            _es_collect_call(node, c)
        elif kind == "assignment_expression":
            _es_collect_commonjs(node, c)


# Python

_PY_SCOPES = {"class_definition", "function_definition"}


def _py_top_level_module(name: str) -> str:
    return name.split(".", 1)[0]


def _py_all_entries(root: Node, c: _Collector) -> Optional[List[str]]:
    entries: Optional[List[str]] = None
    for statement in root.named_children:
        if statement.type != "expression_statement":
            continue
        for assignment in statement.named_children:
            if assignment.type not in {"assignment", "augmented_assignment"}:
                continue
            left = assignment.child_by_field_name("left")
            right = assignment.child_by_field_name("right")
            if c.text(left) != "__all__" or right is None:
                continue
            if right.type not in {"list", "tuple"}:
                continue
            if entries is None or assignment.type == "assignment":
                entries = []
            for item in right.named_children:
                if item.type == "string":
                    entries.append(_unquote(c.text(item)))
    return entries


def _py_top_level_definitions(root: Node) -> List[Node]:
    definitions = []
    for statement in root.named_children:
        if statement.type == "decorated_definition":
            inner = statement.child_by_field_name("definition")
            if inner is not None:
                definitions.append(inner)
        elif statement.type in _PY_SCOPES:
            definitions.append(statement)
    return definitions


def _extract_python(root: Node, c: _Collector) -> None:
    for node in _walk(root):
        kind = node.type
        if kind == "function_definition":
            scope = _nearest_ancestor(node, _PY_SCOPES)
            symbol_kind = (
                SymbolKind.METHOD
                if scope is not None and scope.type == "class_definition"
                else SymbolKind.FUNCTION
            )
            c.add_symbol(
                node,
                node.child_by_field_name("name"),
                symbol_kind,
                is_async=_has_child(node, "async"),
            )
        elif kind == "class_definition":
            c.add_symbol(node, node.child_by_field_name("name"), SymbolKind.CLASS)
        elif kind == "import_statement":
            for name_node in node.children_by_field_name("name"):
                if name_node.type == "aliased_import":
                    name_node = name_node.child_by_field_name("name")
                c.add_import(_py_top_level_module(c.text(name_node)))
        elif kind == "import_from_statement":
            module = node.child_by_field_name("module_name")
            if module is None:
                continue
            if module.type == "relative_import":
                c.add_import(c.text(module))
            else:
                c.add_import(_py_top_level_module(c.text(module)))

    declared = _py_all_entries(root, c)
    if declared is None:
        declared = [
            name
            for name in (
                c.text(definition.child_by_field_name("name"))
                for definition in _py_top_level_definitions(root)
            )
            if name and not name.startswith("_")
        ]
    for name in declared:
        c.add_export(name)

    exported = set(c.result.exports)
    c.result.functions = [
        replace(symbol, is_exported=symbol.kind is SymbolKind.FUNCTION and symbol.name in exported)
        for symbol in c.result.functions
    ]
    c.result.classes = [
        replace(symbol, is_exported=symbol.name in exported) for symbol in c.result.classes
    ]


# Go

_GO_TYPE_KINDS = {
    "struct_type": SymbolKind.STRUCT,
    "interface_type": SymbolKind.INTERFACE,
}


def _go_is_exported(name: str) -> bool:
    return bool(name) and name[0].isupper()


def _extract_go(root: Node, c: _Collector) -> None:
    for node in _walk(root):
        kind = node.type
        if kind in {"function_declaration", "method_declaration"}:
            name_node = node.child_by_field_name("name")
            name = c.text(name_node)
            c.add_symbol(
                node,
                name_node,
                SymbolKind.FUNCTION if kind == "function_declaration" else SymbolKind.METHOD,
                exported=_go_is_exported(name),
            )
            if _go_is_exported(name):
                c.add_export(name)
        elif kind in {"type_spec", "type_alias"}:
            name_node = node.child_by_field_name("name")
            name = c.text(name_node)
            type_node = node.child_by_field_name("type")
            symbol_kind = _GO_TYPE_KINDS.get(type_node.type) if type_node is not None else None
            if symbol_kind is not None:
                c.add_symbol(node, name_node, symbol_kind, exported=_go_is_exported(name))
            if _go_is_exported(name):
                c.add_export(name)
        elif kind == "import_spec":
            path = node.child_by_field_name("path")
            if path is not None:
                c.add_import(_unquote(c.text(path)))


# Rust

_RUST_TYPE_KINDS = {
    "struct_item": SymbolKind.STRUCT,
    "union_item": SymbolKind.STRUCT,
    "enum_item": SymbolKind.ENUM,
    "trait_item": SymbolKind.TRAIT,
}
_RUST_EXPORTED_ITEMS = {"mod_item", "const_item", "static_item", "type_item"}
_RUST_METHOD_SCOPES = {"impl_item", "trait_item", "function_item"}


def _rust_is_pub(node: Node, c: _Collector) -> bool:
    visibility = _first_child(node, "visibility_modifier")
    return visibility is not None and c.text(visibility).strip() == "pub"


def _rust_root_segment(path: str) -> str:
    for segment in _RUST_PATH_SPLIT.split(path.strip()):
        if segment:
            return segment
    return ""


def _extract_rust(root: Node, c: _Collector) -> None:
    for node in _walk(root):
        kind = node.type
        if kind in {"function_item", "function_signature_item"}:
            scope = _nearest_ancestor(node, _RUST_METHOD_SCOPES)
            in_type = scope is not None and scope.type != "function_item"
            modifiers = _first_child(node, "function_modifiers")
            c.add_symbol(
                node,
                node.child_by_field_name("name"),
                SymbolKind.METHOD if in_type else SymbolKind.FUNCTION,
                exported=_rust_is_pub(node, c),
                is_async=modifiers is not None and "async" in c.text(modifiers).split(),
            )
        elif kind in _RUST_TYPE_KINDS:
            c.add_symbol(
                node,
                node.child_by_field_name("name"),
                _RUST_TYPE_KINDS[kind],
                exported=_rust_is_pub(node, c),
            )
        elif kind in _RUST_EXPORTED_ITEMS:
            if _rust_is_pub(node, c):
                c.add_export(c.text(node.child_by_field_name("name")))
        elif kind == "use_declaration":
            argument = node.child_by_field_name("argument")
            path = c.text(argument)
            root_segment = _rust_root_segment(path)
            if root_segment and root_segment not in _RUST_INTERNAL_ROOTS:
                c.add_import(root_segment)
            if path and _rust_is_pub(node, c):
                c.add_export(f"* from {_WHITESPACE.sub(' ', path)}")
        elif kind == "extern_crate_declaration":
            c.add_import(c.text(node.child_by_field_name("name")))


# Java

_JAVA_TYPE_KINDS = {
    "class_declaration": SymbolKind.CLASS,
    "record_declaration": SymbolKind.CLASS,
    "interface_declaration": SymbolKind.INTERFACE,
    "annotation_type_declaration": SymbolKind.INTERFACE,
    "enum_declaration": SymbolKind.ENUM,
}


def _java_is_public(node: Node, c: _Collector) -> bool:
    modifiers = _first_child(node, "modifiers")
    return modifiers is not None and bool(_PUBLIC_MODIFIER.search(c.text(modifiers)))


def _extract_java(root: Node, c: _Collector) -> None:
    for node in _walk(root):
        kind = node.type
        if kind in _JAVA_TYPE_KINDS:
            public = _java_is_public(node, c)
            name_node = node.child_by_field_name("name")
            c.add_symbol(node, name_node, _JAVA_TYPE_KINDS[kind], exported=public)
            if public:
                c.add_export(c.text(name_node))
        elif kind in {"method_declaration", "constructor_declaration"}:
            c.add_symbol(
                node,
                node.child_by_field_name("name"),
                SymbolKind.METHOD,
                exported=_java_is_public(node, c),
            )
        elif kind == "import_declaration":
            target = _first_child(node, "scoped_identifier", "identifier")
            if target is not None:
                c.add_import(c.text(target))


_EXTRACTORS: Dict[Language, Callable[[Node, _Collector], None]] = {
    Language.TYPESCRIPT: _extract_ecmascript,
    Language.TSX: _extract_ecmascript,
    Language.JAVASCRIPT: _extract_ecmascript,
    Language.PYTHON: _extract_python,
    Language.GO: _extract_go,
    Language.RUST: _extract_rust,
    Language.JAVA: _extract_java,
}


def extractor_for(language: Language) -> Callable[[Node, _Collector], None]:
    try:
        return _EXTRACTORS[language]
    except KeyError:
        raise ValueError(f"No structured extractor registered for {language.value}") from None


def extract_structured(tree: Tree, source: bytes, language: Language) -> Optional[StructuredResult]:
    """Collect symbols, imports and exports from ``tree``.

    Returns None when the tree contains syntax errors.
    """
    root = tree.root_node
    if root.has_error:
        return None
    collector = _Collector(source)
    extractor_for(language)(root, collector)
    return collector.result


__all__ = ["StructuredResult", "extract_structured", "extractor_for"]
