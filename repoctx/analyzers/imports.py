"""Resolution of relative imports to files and the file-level dependency graph."""

from __future__ import annotations

import posixpath
from typing import AbstractSet, Iterable, List, Mapping, Optional, Set, Tuple

from ..models import DependencyGraph, GraphNode, ImportEdge
from .language import Language, detect_language

_ES_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mts", ".cts", ".mjs", ".cjs")
_ES_COMPILED_EXTENSIONS = {".js", ".jsx", ".mjs", ".cjs"}
_ES_INDEX_FILES = ("index.ts", "index.tsx", "index.js", "index.jsx", "index.mjs")
_PY_SUFFIXES = (".py", ".pyi")


def _es_candidates(module: str, importer: str) -> List[str]:
    if module.startswith("/"):
        base = posixpath.normpath(module.lstrip("/"))
    else:
        base = posixpath.normpath(posixpath.join(posixpath.dirname(importer), module))
    candidates = [base]
    candidates.extend(base + ext for ext in _ES_EXTENSIONS)
    stem, ext = posixpath.splitext(base)
    if ext in _ES_COMPILED_EXTENSIONS:
        # ESM TypeScript imports name the emitted .js file.
        candidates.extend(stem + source_ext for source_ext in (".ts", ".tsx", ".mts", ".cts"))
    candidates.extend(posixpath.join(base, name) for name in _ES_INDEX_FILES)
    return candidates


def _python_candidates(module: str, importer: str) -> List[str]:
    rest = module.lstrip(".")
    package = posixpath.dirname(importer)
    # One dot is the importer's package; each further dot climbs one level.
    for _ in range(len(module) - len(rest) - 1):
        package = posixpath.dirname(package)
    target = posixpath.join(package, *rest.split(".")) if rest else package
    candidates = [target + suffix for suffix in _PY_SUFFIXES] if rest else []
    candidates.append(posixpath.join(target, "__init__.py"))
    return candidates


def resolve_import(module: str, importer: str, files: AbstractSet[str]) -> Optional[str]:
    """Map an import specifier written in ``importer`` to a file in ``files``.

    Only relative specifiers resolve: ``./x``, ``../x`` and root-relative
    ``/x`` for ECMAScript, leading-dot modules for Python. ECMAScript
    specifiers try the path as written, then each extension, then an
    ``index`` file inside it. Package imports return None.
    """
    language = detect_language(importer)
    if language is None or not module:
        return None
    if language.is_ecmascript:
        if not module.startswith(("./", "../", "/")) and module not in {".", ".."}:
            return None
        candidates = _es_candidates(module, importer)
    elif language is Language.PYTHON:
        if not module.startswith("."):
            return None
        candidates = _python_candidates(module, importer)
    else:
        return None

    for candidate in candidates:
        if candidate in files and candidate != importer:
            return candidate
    return None


def build_dependency_graph(imports_by_file: Mapping[str, Iterable[str]]) -> DependencyGraph:
    """Build the import graph between the files keyed in ``imports_by_file``.

    Each resolved importer/target pair counts once, and edges to files outside
    the mapping are dropped.
    """
    files = set(imports_by_file)
    nodes = {path: GraphNode(path=path) for path in imports_by_file}
    edges: List[ImportEdge] = []
    seen: Set[Tuple[str, str]] = set()

    for source, modules in imports_by_file.items():
        for module in modules:
            target = resolve_import(module, source, files)
            if target is None or (source, target) in seen:
                continue
            seen.add((source, target))
            edges.append(ImportEdge(source=source, target=target))
            nodes[source].out_degree += 1
            nodes[target].in_degree += 1

    hubs = sorted(
        (node for node in nodes.values() if node.in_degree > 0),
        key=lambda node: -node.in_degree,
    )
    leaves = sorted(
        (node for node in nodes.values() if node.out_degree > 0),
        key=lambda node: -node.out_degree,
    )
    return DependencyGraph(nodes=nodes, edges=edges, hubs=hubs, leaves=leaves)


__all__ = ["build_dependency_graph", "resolve_import"]
