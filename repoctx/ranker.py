"""Importance ranking: path heuristics first, syntax-derived boosts second."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .analyzers.heuristics import (
    REEXPORT_SHIM_SCORE,
    check_reexport_shim,
    classify,
    is_reexport_shim,
    is_shim_filename,
    score,
)
from .analyzers.imports import build_dependency_graph
from .analyzers.language import detect_language
from .analyzers.patterns import extract_imports
from .analyzers.symbols import SymbolExtractor
from .analyzers.tree_sitter import GrammarRegistry
from .analyzers.utils import read_text_file
from .logging import get_logger
from .models import DependencyGraph, FileRole, ParsedFile, RankedFile
from .repo_scanner import DEFAULT_MAX_FILE_SIZE, DEFAULT_MAX_FILES, RepoScanner

_LOGGER = get_logger("ranker")

SHIM_REASON = "re-export shim"


@dataclass
class RankOptions:
    """Discovery limits and extra ignore globs for one ranking pass."""

    max_files: int = DEFAULT_MAX_FILES
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    exclude_patterns: List[str] = field(default_factory=list)


def _clamp(value: float) -> float:
    return round(min(1.0, max(0.0, value)), 3)


def _sort(entries: Iterable[RankedFile]) -> List[RankedFile]:
    return sorted(entries, key=lambda entry: -entry.importance)


def heuristic_entry(path: str, is_shim: bool = False) -> RankedFile:
    """Score one path; barrel files are pinned to the shim score."""
    role = classify(path)
    if is_shim:
        return RankedFile(path=path, importance=REEXPORT_SHIM_SCORE, role=role, reason=SHIM_REASON)
    return RankedFile(path=path, importance=_clamp(score(path)), role=role)


def rank_files_by_heuristics(
    repo_path: str | Path, options: RankOptions | None = None
) -> List[RankedFile]:
    """Discover, classify and score files using their paths alone."""
    opts = options or RankOptions()
    scanner = RepoScanner(max_files=opts.max_files, max_file_size=opts.max_file_size)
    root = Path(repo_path).expanduser().resolve()
    candidates = scanner.scan(root, opts.exclude_patterns)
    entries = [
        heuristic_entry(
            candidate.relative_path,
            check_reexport_shim(root / candidate.relative_path, candidate.relative_path),
        )
        for candidate in candidates
    ]
    return _sort(entries)


def _boost(export_count: int, function_count: int) -> tuple[float, List[str]]:
    bonus = 0.0
    reasons: List[str] = []
    if export_count > 10:
        bonus += 0.15
    elif export_count > 5:
        bonus += 0.10
    elif export_count > 0:
        bonus += 0.05
    if export_count > 0:
        reasons.append(f"{export_count} exports")

    if function_count > 15:
        bonus += 0.10
    elif function_count > 5:
        bonus += 0.05
    if function_count > 5:
        reasons.append(f"{function_count} functions")
    return bonus, reasons


def apply_ast_boost(
    entries: Iterable[RankedFile], parsed_files: Mapping[str, ParsedFile]
) -> List[RankedFile]:
    """Add export and function boosts to entries that have parse data.

    Entries without a ParsedFile keep their heuristic score. Re-export shims
    keep the shim score; their counts are still recorded. The result is
    re-sorted, ties keeping their incoming order.
    """
    boosted: List[RankedFile] = []
    for entry in entries:
        parsed = parsed_files.get(entry.path)
        if parsed is None:
            boosted.append(entry)
            continue

        export_count = parsed.export_count
        function_count = len(parsed.functions)
        bonus, reasons = _boost(export_count, function_count)
        if parsed.has_tests and entry.role is not FileRole.TEST:
            reasons.append("contains tests")

        if entry.reason == SHIM_REASON:
            importance = entry.importance
            reasons.insert(0, SHIM_REASON)
        else:
            importance = _clamp(entry.importance + bonus)

        boosted.append(
            replace(
                entry,
                importance=importance,
                export_count=export_count,
                function_count=function_count,
                has_tests=parsed.has_tests,
                reason=", ".join(reasons) if reasons else None,
                imports=list(parsed.imports),
            )
        )
    return _sort(boosted)


def rank_files_with_ast(
    repo_path: str | Path,
    parsed_files: Mapping[str, ParsedFile],
    options: RankOptions | None = None,
) -> List[RankedFile]:
    """Heuristic ranking followed by boosts from already parsed files."""
    return apply_ast_boost(rank_files_by_heuristics(repo_path, options), parsed_files)


def import_graph_scores(graph: DependencyGraph) -> Dict[str, float]:
    """Score files by how many other files import them.

    Inbound edges are normalised against the most imported file into
    ``[0, 0.7]``. Entry points gain 0.2, core files 0.05, and test files keep
    30% of their score.
    """
    max_inbound = max((node.in_degree for node in graph.nodes.values()), default=0)
    scores: Dict[str, float] = {}
    for path, node in graph.nodes.items():
        value = node.in_degree / max_inbound * 0.7 if max_inbound else 0.0
        role = classify(path)
        if role is FileRole.ENTRY:
            value += 0.2
        elif role is FileRole.CORE:
            value += 0.05
        elif role is FileRole.TEST:
            value *= 0.3
        scores[path] = _clamp(value)
    return scores


def _inbound_reason(in_degree: int) -> Optional[str]:
    if in_degree <= 0:
        return None
    return f"imported by {in_degree} file{'s' if in_degree != 1 else ''}"


class FileRanker:
    """Runs discovery, extraction and boosting in one pass over a repository.

    Each discovered file is read at most once; its content feeds both the
    barrel check and symbol extraction.
    """

    def __init__(self, registry: Optional[GrammarRegistry] = None) -> None:
        self.registry = registry or GrammarRegistry()
        self.registry.initialize()
        self.extractor = SymbolExtractor(self.registry)

    def rank(self, repo_path: str | Path, options: RankOptions | None = None) -> List[RankedFile]:
        """Heuristic scores plus export and function boosts."""
        scan = self._scan(repo_path, options or RankOptions())
        entries = [heuristic_entry(path, path in scan.shims) for path in scan.paths]
        ranked = apply_ast_boost(_sort(entries), scan.parsed_files)
        _LOGGER.info(
            "Ranked %d files (%d with syntax data) under %s",
            len(ranked),
            len(scan.parsed_files),
            scan.root,
        )
        return ranked

    def rank_by_imports(
        self, repo_path: str | Path, options: RankOptions | None = None
    ) -> List[RankedFile]:
        """Rank by inbound edges in the repository's import graph."""
        scan = self._scan(repo_path, options or RankOptions())
        graph = build_dependency_graph(scan.imports)
        scores = import_graph_scores(graph)
        entries = []
        for path in scan.paths:
            imports = list(scan.imports.get(path, ()))
            entries.append(
                RankedFile(
                    path=path,
                    importance=scores[path],
                    role=classify(path),
                    reason=_inbound_reason(graph.nodes[path].in_degree),
                    imports=imports or None,
                )
            )
        ranked = _sort(entries)
        _LOGGER.info(
            "Ranked %d files by imports under %s (%d edges, %d hubs)",
            len(ranked),
            scan.root,
            len(graph.edges),
            len(graph.hubs),
        )
        return ranked

    def _scan(self, repo_path: str | Path, opts: RankOptions) -> _ScanResult:
        scanner = RepoScanner(max_files=opts.max_files, max_file_size=opts.max_file_size)
        candidates = scanner.scan(repo_path, opts.exclude_patterns)
        result = _ScanResult(root=Path(repo_path).expanduser().resolve())

        for candidate in candidates:
            path = candidate.relative_path
            result.paths.append(path)
            content = read_text_file(result.root / path, opts.max_file_size)
            if content is None:
                result.imports[path] = ()
                continue
            if is_shim_filename(path) and is_reexport_shim(content):
                result.shims.add(path)
            parsed = self.extractor.extract(path, content)
            if parsed is not None:
                result.parsed_files[path] = parsed
                result.imports[path] = parsed.imports
            else:
                language = detect_language(path)
                result.imports[path] = (
                    tuple(extract_imports(content, language)) if language is not None else ()
                )
        return result


@dataclass
class _ScanResult:
    root: Path
    paths: List[str] = field(default_factory=list)
    shims: Set[str] = field(default_factory=set)
    parsed_files: Dict[str, ParsedFile] = field(default_factory=dict)
    imports: Dict[str, Tuple[str, ...]] = field(default_factory=dict)


def rank_files_by_imports(
    repo_path: str | Path,
    options: RankOptions | None = None,
    registry: Optional[GrammarRegistry] = None,
) -> List[RankedFile]:
    """Import-graph ranking with a throwaway :class:`FileRanker`."""
    return FileRanker(registry).rank_by_imports(repo_path, options)


__all__ = [
    "FileRanker",
    "RankOptions",
    "SHIM_REASON",
    "apply_ast_boost",
    "heuristic_entry",
    "import_graph_scores",
    "rank_files_by_heuristics",
    "rank_files_by_imports",
    "rank_files_with_ast",
]
