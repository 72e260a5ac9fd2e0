"""Tests for heuristic ranking and syntax-derived boosts."""

from __future__ import annotations

from pathlib import Path

import pytest

from repoctx.analyzers.imports import build_dependency_graph
from repoctx.models import ExtractedSymbol, FileRole, ParsedFile, RankedFile, SymbolKind
from repoctx.ranker import (
    SHIM_REASON,
    FileRanker,
    RankOptions,
    apply_ast_boost,
    import_graph_scores,
    rank_files_by_heuristics,
    rank_files_by_imports,
    rank_files_with_ast,
)
from tests._fixtures.repo_builder import RepoBuilder


def _by_path(entries: list[RankedFile]) -> dict[str, RankedFile]:
    return {entry.path: entry for entry in entries}


def _functions(count: int, exported: bool = True) -> tuple[ExtractedSymbol, ...]:
    return tuple(
        ExtractedSymbol(name=f"f{index}", kind=SymbolKind.FUNCTION, line=index + 1, is_exported=exported)
        for index in range(count)
    )


@pytest.fixture
def sample_repo(repo_builder: RepoBuilder) -> RepoBuilder:
    exports = "\n".join(f"export function f{index}() {{}}" for index in range(12))
    repo_builder.write(
        {
            "src/index.ts": """
                export * from "./a";
                export { b } from "./b";
            """,
            "src/api.ts": exports + "\n",
            "src/main.py": "def main() -> None:\n    pass\n",
            "src/core.py": "import pytest\n\n\ndef test_value() -> None:\n    assert True\n",
            "src/broken.py": "def broken(:\n    return\n",
            "lib/utils.js": "module.exports = {};\n",
            "tests/test_api.py": "def test_api() -> None:\n    pass\n",
            "examples/demo.go": "package main\n\nfunc main() {}\n",
        }
    )
    return repo_builder


def test_heuristic_ranking_is_sorted_and_clamped(sample_repo: RepoBuilder) -> None:
    ranked = rank_files_by_heuristics(sample_repo.path())

    importances = [entry.importance for entry in ranked]
    assert importances == sorted(importances, reverse=True)
    assert all(0.0 <= value <= 1.0 for value in importances)
    by_path = _by_path(ranked)
    assert by_path["src/main.py"].importance == pytest.approx(0.9)
    assert by_path["src/main.py"].role is FileRole.ENTRY
    assert by_path["tests/test_api.py"].role is FileRole.TEST
    assert by_path["examples/demo.go"].importance == pytest.approx(0.45)


def test_reexport_shim_is_pinned_low(sample_repo: RepoBuilder) -> None:
    heuristic = _by_path(rank_files_by_heuristics(sample_repo.path()))["src/index.ts"]
    boosted = _by_path(FileRanker().rank(sample_repo.path()))["src/index.ts"]

    assert heuristic.importance <= 0.05
    assert heuristic.reason == SHIM_REASON
    assert boosted.importance <= 0.05
    assert boosted.reason is not None and boosted.reason.startswith(SHIM_REASON)


def test_exports_boost_importance(sample_repo: RepoBuilder) -> None:
    ranked = FileRanker().rank(sample_repo.path())
    entry = _by_path(ranked)["src/api.ts"]

    assert entry.importance >= 0.7 + 0.1
    assert entry.export_count == 12
    assert entry.function_count == 12
    assert entry.reason is not None and "12 exports" in entry.reason
    assert [e.importance for e in ranked] == sorted((e.importance for e in ranked), reverse=True)


def test_test_code_outside_test_paths_is_noted(sample_repo: RepoBuilder) -> None:
    entry = _by_path(FileRanker().rank(sample_repo.path()))["src/core.py"]

    assert entry.has_tests is True
    assert entry.reason is not None and "contains tests" in entry.reason


def test_unparseable_file_keeps_heuristic_score(sample_repo: RepoBuilder) -> None:
    entry = _by_path(FileRanker().rank(sample_repo.path()))["src/broken.py"]

    assert entry.importance == pytest.approx(0.7)
    assert entry.export_count is None
    assert entry.reason is None


def test_rank_options_limit_and_exclude(sample_repo: RepoBuilder) -> None:
    ranked = FileRanker().rank(
        sample_repo.path(), RankOptions(exclude_patterns=["examples/", "tests/"])
    )
    paths = {entry.path for entry in ranked}

    assert "examples/demo.go" not in paths
    assert "tests/test_api.py" not in paths
    assert len(rank_files_by_heuristics(sample_repo.path(), RankOptions(max_files=3))) == 3


def test_missing_repository_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        FileRanker().rank(tmp_path / "missing")


def test_apply_ast_boost_thresholds() -> None:
    entries = [
        RankedFile(path="a.ts", importance=0.55, role=FileRole.CORE),
        RankedFile(path="b.ts", importance=0.55, role=FileRole.CORE),
        RankedFile(path="c.ts", importance=0.95, role=FileRole.CORE),
        RankedFile(path="d.ts", importance=0.6, role=FileRole.CORE),
    ]
    parsed = {
        "a.ts": ParsedFile(path="a.ts", language="typescript", functions=_functions(3)),
        "b.ts": ParsedFile(path="b.ts", language="typescript", functions=_functions(16, exported=False)),
        "c.ts": ParsedFile(path="c.ts", language="typescript", functions=_functions(20)),
    }

    boosted = _by_path(apply_ast_boost(entries, parsed))

    assert boosted["a.ts"].importance == pytest.approx(0.6)
    assert boosted["a.ts"].reason == "3 exports"
    assert boosted["b.ts"].importance == pytest.approx(0.65)
    assert boosted["b.ts"].reason == "16 functions"
    assert boosted["c.ts"].importance == 1.0
    assert boosted["d.ts"].importance == pytest.approx(0.6)
    assert boosted["d.ts"].export_count is None


def test_apply_ast_boost_keeps_ties_stable() -> None:
    entries = [
        RankedFile(path="first.ts", importance=0.5, role=FileRole.CORE),
        RankedFile(path="second.ts", importance=0.5, role=FileRole.CORE),
    ]

    assert [entry.path for entry in apply_ast_boost(entries, {})] == ["first.ts", "second.ts"]


def test_rank_files_with_ast_uses_supplied_parse_data(sample_repo: RepoBuilder) -> None:
    parsed = {
        "lib/utils.js": ParsedFile(path="lib/utils.js", language="javascript", functions=_functions(7)),
    }

    entry = _by_path(rank_files_with_ast(sample_repo.path(), parsed))["lib/utils.js"]

    assert entry.importance == pytest.approx(0.5 + 0.10 + 0.05)
    assert entry.reason == "7 exports, 7 functions"


def test_import_graph_scores_normalise_inbound_edges() -> None:
    graph = build_dependency_graph(
        {
            "src/index.ts": ["./core"],
            "src/other.ts": ["./core"],
            "src/core.ts": [],
            "tests/core.test.ts": ["../src/core", "./helpers"],
            "tests/helpers.ts": [],
        }
    )

    scores = import_graph_scores(graph)

    assert scores["src/core.ts"] == pytest.approx(0.75)
    assert scores["src/index.ts"] == pytest.approx(0.2)
    assert scores["src/other.ts"] == pytest.approx(0.05)
    assert scores["tests/core.test.ts"] == 0.0
    assert scores["tests/helpers.ts"] == pytest.approx(0.07)


def test_import_graph_scores_without_edges_use_role_bonus_only() -> None:
    graph = build_dependency_graph({"src/main.py": [], "src/model.py": []})

    assert import_graph_scores(graph) == {"src/main.py": 0.2, "src/model.py": 0.05}


@pytest.fixture
def linked_repo(repo_builder: RepoBuilder) -> RepoBuilder:
    repo_builder.write(
        {
            "src/index.ts": "import { a } from './a';\nimport { b } from './b';\n",
            "src/a.ts": "import { shared } from './shared';\nexport const a = shared;\n",
            "src/b.ts": "import { shared } from './shared.js';\nexport const b = shared;\n",
            "src/shared.ts": "export const shared = 1;\n",
            "app/db.py": "engine = None\n",
            "app/models.py": "from .db import engine\n",
            "app/broken.py": "from .db import engine\n\ndef broken(:\n    return\n",
        }
    )
    return repo_builder


def test_rank_by_imports_orders_by_in_degree(linked_repo: RepoBuilder) -> None:
    ranked = rank_files_by_imports(linked_repo.path())

    # Ties keep discovery order, so app/ precedes src/.
    assert [entry.path for entry in ranked] == [
        "app/db.py",
        "src/shared.ts",
        "src/a.ts",
        "src/b.ts",
        "src/index.ts",
        "app/broken.py",
        "app/models.py",
    ]
    shared = ranked[1]
    assert shared.importance == pytest.approx(0.75)
    assert _by_path(ranked)["src/a.ts"].importance == pytest.approx(0.4)
    assert shared.role is FileRole.CORE
    assert shared.reason == "imported by 2 files"
    assert shared.imports is None
    assert _by_path(ranked)["src/a.ts"].reason == "imported by 1 file"
    assert _by_path(ranked)["src/index.ts"].imports == ["./a", "./b"]


def test_rank_by_imports_reads_imports_of_unparseable_files(linked_repo: RepoBuilder) -> None:
    ranked = _by_path(FileRanker().rank_by_imports(linked_repo.path()))

    assert ranked["app/broken.py"].imports == [".db"]
    assert ranked["app/db.py"].reason == "imported by 2 files"


def test_rank_by_imports_respects_options(linked_repo: RepoBuilder) -> None:
    ranked = rank_files_by_imports(linked_repo.path(), RankOptions(exclude_patterns=["app/"]))

    assert {entry.path for entry in ranked} == {
        "src/index.ts",
        "src/a.ts",
        "src/b.ts",
        "src/shared.ts",
    }
