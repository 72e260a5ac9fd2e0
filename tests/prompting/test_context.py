"""Tests for token-budgeted context assembly and rendering."""

from __future__ import annotations

from pathlib import Path

import pytest

from repoctx.models import ContextFile, FileRole, GatheredContext, RankedFile
from repoctx.prompting import context as context_module
from repoctx.prompting.constants import FILE_TREE_HEADER, TRUNCATION_MARKER
from repoctx.prompting.context import (
    ContextAssembler,
    ContextOptions,
    build_file_tree,
    estimate_tokens,
    fence_language,
    find_package_config,
    find_readme,
    format_context_for_prompt,
    truncate_to_chars,
)
from tests._fixtures.repo_builder import RepoBuilder


def _ranked(path: str, importance: float, role: FileRole = FileRole.CORE) -> RankedFile:
    return RankedFile(path=path, importance=importance, role=role)


def test_estimate_tokens_rounds_up() -> None:
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2


def test_truncate_keeps_result_within_limit() -> None:
    text = "x" * 500

    truncated = truncate_to_chars(text, 100)

    assert len(truncated) == 100
    assert truncated.endswith(TRUNCATION_MARKER)
    assert truncate_to_chars("short", 100) == "short"


def test_readme_is_truncated_to_its_budget(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"README.md": "word " * 2000, "src/main.ts": "export const x = 1;\n"})

    context = ContextAssembler().assemble(
        repo_builder.path(), [_ranked("src/main.ts", 0.9, FileRole.ENTRY)]
    )

    assert context.readme is not None
    assert context.readme.endswith(TRUNCATION_MARKER)
    assert len(context.readme) <= 500 * 4
    assert context.repo_name == "repo"


def test_manifest_detection_follows_candidate_order(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"go.mod": "module example.com/app\n", "package.json": '{"name": "app"}\n'})

    assert find_package_config(repo_builder.path()) == '{"name": "app"}\n'


def test_missing_readme_and_manifest_are_none(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"src/lib.rs": "pub fn run() {}\n"})

    context = ContextAssembler().assemble(repo_builder.path(), [_ranked("src/lib.rs", 0.5)])

    assert context.readme is None
    assert context.package_config is None
    assert [item.path for item in context.top_files] == ["src/lib.rs"]


def test_estimated_tokens_never_exceed_budget(repo_builder: RepoBuilder) -> None:
    files = {f"src/module_{index}.ts": "const value = 1;\n" * 400 for index in range(10)}
    files["README.md"] = "intro " * 1000
    files["package.json"] = '{"name": "big"}\n' * 200
    repo_builder.write(files)
    ranked = [_ranked(path, 0.5) for path in sorted(files) if path.startswith("src/")]

    options = ContextOptions(max_tokens=1200)
    context = ContextAssembler().assemble(repo_builder.path(), ranked, options)

    assert context.estimated_tokens <= 1200
    assert context.top_files
    for item in context.top_files:
        assert len(item.content) <= options.max_file_content_chars


def test_binary_and_oversized_files_are_skipped(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"src/ok.py": "print('ok')\n", "src/huge.py": "x = 1\n" * 100})
    repo_builder.write_bytes("src/blob.py", b"\x00\x01\x02binary")
    ranked = [_ranked("src/blob.py", 0.9), _ranked("src/huge.py", 0.8), _ranked("src/ok.py", 0.7)]

    context = ContextAssembler().assemble(
        repo_builder.path(), ranked, ContextOptions(max_file_size=100)
    )

    assert [item.path for item in context.top_files] == ["src/ok.py"]


def test_top_files_respect_count_limit(repo_builder: RepoBuilder) -> None:
    repo_builder.write({f"src/f{index}.js": "module.exports = 1;\n" for index in range(5)})
    ranked = [_ranked(f"src/f{index}.js", 0.5) for index in range(5)]

    context = ContextAssembler().assemble(
        repo_builder.path(), ranked, ContextOptions(max_top_files=2)
    )

    assert [item.path for item in context.top_files] == ["src/f0.js", "src/f1.js"]


def test_file_tree_groups_by_directory() -> None:
    tree = build_file_tree(
        [
            _ranked("src/main.ts", 0.9, FileRole.ENTRY),
            _ranked("setup.py", 0.85, FileRole.CONFIG),
            _ranked("src/util.ts", 0.42, FileRole.UTIL),
        ]
    )

    assert tree.splitlines() == [
        FILE_TREE_HEADER,
        "",
        "./",
        "  setup.py (config, 85%)",
        "src/",
        "  main.ts (entry, 90%)",
        "  util.ts (util, 42%)",
    ]


def test_fence_language_uses_extension() -> None:
    assert fence_language("src/app.ts") == "ts"
    assert fence_language("Makefile") == "text"


def test_render_formats_sections() -> None:
    context = GatheredContext(
        repo_path="/tmp/repo",
        repo_name="repo",
        readme="# Demo",
        package_config='{"name": "demo"}',
        file_tree=FILE_TREE_HEADER,
        top_files=[
            ContextFile(path="src/app.ts", importance=0.9, role=FileRole.ENTRY, content="run();")
        ],
        estimated_tokens=10,
    )

    rendered = format_context_for_prompt(context)

    assert rendered.startswith("# Repository: repo\n")
    assert "## README\n\n# Demo\n" in rendered
    assert '## Package Configuration\n\n```\n{"name": "demo"}\n```' in rendered
    assert f"## {FILE_TREE_HEADER}" in rendered
    assert "### src/app.ts\n\n```ts\nrun();\n```" in rendered
    assert rendered.endswith("```\n")


def test_render_omits_missing_sections() -> None:
    context = GatheredContext(
        repo_path="/tmp/repo",
        repo_name="repo",
        readme=None,
        package_config=None,
        file_tree=FILE_TREE_HEADER,
    )

    rendered = format_context_for_prompt(context)

    assert "## README" not in rendered
    assert "## Package Configuration" not in rendered
    assert "## Key Files Content" in rendered


def test_custom_template_directory_overrides_default(tmp_path: Path) -> None:
    (tmp_path / "context.md.j2").write_text("custom {{ context.repo_name }}\n", encoding="utf-8")
    context = GatheredContext(
        repo_path="/tmp/repo", repo_name="demo", readme=None, package_config=None, file_tree=""
    )

    assert format_context_for_prompt(context, templates_dir=tmp_path) == "custom demo\n"


def test_unreadable_readme_falls_through_to_next_candidate(
    repo_builder: RepoBuilder, monkeypatch: pytest.MonkeyPatch
) -> None:
    repo_builder.write({"README.md": "# Locked\n", "README.rst": "Readable\n"})
    real_read_text = Path.read_text

    def _read_text(self: Path, *args: object, **kwargs: object) -> str:
        if self.name == "README.md":
            raise PermissionError("denied")
        return real_read_text(self, *args, **kwargs)

    monkeypatch.setattr(Path, "read_text", _read_text)

    assert find_readme(repo_builder.path()) == "Readable\n"


def test_public_names_are_defined_here() -> None:
    assert "is_binary" not in context_module.__all__
    for name in context_module.__all__:
        assert getattr(context_module, name).__module__ == context_module.__name__
