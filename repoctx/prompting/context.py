"""Token-budgeted context assembly and prompt rendering."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Sequence

from jinja2 import Environment, FileSystemLoader

from ..analyzers.utils import read_text_file
from ..logging import get_logger
from ..models import ContextFile, GatheredContext, RankedFile
from .constants import (
    CHARS_PER_TOKEN,
    FILE_TREE_HEADER,
    FILE_TREE_TOKEN_BUDGET,
    MAX_CONTEXT_TOKENS,
    MAX_FILE_CONTENT_CHARS,
    MAX_FILE_SIZE,
    PACKAGE_CONFIG_CANDIDATES,
    PACKAGE_TOKEN_BUDGET,
    README_CANDIDATES,
    README_TOKEN_BUDGET,
    TOP_FILES_COUNT,
    TRUNCATION_MARKER,
)

_LOGGER = get_logger("context")


@dataclass
class ContextOptions:
    """Budgets for one context bundle, in tokens unless noted otherwise."""

    max_tokens: int = MAX_CONTEXT_TOKENS
    readme_tokens: int = README_TOKEN_BUDGET
    package_tokens: int = PACKAGE_TOKEN_BUDGET
    tree_tokens: int = FILE_TREE_TOKEN_BUDGET
    max_top_files: int = TOP_FILES_COUNT
    max_file_content_chars: int = MAX_FILE_CONTENT_CHARS
    max_file_size: int = MAX_FILE_SIZE


def estimate_tokens(text: str) -> int:
    """Approximate token count at four characters per token, rounded up."""
    return -(-len(text) // CHARS_PER_TOKEN)


def truncate_to_chars(text: str, max_chars: int) -> str:
    """Cut ``text`` so the result, marker included, fits in ``max_chars``."""
    if len(text) <= max_chars:
        return text
    keep = max_chars - len(TRUNCATION_MARKER)
    if keep <= 0:
        return text[: max(max_chars, 0)]
    return text[:keep] + TRUNCATION_MARKER


def truncate_to_tokens(text: str, max_tokens: int) -> str:
    return truncate_to_chars(text, max_tokens * CHARS_PER_TOKEN)


def _read_first(root: Path, candidates: Sequence[str], max_tokens: int) -> Optional[str]:
    for name in candidates:
        path = root / name
        if not path.is_file():
            continue
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            _LOGGER.debug("Unable to read %s: %s", path, exc)
            continue
        return truncate_to_tokens(text, max_tokens)
    return None


def find_readme(root: Path, max_tokens: int = README_TOKEN_BUDGET) -> Optional[str]:
    """Return the first README found at the repository root, truncated."""
    return _read_first(root, README_CANDIDATES, max_tokens)


def find_package_config(root: Path, max_tokens: int = PACKAGE_TOKEN_BUDGET) -> Optional[str]:
    """Return the first package manifest found at the repository root, truncated."""
    return _read_first(root, PACKAGE_CONFIG_CANDIDATES, max_tokens)


def build_file_tree(files: Sequence[RankedFile], max_tokens: int = FILE_TREE_TOKEN_BUDGET) -> str:
    """Summarise ``files`` grouped by directory with role and importance."""
    grouped: Dict[str, List[RankedFile]] = {}
    for ranked in files:
        parent = PurePosixPath(ranked.path).parent.as_posix()
        grouped.setdefault(parent, []).append(ranked)

    lines = [FILE_TREE_HEADER, ""]
    for directory in sorted(grouped):
        lines.append(f"{directory}/")
        for ranked in grouped[directory]:
            name = PurePosixPath(ranked.path).name
            lines.append(f"  {name} ({ranked.role.value}, {ranked.importance * 100:.0f}%)")
    return truncate_to_tokens("\n".join(lines), max_tokens)


def read_file_content(path: Path, max_chars: int, max_size: int = MAX_FILE_SIZE) -> Optional[str]:
    """Read a ranked file for inclusion, or None when it should be left out."""
    content = read_text_file(path, max_size)
    if content is None:
        return None
    return truncate_to_chars(content, max_chars)


class ContextAssembler:
    """Packs README, manifest, file tree and top files into a token budget."""

    def __init__(self, options: ContextOptions | None = None) -> None:
        self.options = options or ContextOptions()

    def assemble(
        self,
        repo_path: str | Path,
        ranked_files: Sequence[RankedFile],
        options: ContextOptions | None = None,
    ) -> GatheredContext:
        opts = options or self.options
        root = Path(repo_path)
        remaining = opts.max_tokens

        readme = find_readme(root, max(min(opts.readme_tokens, remaining), 0))
        remaining -= estimate_tokens(readme or "")
        package_config = find_package_config(root, max(min(opts.package_tokens, remaining), 0))
        remaining -= estimate_tokens(package_config or "")

        top_ranked = list(ranked_files[: max(opts.max_top_files, 0)])
        file_tree = build_file_tree(top_ranked, max(min(opts.tree_tokens, remaining), 0))
        remaining -= estimate_tokens(file_tree)

        top_files: List[ContextFile] = []
        if top_ranked and remaining > 0:
            share = remaining // len(top_ranked)
            chars_per_file = min(opts.max_file_content_chars, share * CHARS_PER_TOKEN)
            for ranked in top_ranked:
                allowed = min(chars_per_file, remaining * CHARS_PER_TOKEN)
                if allowed <= len(TRUNCATION_MARKER):
                    break
                content = read_file_content(root / ranked.path, allowed, opts.max_file_size)
                if content is None:
                    continue
                remaining -= estimate_tokens(content)
                top_files.append(
                    ContextFile(
                        path=ranked.path,
                        importance=ranked.importance,
                        role=ranked.role,
                        content=content,
                    )
                )

        estimated = estimate_tokens(readme or "") + estimate_tokens(package_config or "")
        estimated += estimate_tokens(file_tree)
        estimated += sum(estimate_tokens(item.content) for item in top_files)
        _LOGGER.debug(
            "Assembled context for %s: %d files, ~%d tokens", root.name, len(top_files), estimated
        )
        return GatheredContext(
            repo_path=str(root),
            repo_name=root.name,
            readme=readme,
            package_config=package_config,
            file_tree=file_tree,
            top_files=top_files,
            estimated_tokens=estimated,
        )


def fence_language(path: str) -> str:
    """Code fence tag for ``path``: its extension, or ``text`` without one."""
    suffix = PurePosixPath(path).suffix
    return suffix[1:] if suffix else "text"


class ContextRenderer:
    """Renders a GatheredContext into a prompt with a jinja2 template."""

    TEMPLATE_NAME = "context.md.j2"

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir
        self._env = self._create_env(templates_dir)

    def render(self, context: GatheredContext) -> str:
        template = self._env.get_template(self.TEMPLATE_NAME)
        return template.render(context=context).rstrip("\n") + "\n"

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        default_dir = Path(__file__).with_name("templates")
        directories = [str(default_dir)]
        if templates_dir is not None and templates_dir != default_dir:
            directories.insert(0, str(templates_dir))
        env = Environment(
            loader=FileSystemLoader(directories),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        env.filters["fence_language"] = fence_language
        return env


def format_context_for_prompt(context: GatheredContext, templates_dir: Path | None = None) -> str:
    """Render ``context`` as the plain-text prompt handed to a generator."""
    return ContextRenderer(templates_dir).render(context)


__all__ = [
    "ContextAssembler",
    "ContextOptions",
    "ContextRenderer",
    "build_file_tree",
    "estimate_tokens",
    "fence_language",
    "find_package_config",
    "find_readme",
    "format_context_for_prompt",
    "read_file_content",
    "truncate_to_chars",
    "truncate_to_tokens",
]
