"""Pipeline orchestration for the rank and context flows."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

from .analyzers.tree_sitter import GrammarRegistry
from .config import ConfigError, RepoContextConfig, load_config
from .logging import get_logger
from .models import GatheredContext, RankedFile
from .prompting.context import ContextAssembler, ContextRenderer
from .ranker import FileRanker, RankOptions
from .repo_scanner import resolve_repo_path

RANK_STRATEGIES = ("ast", "imports")


class Orchestrator:
    """Coordinates ranking, context assembly and prompt rendering.

    The orchestrator owns one grammar registry, so grammars are loaded at most
    once for every repository it processes.
    """

    def __init__(
        self,
        registry: GrammarRegistry | None = None,
        ranker: FileRanker | None = None,
        assembler: ContextAssembler | None = None,
        renderer: ContextRenderer | None = None,
    ) -> None:
        self.registry = registry or GrammarRegistry()
        self.ranker = ranker or FileRanker(self.registry)
        self.assembler = assembler or ContextAssembler()
        self.renderer = renderer or ContextRenderer()
        self.logger = get_logger("orchestrator")

    def rank(
        self,
        path: str | Path,
        *,
        exclude_patterns: Sequence[str] | None = None,
        max_files: int | None = None,
        max_file_size: int | None = None,
        strategy: str = "ast",
    ) -> List[RankedFile]:
        """Rank the repository at ``path`` by importance.

        ``strategy`` is ``"ast"`` for path heuristics plus syntax boosts, or
        ``"imports"`` for inbound edges in the import graph.
        """
        repo_path = resolve_repo_path(path)
        self.logger.info("Ranking files in %s", repo_path)
        config = self._load_config(repo_path)
        options = config.rank_options(
            exclude_patterns=list(exclude_patterns or []),
            max_files=max_files,
            max_file_size=max_file_size,
        )
        return self._rank_with(strategy, repo_path, options)

    def gather(
        self,
        path: str | Path,
        *,
        ranked_files: Optional[Sequence[RankedFile]] = None,
        max_top_files: int | None = None,
        max_file_content_chars: int | None = None,
        max_tokens: int | None = None,
        strategy: str = "ast",
    ) -> GatheredContext:
        """Assemble the token-budgeted context bundle for ``path``.

        Files are ranked first unless ``ranked_files`` is supplied.
        """
        repo_path = resolve_repo_path(path)
        config = self._load_config(repo_path)
        if ranked_files is None:
            ranked_files = self._rank_with(strategy, repo_path, config.rank_options())
        options = config.context_options(
            max_top_files=max_top_files,
            max_file_content_chars=max_file_content_chars,
            max_tokens=max_tokens,
        )
        context = self.assembler.assemble(repo_path, ranked_files, options)
        self.logger.info(
            "Gathered context for %s: %d files, ~%d tokens",
            context.repo_name,
            len(context.top_files),
            context.estimated_tokens,
        )
        return context

    def render(self, context: GatheredContext) -> str:
        """Format a gathered context as a plain-text prompt."""
        return self.renderer.render(context)

    def _rank_with(
        self, strategy: str, repo_path: Path, options: RankOptions
    ) -> List[RankedFile]:
        if strategy == "ast":
            return self.ranker.rank(repo_path, options)
        if strategy == "imports":
            return self.ranker.rank_by_imports(repo_path, options)
        raise ValueError(f"Unknown ranking strategy: {strategy}")

    def _load_config(self, repo_path: Path) -> RepoContextConfig:
        try:
            return load_config(repo_path)
        except ConfigError as exc:
            self.logger.warning("Ignoring invalid configuration: %s", exc)
            return RepoContextConfig(root=repo_path)


__all__ = ["Orchestrator", "RANK_STRATEGIES"]
