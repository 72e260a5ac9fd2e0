"""Repository file ranking and token-budgeted context assembly."""

from __future__ import annotations

from .analyzers.tree_sitter import (
    GrammarError,
    GrammarRegistry,
    LanguageLoadError,
    NotInitializedError,
)
from .config import ConfigError, load_config
from .models import (
    ContextFile,
    DependencyGraph,
    ExtractedSymbol,
    FileRole,
    GatheredContext,
    ParsedFile,
    RankedFile,
    SymbolKind,
)
from .orchestrator import Orchestrator
from .prompting.context import ContextAssembler, ContextOptions, format_context_for_prompt
from .ranker import (
    FileRanker,
    RankOptions,
    rank_files_by_heuristics,
    rank_files_by_imports,
    rank_files_with_ast,
)

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "ContextAssembler",
    "ContextFile",
    "ContextOptions",
    "DependencyGraph",
    "ExtractedSymbol",
    "FileRanker",
    "FileRole",
    "GatheredContext",
    "GrammarError",
    "GrammarRegistry",
    "LanguageLoadError",
    "NotInitializedError",
    "Orchestrator",
    "ParsedFile",
    "RankOptions",
    "RankedFile",
    "SymbolKind",
    "format_context_for_prompt",
    "load_config",
    "rank_files_by_heuristics",
    "rank_files_by_imports",
    "rank_files_with_ast",
]
