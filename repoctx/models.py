"""Core data models shared across repoctx components."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class FileRole(str, Enum):
    """Coarse purpose of a file, derived from its path alone."""

    ENTRY = "entry"
    CONFIG = "config"
    TYPES = "types"
    TEST = "test"
    UTIL = "util"
    DOC = "doc"
    CORE = "core"


class SymbolKind(str, Enum):
    FUNCTION = "function"
    CLASS = "class"
    METHOD = "method"
    STRUCT = "struct"
    ENUM = "enum"
    TRAIT = "trait"
    INTERFACE = "interface"


@dataclass(frozen=True)
class IgnoreRule:
    """A single glob pattern from the defaults, .gitignore or caller extras."""

    pattern: str
    is_negation: bool = False


@dataclass
class FileCandidate:
    """A discovered file that passed ignore, extension and size checks."""

    relative_path: str
    size_bytes: int


@dataclass
class RankedFile:
    """A file with its importance score and the signals behind it."""

    path: str
    importance: float
    role: FileRole
    export_count: Optional[int] = None
    function_count: Optional[int] = None
    has_tests: Optional[bool] = None
    reason: Optional[str] = None
    imports: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "path": self.path,
            "importance": self.importance,
            "role": self.role.value,
        }
        for key in ("export_count", "function_count", "has_tests", "reason", "imports"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass(frozen=True)
class ExtractedSymbol:
    """A function, method or type declaration found in a source file."""

    name: str
    kind: SymbolKind
    line: int
    signature: Optional[str] = None
    is_async: bool = False
    is_exported: bool = False


@dataclass(frozen=True)
class ParsedFile:
    """Symbols, imports and exports extracted from one source file."""

    path: str
    language: str
    functions: Tuple[ExtractedSymbol, ...] = ()
    classes: Tuple[ExtractedSymbol, ...] = ()
    imports: Tuple[str, ...] = ()
    exports: Tuple[str, ...] = ()
    has_tests: bool = False

    @property
    def export_count(self) -> int:
        """Distinct exported names across symbols and explicit exports."""
        names = {symbol.name for symbol in self.functions if symbol.is_exported}
        names.update(symbol.name for symbol in self.classes if symbol.is_exported)
        names.update(self.exports)
        return len(names)


@dataclass(frozen=True)
class ImportEdge:
    """``source`` imports ``target``; both are repository-relative paths."""

    source: str
    target: str


@dataclass
class GraphNode:
    path: str
    in_degree: int = 0
    out_degree: int = 0


@dataclass
class DependencyGraph:
    """File-level import graph over the discovered files.

    ``hubs`` are nodes with inbound edges, most imported first. ``leaves`` are
    nodes with outbound edges, most dependencies first.
    """

    nodes: Dict[str, GraphNode] = field(default_factory=dict)
    edges: List[ImportEdge] = field(default_factory=list)
    hubs: List[GraphNode] = field(default_factory=list)
    leaves: List[GraphNode] = field(default_factory=list)


@dataclass
class ContextFile:
    """Content of a top-ranked file included in the gathered context."""

    path: str
    importance: float
    role: FileRole
    content: str


@dataclass
class GatheredContext:
    """Token-bounded bundle handed to the downstream generation step."""

    repo_path: str
    repo_name: str
    readme: Optional[str]
    package_config: Optional[str]
    file_tree: str
    top_files: List[ContextFile] = field(default_factory=list)
    estimated_tokens: int = 0
