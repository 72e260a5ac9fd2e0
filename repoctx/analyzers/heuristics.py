"""Path-based role classification and base importance scoring."""

from __future__ import annotations

import re
from pathlib import Path, PurePosixPath
from typing import Tuple

from ..models import FileRole
from .language import SUPPORTED_EXTENSIONS

_ENTRY_STEMS = {"index", "main", "cli", "app"}
_ENTRY_FILENAMES = {"__main__.py", "lib.rs", "mod.rs"}
_TYPES_FILENAMES = {"types.ts", "types.tsx"}
_TYPES_DIRS = {"types", "interfaces"}
_TEST_DIRS = {"test", "tests", "__tests__"}
_TEST_MARKERS = (".test.", ".spec.", "_test.")
_UTIL_STEMS = {"util", "utils", "helper", "helpers"}
_DOC_DIRS = {"doc", "docs"}
_SOURCE_ROOTS = {"src", "lib"}

_MONOREPO_SRC = re.compile(r"(?:^|/)packages/[^/]+/src(?:/|$)")
_SHIM_FILENAMES = {"index.ts", "index.tsx", "index.js", "index.mjs"}
_SHIM_LINE = re.compile(r"""^export\s+(?:type\s+)?(?:\*(?:\s+as\s+[\w$]+)?|\{[^}]+\})\s+from\s+['"]""")
_MAX_SHIM_LINES = 5

REEXPORT_SHIM_SCORE = 0.05


def _split(path: str) -> Tuple[str, Tuple[str, ...]]:
    normalised = PurePosixPath(path.replace("\\", "/"))
    directories = tuple(part.lower() for part in normalised.parts[:-1])
    return normalised.name.lower(), directories


def classify(path: str) -> FileRole:
    """Return the role implied by ``path``; the first matching rule wins."""
    filename, directories = _split(path)
    stem = PurePosixPath(filename).stem
    suffix = PurePosixPath(filename).suffix

    if filename in _ENTRY_FILENAMES or (stem in _ENTRY_STEMS and suffix in SUPPORTED_EXTENSIONS):
        return FileRole.ENTRY

    if "config" in filename or any("config" in part for part in directories):
        return FileRole.CONFIG

    if filename.endswith(".d.ts") or filename in _TYPES_FILENAMES:
        return FileRole.TYPES
    if any(part in _TYPES_DIRS for part in directories):
        return FileRole.TYPES

    if any(marker in filename for marker in _TEST_MARKERS) or filename.startswith("test_"):
        return FileRole.TEST
    if any(part in _TEST_DIRS for part in directories):
        return FileRole.TEST

    if stem in _UTIL_STEMS and suffix in SUPPORTED_EXTENSIONS:
        return FileRole.UTIL
    if any(part in _UTIL_STEMS for part in directories):
        return FileRole.UTIL

    if suffix in {".md", ".mdx"} or any(part in _DOC_DIRS for part in directories):
        return FileRole.DOC

    return FileRole.CORE


def _path_score(path: str, directories: Tuple[str, ...]) -> float:
    dir_path = "/".join(directories)
    depth = len(directories) + 1

    if (directories and directories[0] in _SOURCE_ROOTS) or _MONOREPO_SRC.search(dir_path):
        if depth <= 2:
            return 0.7
        if depth <= 4:
            return 0.65
        return 0.6

    if "example" in dir_path or "sample" in dir_path:
        return 0.45

    return 0.55


def score(path: str) -> float:
    """Return the base importance of ``path`` from its role and location."""
    _, directories = _split(path)
    role = classify(path)

    if role is FileRole.ENTRY:
        if not directories or (len(directories) == 1 and directories[0] in _SOURCE_ROOTS):
            return 0.9
        return 0.85
    if role is FileRole.CONFIG:
        return 0.8
    if role is FileRole.TYPES:
        return 0.75
    if role is FileRole.TEST:
        return 0.3
    if role is FileRole.UTIL:
        return 0.5
    return _path_score(path, directories)


def is_reexport_shim(content: str) -> bool:
    """Return True when every meaningful line only forwards exports elsewhere."""
    lines = [
        stripped
        for stripped in (line.strip() for line in content.splitlines())
        if stripped
        and not stripped.startswith("//")
        and not stripped.startswith("/*")
        and not stripped.startswith("*")
    ]
    if not lines or len(lines) > _MAX_SHIM_LINES:
        return False
    return all(_SHIM_LINE.match(line) for line in lines)


def is_shim_filename(filename: str) -> bool:
    """Return True for index files, the only files checked for the barrel pattern."""
    return PurePosixPath(filename.replace("\\", "/")).name.lower() in _SHIM_FILENAMES


def check_reexport_shim(full_path: Path, filename: str | None = None) -> bool:
    """Read ``full_path`` and test it for the barrel pattern."""
    if not is_shim_filename(filename or full_path.name):
        return False
    try:
        content = full_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return False
    return is_reexport_shim(content)


__all__ = [
    "REEXPORT_SHIM_SCORE",
    "check_reexport_shim",
    "classify",
    "is_reexport_shim",
    "is_shim_filename",
    "score",
]
