"""Bounded repository traversal producing candidate source files."""

from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import Iterator, List, Tuple

from .analyzers.language import SUPPORTED_EXTENSIONS
from .ignore import IgnoreRules, build_ignore_rules
from .logging import get_logger
from .models import FileCandidate

DEFAULT_MAX_FILES = 10_000
DEFAULT_MAX_FILE_SIZE = 1024 * 1024

_LOGGER = get_logger("scanner")


def resolve_repo_path(root: str | Path) -> Path:
    """Return the absolute repository path, failing loudly when it is unusable."""
    root_path = Path(root).expanduser().resolve()
    if not root_path.exists():
        raise FileNotFoundError(f"Repository path not found: {root}")
    if not root_path.is_dir():
        raise NotADirectoryError(f"Repository path is not a directory: {root}")
    return root_path


def _is_supported(name: str) -> bool:
    suffix = os.path.splitext(name)[1].lower()
    return suffix in SUPPORTED_EXTENSIONS


def discover_candidates(
    root: Path,
    rules: IgnoreRules,
    max_files: int = DEFAULT_MAX_FILES,
    max_file_size: int = DEFAULT_MAX_FILE_SIZE,
) -> List[FileCandidate]:
    """Depth-first walk collecting at most ``max_files`` eligible files.

    Entries are visited in sorted name order, so for large repositories the
    result is a deterministic prefix of the tree rather than a best subset.
    """
    found: List[FileCandidate] = []
    if max_files <= 0:
        return found
    _walk(root, rules, max_files, max_file_size, found)
    return found


def discover(
    root: Path,
    rules: IgnoreRules,
    max_files: int = DEFAULT_MAX_FILES,
    max_file_size: int = DEFAULT_MAX_FILE_SIZE,
) -> List[str]:
    """Return relative POSIX paths of discovered files."""
    return [
        candidate.relative_path
        for candidate in discover_candidates(root, rules, max_files, max_file_size)
    ]


def _list_directory(directory: Path) -> Iterator[os.DirEntry[str]]:
    try:
        with os.scandir(directory) as iterator:
            entries = sorted(iterator, key=lambda entry: entry.name)
    except OSError as exc:
        _LOGGER.debug("Skipping unreadable directory %s: %s", directory, exc)
        return iter(())
    return iter(entries)


def _walk(
    root: Path,
    rules: IgnoreRules,
    max_files: int,
    max_file_size: int,
    found: List[FileCandidate],
) -> None:
    """Sorted depth-first walk driven by an explicit stack of directory cursors."""
    stack: List[Tuple[str, Iterator[os.DirEntry[str]]]] = [("", _list_directory(root))]
    while stack:
        rel_dir, entries = stack[-1]
        entry = next(entries, None)
        if entry is None:
            stack.pop()
            continue
        if len(found) >= max_files:
            return

        rel_path = f"{rel_dir}/{entry.name}" if rel_dir else entry.name
        if rules.is_ignored(rel_path):
            continue

        try:
            if entry.is_symlink() and entry.is_dir():
                continue
            info = entry.stat()
        except OSError as exc:
            _LOGGER.debug("Skipping %s: %s", rel_path, exc)
            continue

        if stat.S_ISDIR(info.st_mode):
            stack.append((rel_path, _list_directory(Path(entry.path))))
        elif stat.S_ISREG(info.st_mode):
            if info.st_size > max_file_size:
                continue
            if not _is_supported(entry.name):
                continue
            found.append(FileCandidate(relative_path=rel_path, size_bytes=info.st_size))


class RepoScanner:
    """Walks a repository under its ignore rules to produce candidate files."""

    def __init__(
        self,
        *,
        max_files: int = DEFAULT_MAX_FILES,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    ) -> None:
        self.max_files = max_files
        self.max_file_size = max_file_size

    def scan(
        self, root: str | Path, extra_patterns: List[str] | None = None
    ) -> List[FileCandidate]:
        """Return candidate files for the repository at ``root``."""
        root_path = resolve_repo_path(root)
        rules = build_ignore_rules(root_path, extra_patterns)
        candidates = discover_candidates(root_path, rules, self.max_files, self.max_file_size)
        _LOGGER.debug("Discovered %d files under %s", len(candidates), root_path)
        return candidates


__all__ = [
    "DEFAULT_MAX_FILES",
    "DEFAULT_MAX_FILE_SIZE",
    "RepoScanner",
    "discover",
    "discover_candidates",
    "resolve_repo_path",
]
