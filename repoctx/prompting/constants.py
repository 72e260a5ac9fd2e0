"""Shared constants for context assembly and prompt rendering."""

from __future__ import annotations

CHARS_PER_TOKEN = 4

MAX_CONTEXT_TOKENS = 4000
README_TOKEN_BUDGET = 500
PACKAGE_TOKEN_BUDGET = 300
FILE_TREE_TOKEN_BUDGET = 400
TOP_FILES_COUNT = 15
MAX_FILE_CONTENT_CHARS = 2000
MAX_FILE_SIZE = 1024 * 1024

TRUNCATION_MARKER = "\n... (truncated)"
FILE_TREE_HEADER = "Repository Structure (top files by importance):"

README_CANDIDATES: tuple[str, ...] = (
    "README.md",
    "readme.md",
    "README.MD",
    "Readme.md",
    "README.rst",
    "README.txt",
    "README",
    "readme",
)

PACKAGE_CONFIG_CANDIDATES: tuple[str, ...] = (
    "package.json",
    "Cargo.toml",
    "go.mod",
    "pyproject.toml",
    "setup.py",
    "requirements.txt",
    "pom.xml",
    "build.gradle",
    "deno.json",
    "bun.toml",
)


__all__ = [
    "CHARS_PER_TOKEN",
    "FILE_TREE_HEADER",
    "FILE_TREE_TOKEN_BUDGET",
    "MAX_CONTEXT_TOKENS",
    "MAX_FILE_CONTENT_CHARS",
    "MAX_FILE_SIZE",
    "PACKAGE_CONFIG_CANDIDATES",
    "PACKAGE_TOKEN_BUDGET",
    "README_CANDIDATES",
    "README_TOKEN_BUDGET",
    "TOP_FILES_COUNT",
    "TRUNCATION_MARKER",
]
