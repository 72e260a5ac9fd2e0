"""Glob-style ignore rules merged from defaults, .gitignore and caller extras."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Iterable, List, Pattern, Sequence

from .logging import get_logger
from .models import IgnoreRule

_LOGGER = get_logger("ignore")

DEFAULT_IGNORE_PATTERNS: tuple[str, ...] = (
    # Version control
    ".git",
    ".svn",
    ".hg",
    # Dependencies
    "node_modules",
    "vendor",
    ".pnpm",
    ".yarn",
    ".venv",
    "venv",
    # Build outputs
    "dist",
    "build",
    "out",
    ".next",
    ".nuxt",
    ".output",
    "target",
    "__pycache__",
    "*.pyc",
    ".pytest_cache",
    ".mypy_cache",
    # Editors
    ".vscode",
    ".idea",
    "*.swp",
    "*.swo",
    ".DS_Store",
    # Binary and media
    "*.jpg",
    "*.jpeg",
    "*.png",
    "*.gif",
    "*.ico",
    "*.webp",
    "*.svg",
    "*.bmp",
    "*.tiff",
    "*.mp4",
    "*.webm",
    "*.mov",
    "*.avi",
    "*.mkv",
    "*.mp3",
    "*.wav",
    "*.flac",
    "*.ogg",
    "*.pdf",
    "*.zip",
    "*.tar",
    "*.gz",
    "*.rar",
    "*.7z",
    "*.exe",
    "*.dll",
    "*.so",
    "*.dylib",
    "*.bin",
    "*.wasm",
    "*.woff",
    "*.woff2",
    "*.ttf",
    "*.eot",
    "*.otf",
    # Lockfiles
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "bun.lockb",
    "Cargo.lock",
    "Gemfile.lock",
    "poetry.lock",
    "composer.lock",
    "go.sum",
    # Coverage
    "coverage",
    ".nyc_output",
    ".coverage",
    "htmlcov",
    # Logs and temp
    "*.log",
    "logs",
    "tmp",
    "temp",
    ".tmp",
    ".temp",
    ".cache",
    # Secrets
    ".env",
    ".env.*",
    "*.pem",
    "*.key",
)

_GLOBSTAR = "**"


def _normalise(value: str) -> str:
    return value.replace("\\", "/")


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> Pattern[str]:
    """Translate a glob pattern into a compiled regular expression.

    ``**`` matches across directory boundaries, ``*`` stays inside one path
    segment and ``?`` matches a single non-separator character. A leading
    ``/`` anchors the pattern at the repository root; otherwise it may match
    at any depth, bounded by directory separators on both sides.
    """
    normalised = _normalise(pattern)
    anchored = normalised.startswith("/")
    body = normalised[1:] if anchored else normalised

    parts: List[str] = []
    index = 0
    while index < len(body):
        if body.startswith(_GLOBSTAR, index):
            parts.append(".*")
            index += len(_GLOBSTAR)
            continue
        char = body[index]
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
        index += 1

    prefix = "^" if anchored else "(?:^|/)"
    return re.compile(f"{prefix}{''.join(parts)}(?=/|$)")


def matches(relative_path: str, pattern: str) -> bool:
    """Return True when ``relative_path`` matches the glob ``pattern``."""
    if not pattern:
        return False
    return compile_pattern(pattern).search(_normalise(relative_path)) is not None


@dataclass
class IgnoreRules:
    """Ordered ignore rules with a blanket negation override pass.

    A path is ignored when any default or positive rule matches it. Negation
    rules then un-ignore paths matched only by repository or caller rules;
    the built-in defaults cannot be negated.
    """

    defaults: Sequence[IgnoreRule] = field(default_factory=tuple)
    rules: Sequence[IgnoreRule] = field(default_factory=tuple)

    def is_ignored(self, relative_path: str) -> bool:
        if any(matches(relative_path, rule.pattern) for rule in self.defaults):
            return True
        positive = any(
            matches(relative_path, rule.pattern) for rule in self.rules if not rule.is_negation
        )
        if not positive:
            return False
        negated = any(
            matches(relative_path, rule.pattern) for rule in self.rules if rule.is_negation
        )
        return not negated


def default_rules() -> List[IgnoreRule]:
    return [IgnoreRule(pattern) for pattern in DEFAULT_IGNORE_PATTERNS]


def parse_gitignore(text: str) -> List[IgnoreRule]:
    """Parse .gitignore content into ordered rules."""
    rules: List[IgnoreRule] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negation = line.startswith("!")
        if negation:
            line = line[1:]
        if not line or line == "/":
            continue

        if line.endswith("/"):
            directory = line.rstrip("/")
            # "dir/" covers the directory entry itself and everything beneath it.
            rules.append(IgnoreRule(directory, is_negation=negation))
            rules.append(IgnoreRule(f"{directory}/**", is_negation=negation))
            continue

        rules.append(IgnoreRule(line, is_negation=negation))
    return rules


def load_gitignore_rules(root: Path) -> List[IgnoreRule]:
    path = root / ".gitignore"
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except (OSError, UnicodeDecodeError) as exc:
        _LOGGER.debug("Skipping unreadable %s: %s", path, exc)
        return []
    return parse_gitignore(text)


def build_ignore_rules(root: Path, extra_patterns: Iterable[str] | None = None) -> IgnoreRules:
    """Merge the default set, the repository .gitignore and caller-supplied globs."""
    rules = load_gitignore_rules(root)
    for pattern in extra_patterns or ():
        pattern = pattern.strip()
        if not pattern:
            continue
        if pattern.startswith("!"):
            rules.append(IgnoreRule(pattern[1:], is_negation=True))
        elif pattern.endswith("/"):
            rules.extend(parse_gitignore(pattern))
        else:
            rules.append(IgnoreRule(pattern))
    return IgnoreRules(defaults=tuple(default_rules()), rules=tuple(rules))


__all__ = [
    "DEFAULT_IGNORE_PATTERNS",
    "IgnoreRules",
    "build_ignore_rules",
    "compile_pattern",
    "default_rules",
    "load_gitignore_rules",
    "matches",
    "parse_gitignore",
]
