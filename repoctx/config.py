"""Configuration loading for repoctx (.repoctx.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .prompting.context import ContextOptions
from .ranker import RankOptions

CONFIG_FILENAME = ".repoctx.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class DiscoveryConfig:
    """Traversal caps from the ``discovery`` section."""

    max_files: Optional[int] = None
    max_file_size: Optional[int] = None


@dataclass
class ContextConfig:
    """Token budgets from the ``context`` section."""

    max_tokens: Optional[int] = None
    readme_tokens: Optional[int] = None
    package_tokens: Optional[int] = None
    tree_tokens: Optional[int] = None
    top_files: Optional[int] = None
    max_file_chars: Optional[int] = None


@dataclass
class RepoContextConfig:
    """Represents the settings defined in .repoctx.yml."""

    root: Path
    exclude_paths: List[str] = field(default_factory=list)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    context: ContextConfig = field(default_factory=ContextConfig)

    def rank_options(self, **overrides: Any) -> RankOptions:
        """Build ranking options; non-None keyword overrides win over the file."""
        options = RankOptions(exclude_patterns=list(self.exclude_paths))
        if self.discovery.max_files is not None:
            options.max_files = self.discovery.max_files
        if self.discovery.max_file_size is not None:
            options.max_file_size = self.discovery.max_file_size
        extra = overrides.pop("exclude_patterns", None)
        if extra:
            options.exclude_patterns.extend(extra)
        _apply_overrides(options, overrides)
        return options

    def context_options(self, **overrides: Any) -> ContextOptions:
        """Build context budgets; non-None keyword overrides win over the file."""
        options = ContextOptions()
        section = self.context
        if section.max_tokens is not None:
            options.max_tokens = section.max_tokens
        if section.readme_tokens is not None:
            options.readme_tokens = section.readme_tokens
        if section.package_tokens is not None:
            options.package_tokens = section.package_tokens
        if section.tree_tokens is not None:
            options.tree_tokens = section.tree_tokens
        if section.top_files is not None:
            options.max_top_files = section.top_files
        if section.max_file_chars is not None:
            options.max_file_content_chars = section.max_file_chars
        if self.discovery.max_file_size is not None:
            options.max_file_size = self.discovery.max_file_size
        _apply_overrides(options, overrides)
        return options


def _apply_overrides(options: object, overrides: Dict[str, Any]) -> None:
    for key, value in overrides.items():
        if value is None:
            continue
        if not hasattr(options, key):
            raise TypeError(f"Unknown option: {key}")
        setattr(options, key, value)


def load_config(config_path: Path) -> RepoContextConfig:
    """Load configuration from disk.

    ``config_path`` may be the repository directory or the config file
    itself. A missing file yields the defaults.
    """
    config_file = _resolve_config_path(Path(config_path))
    root = config_file.parent.resolve()

    if not config_file.exists():
        return RepoContextConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    discovery_data = _as_dict(data.get("discovery"))
    discovery = DiscoveryConfig(
        max_files=_as_positive_int(discovery_data.get("max_files"), "discovery.max_files"),
        max_file_size=_as_positive_int(
            discovery_data.get("max_file_size"), "discovery.max_file_size"
        ),
    )

    context_data = _as_dict(data.get("context"))
    context = ContextConfig(
        max_tokens=_as_positive_int(context_data.get("max_tokens"), "context.max_tokens"),
        readme_tokens=_as_positive_int(context_data.get("readme_tokens"), "context.readme_tokens"),
        package_tokens=_as_positive_int(
            context_data.get("package_tokens"), "context.package_tokens"
        ),
        tree_tokens=_as_positive_int(context_data.get("tree_tokens"), "context.tree_tokens"),
        top_files=_as_positive_int(context_data.get("top_files"), "context.top_files"),
        max_file_chars=_as_positive_int(
            context_data.get("max_file_chars"), "context.max_file_chars"
        ),
    )

    return RepoContextConfig(
        root=root,
        exclude_paths=_as_str_list(data.get("exclude_paths")),
        discovery=discovery,
        context=context,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return {} if loaded is None else loaded


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_positive_int(value: Any, key: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be a positive integer")
    if isinstance(value, str):
        try:
            value = int(value)
        except ValueError:
            raise ConfigError(f"{key} must be a positive integer") from None
    if not isinstance(value, int) or value <= 0:
        raise ConfigError(f"{key} must be a positive integer")
    return value


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "ContextConfig",
    "DiscoveryConfig",
    "RepoContextConfig",
    "load_config",
]
