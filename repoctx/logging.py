"""Logging utilities for repoctx."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping

_LOGGER_NAME = "repoctx"

# Components whose level was overridden by the last configure_logging call.
_overridden: List[str] = []


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the repoctx hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def parse_level(value: str | int) -> int:
    """Return the numeric level for ``value`` (``"debug"``, ``"WARNING"``, ``10``)."""
    if isinstance(value, int):
        return value
    level = logging.getLevelName(value.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {value}")
    return level


def parse_level_overrides(values: Iterable[str]) -> Dict[str, int]:
    """Parse ``component=LEVEL`` strings, e.g. ``grammars=warning``."""
    overrides: Dict[str, int] = {}
    for item in values:
        component, sep, level = item.partition("=")
        if not sep or not component.strip():
            raise ValueError(f"Expected COMPONENT=LEVEL, got {item!r}")
        overrides[component.strip()] = parse_level(level)
    return overrides


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    levels: Mapping[str, str | int] | None = None,
) -> logging.Logger:
    """Configure the repoctx logger with console output and optional file sink.

    ``levels`` maps component names (``ranker``, ``grammars``, ``scanner``...)
    to levels that replace the global one for that component only.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers so repeated CLI invocations in one process do not duplicate output.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    while _overridden:
        get_logger(_overridden.pop()).setLevel(logging.NOTSET)

    # Handlers pass everything; logger levels decide what is emitted.
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter("[repoctx] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    for component, component_level in (levels or {}).items():
        get_logger(component).setLevel(parse_level(component_level))
        _overridden.append(component)

    return logger


__all__ = ["configure_logging", "get_logger", "parse_level", "parse_level_overrides"]
