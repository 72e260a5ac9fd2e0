"""Shared helpers for reading repository files."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..logging import get_logger

_LOGGER = get_logger("files")

_BINARY_SAMPLE_BYTES = 8000
_CONTROL_RATIO_THRESHOLD = 0.3


def is_binary(data: bytes) -> bool:
    """Return True for data containing a null byte or mostly control bytes."""
    if not data:
        return False
    sample = data[:_BINARY_SAMPLE_BYTES]
    if b"\x00" in sample:
        return True
    control = sum(1 for byte in sample if 0x01 <= byte <= 0x08 or 0x0E <= byte <= 0x1F)
    return control / len(sample) > _CONTROL_RATIO_THRESHOLD


def read_text_file(path: Path, max_size: int) -> Optional[str]:
    """Return the decoded text of ``path``, or None when it is oversize, binary or unreadable."""
    try:
        if path.stat().st_size > max_size:
            _LOGGER.debug("Skipping %s: larger than %d bytes", path, max_size)
            return None
        data = path.read_bytes()
    except OSError as exc:
        _LOGGER.debug("Unable to read %s: %s", path, exc)
        return None
    if is_binary(data):
        _LOGGER.debug("Skipping binary file %s", path)
        return None
    return data.decode("utf-8", errors="replace")


__all__ = ["is_binary", "read_text_file"]
