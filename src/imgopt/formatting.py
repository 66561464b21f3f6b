"""Human-readable formatting helpers for CLI output."""

from __future__ import annotations

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def format_bytes(count: int) -> str:
    """Return `count` bytes as a short human-readable string (e.g. `1.5 KB`)."""
    value = float(max(count, 0))
    index = 0
    while value >= 1024 and index < len(_SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {_SIZE_UNITS[index]}"


__all__ = ["format_bytes"]
