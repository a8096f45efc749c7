"""Compact number rendering for the text output."""

from __future__ import annotations

from typing import Optional

UNKNOWN_PLACEHOLDER = "-"


def format_compact(number: Optional[float], decimals: int = 2) -> str:
    """Format ``number`` with a K/M/B suffix; ``None`` renders as a placeholder."""

    if number is None:
        return UNKNOWN_PLACEHOLDER
    magnitude = abs(number)
    if magnitude >= 1_000_000_000:
        return f"{number / 1_000_000_000:.{decimals}f}B"
    if magnitude >= 1_000_000:
        return f"{number / 1_000_000:.{decimals}f}M"
    if magnitude >= 1_000:
        return f"{number / 1_000:.{decimals}f}K"
    return f"{number:.{decimals}f}"


__all__ = ["UNKNOWN_PLACEHOLDER", "format_compact"]
