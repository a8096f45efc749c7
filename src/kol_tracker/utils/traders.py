"""Trader identity resolution."""

from __future__ import annotations

from typing import Any, Optional

from .constants import ADDRESS_PREFIX_LENGTH, TRADER_LABEL_PREFIX, UNKNOWN_TRADER_LABEL


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def resolve_trader_identity(label: Any, address: Any) -> Optional[str]:
    """Return the trader's label, a short address form, or ``None``."""

    cleaned_label = _clean(label)
    if cleaned_label:
        return cleaned_label
    cleaned_address = _clean(address)
    if cleaned_address:
        return f"{TRADER_LABEL_PREFIX} {cleaned_address[:ADDRESS_PREFIX_LENGTH]}"
    return None


def resolve_trader_label(label: Any, address: Any, fallback: str = UNKNOWN_TRADER_LABEL) -> str:
    """Display label for a trader; never blank."""

    return resolve_trader_identity(label, address) or fallback


__all__ = ["resolve_trader_identity", "resolve_trader_label"]
