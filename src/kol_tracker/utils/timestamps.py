"""Timestamp unit reconciliation shared by the normalizer and the ledger."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Optional

from .constants import MILLISECOND_THRESHOLD


def _from_number(value: float) -> Optional[int]:
    if math.isnan(value) or math.isinf(value) or value <= 0:
        return None
    if value < MILLISECOND_THRESHOLD:
        return int(round(value * 1000))
    return int(round(value))


def _from_datetime(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(round(value.timestamp() * 1000))


def _parse_iso(text: str) -> Optional[datetime]:
    candidate = text.strip()
    if candidate.endswith(("Z", "z")):
        candidate = f"{candidate[:-1]}+00:00"
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        return None


def normalize_timestamp(value: Any) -> Optional[int]:
    """Return ``value`` as integer epoch milliseconds, or ``None`` if unknown.

    Numbers (and numeric strings) below ``MILLISECOND_THRESHOLD`` are read as
    epoch seconds, everything at or above it as epoch milliseconds. ISO-8601
    strings and ``datetime`` objects are converted directly; naive values are
    taken to be UTC. Zero, negative, boolean and unparsable values are unknown.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        try:
            return _from_datetime(value)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, (int, float)):
        try:
            return _from_number(float(value))
        except OverflowError:
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return _from_number(float(text))
        except ValueError:
            pass
        parsed = _parse_iso(text)
        if parsed is None:
            return None
        try:
            return _from_datetime(parsed)
        except (OverflowError, OSError, ValueError):
            return None
    return None


def timestamp_sort_key(value: Any) -> int:
    """Chronological sort key; unknown timestamps sort first as ``0``."""

    normalized = normalize_timestamp(value)
    return normalized if normalized is not None else 0


__all__ = ["normalize_timestamp", "timestamp_sort_key"]
