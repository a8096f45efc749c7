"""Safe nested field access and value coercion for untyped payloads."""

from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, TypeVar

T = TypeVar("T")

Accessor = Callable[[Any], Optional[T]]

# Bracket-only split keeps dotted keys such as "stats.24h" intact; the second
# pass also splits on dots.
_BRACKET_SPLIT = re.compile(r"[\[\]'\"]+")
_DOTTED_SPLIT = re.compile(r"[\[\]'\".]+")


def _walk(obj: Any, keys: Iterable[str]) -> Any:
    current = obj
    for key in keys:
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(key)
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            if not key.isdigit():
                return None
            index = int(key)
            current = current[index] if index < len(current) else None
        else:
            return None
    return current


def resolve_path(obj: Any, path: str) -> Any:
    """Return the value at ``path`` inside ``obj`` or ``None``.

    Supports dotted (``stats.24h.volume``) and bracket (``events[0]``,
    ``stats['1m']``) access. Missing intermediate levels yield ``None``.
    """

    if not path:
        return None
    for pattern in (_BRACKET_SPLIT, _DOTTED_SPLIT):
        keys = [key for key in pattern.split(path) if key]
        if not keys:
            continue
        value = _walk(obj, keys)
        if value is not None:
            return value
    return None


def to_number(value: Any) -> Optional[float]:
    """Coerce ``value`` to a finite float; anything else is unknown."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        try:
            number = float(value)
        except (OverflowError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def to_count(value: Any) -> Optional[int]:
    number = to_number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def to_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        text = value.strip()
        return text or None
    return None


def to_flag(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes"}:
            return True
        if lowered in {"false", "0", "no"}:
            return False
    return None


def path(field_path: str, coerce: Callable[[Any], Optional[T]]) -> Accessor[T]:
    """Build an accessor that resolves ``field_path`` and coerces the result."""

    def accessor(payload: Any) -> Optional[T]:
        return coerce(resolve_path(payload, field_path))

    accessor.__name__ = f"path[{field_path}]"
    return accessor


def first_present(payload: Any, accessors: Sequence[Accessor[T]]) -> Optional[T]:
    """Run ``accessors`` in order and return the first non-``None`` result."""

    for accessor in accessors:
        try:
            value = accessor(payload)
        except (TypeError, ValueError, KeyError, IndexError, AttributeError):
            continue
        if value is not None:
            return value
    return None


__all__ = [
    "Accessor",
    "first_present",
    "path",
    "resolve_path",
    "to_count",
    "to_flag",
    "to_number",
    "to_text",
]
