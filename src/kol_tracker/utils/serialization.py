"""Helpers for turning models into JSON-friendly structures."""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any


def to_serializable(value: Any) -> Any:
    """Recursively convert models, enums and datetimes into plain JSON values."""

    to_payload = getattr(value, "to_payload", None)
    if callable(to_payload):
        return to_serializable(to_payload())
    if is_dataclass(value) and not isinstance(value, type):
        return {item.name: to_serializable(getattr(value, item.name)) for item in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(key): to_serializable(val) for key, val in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_serializable(item) for item in value]
    return value


__all__ = ["to_serializable"]
