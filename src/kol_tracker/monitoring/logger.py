"""JSON logging for the tracker, tagged with the token being processed."""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

from ..config.settings import MonitoringConfig, get_app_config

NO_CORRELATION = "-"

# Holds the mint of the token currently being processed on this thread/task.
_CORRELATION_ID: ContextVar[str] = ContextVar("correlation_id", default=NO_CORRELATION)
_RESERVED = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"correlation_id", "message"}
_configured = False


class _TokenContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _CORRELATION_ID.get()
        return True


def _record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {key: value for key, value in vars(record).items() if key not in _RESERVED and not key.startswith("_")}


class StructuredFormatter(logging.Formatter):
    """One JSON object per line; ``extra=`` fields are nested under ``extra``."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", NO_CORRELATION),
            "message": record.getMessage(),
        }
        extras = _record_extras(record)
        if extras:
            entry["extra"] = extras
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(config: Optional[MonitoringConfig] = None, *, force: bool = False) -> None:
    """Route the root logger to stderr as JSON; stdout is left to the CLI."""

    global _configured
    if _configured and not force:
        return
    monitoring = config or get_app_config().monitoring
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter())
    handler.addFilter(_TokenContextFilter())
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.getLevelNamesMapping().get(monitoring.log_level, logging.INFO))
    logging.captureWarnings(True)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def current_correlation_id() -> str:
    return _CORRELATION_ID.get()


@contextmanager
def correlation_scope(correlation_id: Optional[str]) -> Iterator[None]:
    """Tag every record logged inside the block with ``correlation_id``."""

    token = _CORRELATION_ID.set(correlation_id or NO_CORRELATION)
    try:
        yield
    finally:
        _CORRELATION_ID.reset(token)


__all__ = [
    "StructuredFormatter",
    "configure_logging",
    "correlation_scope",
    "current_correlation_id",
    "get_logger",
]
