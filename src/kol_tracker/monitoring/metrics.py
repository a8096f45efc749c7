"""In-process counters, gauges and timing summaries for the token service."""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, MutableMapping


@dataclass(slots=True)
class _Summary:
    count: int = 0
    total: float = 0.0
    maximum: float = 0.0

    def add(self, value: float) -> None:
        self.count += 1
        self.total += value
        self.maximum = max(self.maximum, value)

    def as_dict(self) -> Dict[str, float]:
        return {
            "count": float(self.count),
            "avg": self.total / self.count if self.count else 0.0,
            "max": self.maximum,
        }


class MetricsRegistry:
    """Thread-safe registry shared by the feed client and the processing service."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: MutableMapping[str, float] = defaultdict(float)
        self._gauges: Dict[str, float] = {}
        self._summaries: MutableMapping[str, _Summary] = defaultdict(_Summary)

    def increment(self, name: str, amount: float = 1.0) -> None:
        with self._lock:
            self._counters[name] += amount

    def get(self, name: str) -> float:
        with self._lock:
            return self._counters.get(name, 0.0)

    def gauge(self, name: str, value: float) -> None:
        with self._lock:
            self._gauges[name] = float(value)

    def observe(self, name: str, value: float) -> None:
        with self._lock:
            self._summaries[name].add(float(value))

    def snapshot(self) -> Dict[str, Dict[str, object]]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "gauges": dict(self._gauges),
                "summaries": {name: summary.as_dict() for name, summary in self._summaries.items()},
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._summaries.clear()


METRICS = MetricsRegistry()


__all__ = ["METRICS", "MetricsRegistry"]
