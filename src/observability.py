"""In-process metrics for the memory pipeline, logged as a run summary."""

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

import structlog

logger = structlog.get_logger().bind(source="observability")


@dataclass
class TimerStats:
    count: int = 0
    total: float = 0.0
    min: float = float("inf")
    max: float = 0.0

    def add(self, seconds: float):
        self.count += 1
        self.total += seconds
        self.min = min(self.min, seconds)
        self.max = max(self.max, seconds)

    def as_dict(self) -> dict[str, float]:
        if not self.count:
            return {"count": 0}
        return {
            "count": self.count,
            "total": self.total,
            "avg": self.total / self.count,
            "min": self.min,
            "max": self.max,
        }


class Metrics:
    """Named counters and timers, process-local."""

    def __init__(self):
        self._counters: dict[str, int] = {}
        self._timers: dict[str, TimerStats] = {}

    def counter(self, name: str, value: int = 1):
        self._counters[name] = self._counters.get(name, 0) + value

    def get(self, name: str) -> int:
        return self._counters.get(name, 0)

    @contextmanager
    def timer(self, name: str):
        """Record the wrapped block's duration, even if it raises."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self._timers.setdefault(name, TimerStats()).add(time.perf_counter() - start)

    def summary(self) -> dict[str, Any]:
        return {
            "counters": dict(self._counters),
            "timers": {name: stats.as_dict() for name, stats in self._timers.items()},
        }

    def reset(self):
        self._counters.clear()
        self._timers.clear()


metrics = Metrics()


def duplicate_rate() -> float | None:
    """Share of extracted candidates rejected as duplicates; None before any extraction."""
    candidates = metrics.get("memory_candidates")
    if not candidates:
        return None
    return metrics.get("memory_duplicates") / candidates


def log_run_summary():
    summary = metrics.summary()
    logger.info("memory.run_summary", duplicate_rate=duplicate_rate(), **summary)
