"""
In-memory engine store.

One EngineStore is created per process (or per test) and injected into the
PipelineRunner and MonitoringService.  Every registry is guarded by its own
re-entrant lock so that monitoring tasks, pipeline executions and CLI
threads can write concurrently.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable, Iterator
from datetime import datetime
from typing import Any, Generic, TypeVar

from gatehouse.core.constants import METRIC_HISTORY_LIMIT

T = TypeVar("T")


class Registry(Generic[T]):
    """Thread-safe id → object map preserving insertion order."""

    def __init__(self) -> None:
        self._items: dict[str, T] = {}
        self._lock = threading.RLock()

    def put(self, key: str, item: T) -> None:
        with self._lock:
            self._items[key] = item

    def get(self, key: str) -> T | None:
        with self._lock:
            return self._items.get(key)

    def remove(self, key: str) -> T | None:
        with self._lock:
            return self._items.pop(key, None)

    def values(self) -> list[T]:
        with self._lock:
            return list(self._items.values())

    def filter(self, predicate: Callable[[T], bool]) -> list[T]:
        with self._lock:
            return [item for item in self._items.values() if predicate(item)]

    def prune(self, predicate: Callable[[T], bool]) -> int:
        """Remove every item matching *predicate*; returns how many were removed."""
        with self._lock:
            doomed = [k for k, v in self._items.items() if predicate(v)]
            for key in doomed:
                del self._items[key]
            return len(doomed)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.values())


class MetricHistory:
    """Bounded per-key history of ``(timestamp, metrics)`` snapshots."""

    def __init__(self, limit: int = METRIC_HISTORY_LIMIT) -> None:
        self._limit = limit
        self._series: dict[str, deque[tuple[datetime, dict[str, float]]]] = {}
        self._lock = threading.RLock()

    def append(self, key: str, timestamp: datetime, metrics: dict[str, float]) -> None:
        with self._lock:
            series = self._series.setdefault(key, deque(maxlen=self._limit))
            series.append((timestamp, dict(metrics)))

    def snapshots(self, key: str) -> list[dict[str, float]]:
        with self._lock:
            return [m for _, m in self._series.get(key, ())]

    def values(self, key: str, metric: str) -> list[float]:
        with self._lock:
            return [m[metric] for _, m in self._series.get(key, ()) if metric in m]

    def entries(self, key: str) -> list[tuple[datetime, dict[str, float]]]:
        with self._lock:
            return [(ts, dict(m)) for ts, m in self._series.get(key, ())]

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._series)

    def prune_before(self, cutoff: datetime, prefix: str = "") -> int:
        """Drop snapshots older than *cutoff* from every key starting with *prefix*."""
        removed = 0
        with self._lock:
            for key, series in self._series.items():
                if not key.startswith(prefix):
                    continue
                while series and series[0][0] < cutoff:
                    series.popleft()
                    removed += 1
        return removed


class EngineStore:
    """All registries shared by the validation and monitoring engines."""

    def __init__(self, history_limit: int = METRIC_HISTORY_LIMIT) -> None:
        self.pipelines: Registry[Any] = Registry()
        self.executions: Registry[Any] = Registry()
        self.monitoring_configs: Registry[Any] = Registry()
        self.monitoring_executions: Registry[Any] = Registry()
        self.alerts: Registry[Any] = Registry()
        self.trend_monitors: Registry[Any] = Registry()
        self.metric_history = MetricHistory(history_limit)
