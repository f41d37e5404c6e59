"""
Baseline regression detection.

Compares a current metric snapshot against a baseline and classifies every
deviation above the reporting threshold.  The baseline may be given
directly or averaged from recent history.  Results are computed fresh on
each call; nothing here keeps state.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

from gatehouse.core.constants import HISTORY_BASELINE_WINDOW, HISTORY_MIN_SAMPLES


class RegressionSeverity(StrEnum):
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RegressionThresholds(BaseModel):
    """Percentage bounds; all comparisons are strict (>)."""

    model_config = ConfigDict(extra="forbid")

    report_percent: float = 5.0
    high_percent: float = 10.0
    critical_percent: float = 20.0

    @model_validator(mode="after")
    def ordered(self) -> RegressionThresholds:
        if not (0 <= self.report_percent <= self.high_percent <= self.critical_percent):
            raise ValueError(
                "Regression thresholds must satisfy 0 <= report <= high <= critical"
            )
        return self

    def classify(self, change_percent: float) -> RegressionSeverity | None:
        magnitude = abs(change_percent)
        if magnitude <= self.report_percent:
            return None
        if magnitude > self.critical_percent:
            return RegressionSeverity.CRITICAL
        if magnitude > self.high_percent:
            return RegressionSeverity.HIGH
        return RegressionSeverity.MEDIUM


@dataclass(frozen=True)
class PerformanceRegression:
    metric: str
    baseline: float
    current: float
    change: float
    change_percent: float
    severity: RegressionSeverity
    threshold: float
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric,
            "baseline": self.baseline,
            "current": self.current,
            "change": self.change,
            "change_percent": self.change_percent,
            "severity": self.severity.value,
            "threshold": self.threshold,
            "description": self.description,
        }


def is_number(value: Any) -> bool:
    """True for finite ints/floats, excluding bools."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def detect_regressions(
    baseline: Mapping[str, Any],
    current: Mapping[str, Any],
    thresholds: RegressionThresholds | None = None,
) -> list[PerformanceRegression]:
    """
    Report every metric whose change exceeds the reporting threshold.

    Only metrics numeric in both snapshots are compared, in baseline order.
    A zero baseline has no defined percentage change and is skipped.
    """
    t = thresholds or RegressionThresholds()
    found: list[PerformanceRegression] = []
    for metric, base in baseline.items():
        now = current.get(metric)
        if not (is_number(base) and is_number(now)) or base == 0:
            continue
        change = float(now) - float(base)
        change_percent = change / float(base) * 100
        severity = t.classify(change_percent)
        if severity is None:
            continue
        found.append(
            PerformanceRegression(
                metric=metric,
                baseline=float(base),
                current=float(now),
                change=change,
                change_percent=change_percent,
                severity=severity,
                threshold=t.report_percent,
                description=f"{metric} changed by {change_percent:.2f}%",
            )
        )
    return found


def baseline_from_history(
    history: Sequence[Mapping[str, Any]],
    window: int = HISTORY_BASELINE_WINDOW,
    min_samples: int = HISTORY_MIN_SAMPLES,
) -> dict[str, float] | None:
    """
    Average each metric over the last *window* snapshots.

    Returns None until at least *min_samples* snapshots exist.
    """
    if len(history) < min_samples:
        return None
    recent = history[-window:]
    sums: dict[str, float] = {}
    counts: dict[str, int] = {}
    for snapshot in recent:
        for metric, value in snapshot.items():
            if is_number(value):
                sums[metric] = sums.get(metric, 0.0) + float(value)
                counts[metric] = counts.get(metric, 0) + 1
    return {metric: sums[metric] / counts[metric] for metric in sums}


def detect_against_history(
    current: Mapping[str, Any],
    history: Sequence[Mapping[str, Any]],
    thresholds: RegressionThresholds | None = None,
) -> list[PerformanceRegression]:
    """Compare *current* with the historical average; empty when history is too short."""
    baseline = baseline_from_history(history)
    if baseline is None:
        return []
    return detect_regressions(baseline, current, thresholds)
