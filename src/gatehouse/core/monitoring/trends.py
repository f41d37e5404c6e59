"""
Trend monitors — rolling per-metric windows re-analysed on every sample.

The monitoring loop appends each numeric metric produced by a tick to every
TrendMonitor tracking that metric.  Samples older than the monitor's time
window are evicted before re-analysis.  ``check_trend_alerts`` turns the
latest analysis into TrendAlerts once enough samples have accumulated.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from gatehouse.core.monitoring.models import Severity
from gatehouse.core.regression.trend import TrendAnalysisResult, TrendDirection, analyze_trend


class TrendAlertType(StrEnum):
    DEGRADATION = "degradation"
    IMPROVEMENT = "improvement"
    VOLATILITY = "volatility"


class TrendThresholds(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Absolute slope (value units per sample) that triggers a trend alert
    degradation_rate: float = Field(default=10.0, ge=0)
    improvement_rate: float = Field(default=5.0, ge=0)
    # Standard deviation above which the series is reported volatile
    volatility: float = Field(default=2.0, ge=0)
    min_data_points: int = Field(default=10, ge=2)


@dataclass(frozen=True)
class TrendAlert:
    monitor_id: str
    metric: str
    type: TrendAlertType
    severity: Severity
    message: str
    value: float
    threshold: float


@dataclass
class TrendMonitor:
    metric: str
    time_window_seconds: float
    higher_is_better: bool = True
    thresholds: TrendThresholds = field(default_factory=TrendThresholds)
    id: str = field(default_factory=lambda: f"trend-{uuid.uuid4().hex[:12]}")
    samples: list[tuple[datetime, float]] = field(default_factory=list)
    analysis: TrendAnalysisResult = field(default_factory=TrendAnalysisResult)
    alerts: list[TrendAlert] = field(default_factory=list)
    last_update: datetime | None = None

    def evict(self, now: datetime) -> int:
        cutoff = now - timedelta(seconds=self.time_window_seconds)
        kept = [(ts, v) for ts, v in self.samples if ts >= cutoff]
        removed = len(self.samples) - len(kept)
        self.samples = kept
        return removed

    def refresh(self) -> TrendAnalysisResult:
        self.analysis = analyze_trend(
            [v for _, v in self.samples], higher_is_better=self.higher_is_better
        )
        self.alerts = check_trend_alerts(self)
        return self.analysis

    def add_sample(self, timestamp: datetime, value: float) -> TrendAnalysisResult:
        """Append, evict samples outside the window, and re-analyse."""
        self.samples.append((timestamp, float(value)))
        self.evict(timestamp)
        self.last_update = timestamp
        return self.refresh()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "metric": self.metric,
            "time_window_seconds": self.time_window_seconds,
            "samples": len(self.samples),
            "analysis": self.analysis.to_dict(),
            "alerts": [
                {"type": a.type.value, "severity": a.severity.value, "message": a.message}
                for a in self.alerts
            ],
            "last_update": self.last_update.isoformat() if self.last_update else None,
        }


def check_trend_alerts(monitor: TrendMonitor) -> list[TrendAlert]:
    analysis = monitor.analysis
    limits = monitor.thresholds
    if analysis.data_points < limits.min_data_points:
        return []

    alerts: list[TrendAlert] = []
    rate = abs(analysis.slope)
    if analysis.trend == TrendDirection.DEGRADING and rate > limits.degradation_rate:
        alerts.append(
            TrendAlert(
                monitor_id=monitor.id,
                metric=monitor.metric,
                type=TrendAlertType.DEGRADATION,
                severity=Severity.WARNING,
                message=f"{monitor.metric} is degrading at {rate:.2f} per sample",
                value=rate,
                threshold=limits.degradation_rate,
            )
        )
    elif analysis.trend == TrendDirection.IMPROVING and rate > limits.improvement_rate:
        alerts.append(
            TrendAlert(
                monitor_id=monitor.id,
                metric=monitor.metric,
                type=TrendAlertType.IMPROVEMENT,
                severity=Severity.INFO,
                message=f"{monitor.metric} is improving at {rate:.2f} per sample",
                value=rate,
                threshold=limits.improvement_rate,
            )
        )

    if analysis.volatility > limits.volatility:
        alerts.append(
            TrendAlert(
                monitor_id=monitor.id,
                metric=monitor.metric,
                type=TrendAlertType.VOLATILITY,
                severity=Severity.INFO,
                message=f"{monitor.metric} is volatile (std dev {analysis.volatility:.2f})",
                value=analysis.volatility,
                threshold=limits.volatility,
            )
        )
    return alerts
