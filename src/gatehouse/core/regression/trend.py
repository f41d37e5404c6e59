"""
Trend analysis over a metric series.

Ordinary least squares of value against sample index, Pearson correlation,
and population standard deviation as volatility.  The fitted line also
gives a one-step-ahead prediction and the residuals used to flag
anomalous samples.

The slope threshold is absolute (value units per sample), so callers
tracking large-valued metrics may want a larger ``slope_threshold``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import numpy as np


class TrendDirection(StrEnum):
    IMPROVING = "improving"
    STABLE = "stable"
    DEGRADING = "degrading"


@dataclass(frozen=True)
class TrendPrediction:
    next_value: float
    lower: float
    upper: float
    confidence: float


@dataclass(frozen=True)
class TrendAnomaly:
    index: int
    value: float
    expected: float
    deviation: float  # residual in units of residual std dev
    kind: str  # "spike" | "drop"
    severity: str  # "low" | "medium" | "high"


@dataclass
class TrendAnalysisResult:
    trend: TrendDirection = TrendDirection.STABLE
    slope: float = 0.0
    intercept: float = 0.0
    correlation: float = 0.0
    volatility: float = 0.0
    prediction: TrendPrediction = field(
        default_factory=lambda: TrendPrediction(0.0, 0.0, 0.0, 0.0)
    )
    data_points: int = 0
    anomalies: list[TrendAnomaly] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "trend": self.trend.value,
            "slope": self.slope,
            "intercept": self.intercept,
            "correlation": self.correlation,
            "volatility": self.volatility,
            "prediction": {
                "next_value": self.prediction.next_value,
                "lower": self.prediction.lower,
                "upper": self.prediction.upper,
                "confidence": self.prediction.confidence,
            },
            "data_points": self.data_points,
            "anomalies": [
                {
                    "index": a.index,
                    "value": a.value,
                    "expected": a.expected,
                    "deviation": a.deviation,
                    "kind": a.kind,
                    "severity": a.severity,
                }
                for a in self.anomalies
            ],
        }


def _anomaly_severity(z: float) -> str:
    if z > 4:
        return "high"
    if z > 3:
        return "medium"
    return "low"


def analyze_trend(
    values: Sequence[float],
    *,
    higher_is_better: bool = True,
    slope_threshold: float = 0.1,
    anomaly_sigma: float = 2.0,
) -> TrendAnalysisResult:
    """Characterize *values* (oldest first).  Fewer than two samples is neutral."""
    n = len(values)
    if n < 2:
        return TrendAnalysisResult(data_points=n)

    y = np.asarray(values, dtype=float)
    x = np.arange(n, dtype=float)

    sum_x = x.sum()
    sum_y = y.sum()
    sum_xy = (x * y).sum()
    sum_x2 = (x * x).sum()
    sum_y2 = (y * y).sum()

    slope = float((n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x**2))
    intercept = float((sum_y - slope * sum_x) / n)

    spread = (n * sum_x2 - sum_x**2) * (n * sum_y2 - sum_y**2)
    if np.ptp(y) > 0 and spread > 0:
        correlation = float((n * sum_xy - sum_x * sum_y) / np.sqrt(spread))
    else:
        correlation = 0.0
    correlation = max(-1.0, min(1.0, correlation))
    volatility = float(np.std(y))

    if abs(slope) > slope_threshold:
        rising = slope > 0
        trend = TrendDirection.IMPROVING if rising == higher_is_better else TrendDirection.DEGRADING
    else:
        trend = TrendDirection.STABLE

    next_value = slope * n + intercept
    prediction = TrendPrediction(
        next_value=next_value,
        lower=next_value - volatility,
        upper=next_value + volatility,
        confidence=abs(correlation),
    )

    anomalies: list[TrendAnomaly] = []
    fitted = slope * x + intercept
    residuals = y - fitted
    resid_std = float(np.std(residuals))
    if n >= 3 and resid_std > 1e-12:
        for i in np.flatnonzero(np.abs(residuals) > anomaly_sigma * resid_std):
            z = float(abs(residuals[i]) / resid_std)
            anomalies.append(
                TrendAnomaly(
                    index=int(i),
                    value=float(y[i]),
                    expected=float(fitted[i]),
                    deviation=z,
                    kind="spike" if residuals[i] > 0 else "drop",
                    severity=_anomaly_severity(z),
                )
            )

    return TrendAnalysisResult(
        trend=trend,
        slope=slope,
        intercept=intercept,
        correlation=correlation,
        volatility=volatility,
        prediction=prediction,
        data_points=n,
        anomalies=anomalies,
    )
