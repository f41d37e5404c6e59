"""Performance regression detection and metric trend analysis."""

from gatehouse.core.regression.detector import (
    PerformanceRegression,
    RegressionSeverity,
    RegressionThresholds,
    baseline_from_history,
    detect_against_history,
    detect_regressions,
)
from gatehouse.core.regression.trend import (
    TrendAnalysisResult,
    TrendAnomaly,
    TrendDirection,
    TrendPrediction,
    analyze_trend,
)

__all__ = [
    "PerformanceRegression",
    "RegressionSeverity",
    "RegressionThresholds",
    "TrendAnalysisResult",
    "TrendAnomaly",
    "TrendDirection",
    "TrendPrediction",
    "analyze_trend",
    "baseline_from_history",
    "detect_against_history",
    "detect_regressions",
]
