"""Alert condition evaluation against a target's metric snapshot."""

from __future__ import annotations

import operator
import re
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timedelta
from typing import Any

import structlog

from gatehouse.core.monitoring.models import AlertCondition, ComparisonOperator
from gatehouse.core.regression.detector import is_number

logger = structlog.get_logger()


def _contains(actual: Any, expected: Any) -> bool:
    return str(expected) in str(actual)


def _matches(actual: Any, expected: Any) -> bool:
    return re.search(str(expected), str(actual)) is not None


_OPERATORS: dict[ComparisonOperator, Callable[[Any, Any], bool]] = {
    ComparisonOperator.GT: operator.gt,
    ComparisonOperator.LT: operator.lt,
    ComparisonOperator.EQ: operator.eq,
    ComparisonOperator.NE: operator.ne,
    ComparisonOperator.GTE: operator.ge,
    ComparisonOperator.LTE: operator.le,
    ComparisonOperator.CONTAINS: _contains,
    ComparisonOperator.MATCHES: _matches,
}

_ORDERING = frozenset(
    {
        ComparisonOperator.GT,
        ComparisonOperator.LT,
        ComparisonOperator.GTE,
        ComparisonOperator.LTE,
    }
)


def aggregate(values: Sequence[float], how: str) -> float | None:
    if how == "count":
        return float(len(values))
    if not values:
        return None
    if how == "avg":
        return sum(values) / len(values)
    if how == "min":
        return min(values)
    if how == "max":
        return max(values)
    return float(sum(values))


def window_values(
    history: Sequence[tuple[datetime, Mapping[str, Any]]],
    metric: str,
    since: datetime,
) -> list[float]:
    """Numeric values of *metric* recorded at or after *since*."""
    return [
        float(snapshot[metric])
        for ts, snapshot in history
        if ts >= since and is_number(snapshot.get(metric))
    ]


def evaluate_condition(
    condition: AlertCondition,
    metrics: Mapping[str, Any],
    history: Sequence[tuple[datetime, Mapping[str, Any]]] = (),
    now: datetime | None = None,
) -> bool:
    """
    True when *condition* holds.

    A metric missing from the snapshot never satisfies a condition.  Ordering
    operators only compare numbers; ``contains``/``matches`` compare text.
    """
    if condition.aggregation is not None and condition.window_seconds is not None:
        anchor = now or (history[-1][0] if history else None)
        if anchor is None:
            return False
        since = anchor - timedelta(seconds=condition.window_seconds)
        series = window_values(history, condition.metric, since)
        value: Any = aggregate(series, condition.aggregation)
    else:
        value = metrics.get(condition.metric)
    if value is None:
        return False

    if condition.operator in _ORDERING and not (is_number(value) and is_number(condition.value)):
        return False

    try:
        return bool(_OPERATORS[condition.operator](value, condition.value))
    except re.error as exc:
        logger.warning(
            "alert_condition_invalid_pattern",
            metric=condition.metric,
            pattern=condition.value,
            error=str(exc),
        )
        return False
