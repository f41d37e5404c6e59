"""Unit tests for alert condition evaluation."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from gatehouse.core.monitoring.conditions import aggregate, evaluate_condition
from gatehouse.core.monitoring.models import AlertCondition

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def _cond(metric: str, op: str, value, **kw) -> AlertCondition:
    return AlertCondition(metric=metric, operator=op, value=value, **kw)


class TestComparisons:
    @pytest.mark.parametrize(
        ("op", "threshold", "expected"),
        [
            ("gt", 80, True),
            ("gt", 85, False),
            ("gte", 85, True),
            ("lt", 90, True),
            ("lte", 84, False),
            ("eq", 85, True),
            ("ne", 85, False),
        ],
    )
    def test_numeric_operators(self, op: str, threshold: float, expected: bool) -> None:
        assert evaluate_condition(_cond("pass_rate", op, threshold), {"pass_rate": 85}) is expected

    def test_missing_metric_never_matches(self) -> None:
        assert not evaluate_condition(_cond("pass_rate", "lt", 90), {})
        assert not evaluate_condition(_cond("pass_rate", "ne", 90), {"other": 1})

    def test_ordering_needs_numbers(self) -> None:
        assert not evaluate_condition(_cond("version", "gt", 1), {"version": "2.0"})
        assert not evaluate_condition(_cond("pass_rate", "gt", "80"), {"pass_rate": 85})

    def test_contains(self) -> None:
        cond = _cond("status", "contains", "degraded")
        assert evaluate_condition(cond, {"status": "partially degraded"})
        assert not evaluate_condition(cond, {"status": "ok"})

    def test_matches(self) -> None:
        cond = _cond("region", "matches", r"^eu-")
        assert evaluate_condition(cond, {"region": "eu-west-1"})
        assert not evaluate_condition(cond, {"region": "us-east-1"})

    def test_invalid_pattern_is_false(self) -> None:
        assert not evaluate_condition(_cond("region", "matches", "(["), {"region": "eu"})


class TestAggregation:
    def _history(self) -> list[tuple[datetime, dict[str, float]]]:
        return [
            (NOW - timedelta(seconds=600), {"response_time": 9000}),
            (NOW - timedelta(seconds=120), {"response_time": 100}),
            (NOW - timedelta(seconds=60), {"response_time": 300}),
            (NOW, {"response_time": 200, "note": 1}),
        ]

    def test_window_average(self) -> None:
        cond = _cond("response_time", "gt", 150, aggregation="avg", window_seconds=300)
        assert evaluate_condition(cond, {}, self._history(), NOW)

    def test_window_excludes_old_samples(self) -> None:
        cond = _cond("response_time", "gte", 9000, aggregation="max", window_seconds=300)
        assert not evaluate_condition(cond, {}, self._history(), NOW)

    def test_count(self) -> None:
        cond = _cond("response_time", "eq", 3, aggregation="count", window_seconds=300)
        assert evaluate_condition(cond, {}, self._history(), NOW)

    def test_anchor_defaults_to_latest_sample(self) -> None:
        cond = _cond("response_time", "eq", 100, aggregation="min", window_seconds=300)
        assert evaluate_condition(cond, {}, self._history())

    def test_empty_history(self) -> None:
        cond = _cond("response_time", "gt", 0, aggregation="avg", window_seconds=300)
        assert not evaluate_condition(cond, {"response_time": 100}, [], NOW)

    def test_aggregation_requires_window(self) -> None:
        with pytest.raises(ValidationError):
            _cond("response_time", "gt", 1, aggregation="avg")

    def test_aggregate_helper(self) -> None:
        assert aggregate([1, 2, 3], "sum") == 6
        assert aggregate([], "avg") is None
        assert aggregate([], "count") == 0
