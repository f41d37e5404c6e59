"""Unit tests for validation models and retry helpers."""

from __future__ import annotations

import asyncio

import httpx
import pytest
from pydantic import ValidationError

from gatehouse.core.exceptions import ValidatorFault
from gatehouse.core.validation.models import (
    BackoffStrategy,
    ExecutionStatus,
    RetryPolicy,
    ValidationExecution,
    ValidationExecutionResult,
    ValidationPipeline,
    Validator,
    ValidatorType,
)
from gatehouse.core.validation.retry import fault_category, is_retryable, retry_delay


def _validator(vid: str, priority: int = 1, **overrides) -> Validator:
    return Validator(id=vid, type=ValidatorType.FUNCTIONALITY, priority=priority, **overrides)


class TestPipelineModel:
    def test_selected_validators_by_priority_then_order(self) -> None:
        pipeline = ValidationPipeline(
            id="p",
            validators=[
                _validator("late", priority=2),
                _validator("b", priority=1),
                _validator("a", priority=1),
                _validator("off", priority=0, enabled=False),
            ],
            execution_order=["a", "b", "late"],
        )
        assert [v.id for v in pipeline.selected_validators()] == ["a", "b", "late"]

    def test_unlisted_validators_run_after_listed_ones(self) -> None:
        pipeline = ValidationPipeline(
            id="p",
            validators=[_validator("unlisted"), _validator("listed")],
            execution_order=["listed"],
        )
        assert [v.id for v in pipeline.selected_validators()] == ["listed", "unlisted"]

    def test_duplicate_validator_ids_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Duplicate validator id"):
            ValidationPipeline(id="p", validators=[_validator("x"), _validator("x")])

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ValidationPipeline.model_validate({"id": "p", "paralel": True})

    def test_display_name_falls_back_to_id(self) -> None:
        assert _validator("v").display_name == "v"
        assert _validator("v", name="Nice").display_name == "Nice"

    def test_retry_policy_delay_bounds(self) -> None:
        with pytest.raises(ValidationError):
            RetryPolicy(base_delay_seconds=10, max_delay_seconds=1)


class TestExecutionRecord:
    def test_cancel_only_from_running(self) -> None:
        execution = ValidationExecution(pipeline_id="p", feature_id="f")
        assert execution.cancel() is False
        execution.mark_running()
        assert execution.cancel() is True
        assert execution.status == ExecutionStatus.CANCELLED
        assert execution.is_terminal
        assert execution.cancel() is False

    def test_cancelled_execution_rejects_results(self) -> None:
        execution = ValidationExecution(pipeline_id="p", feature_id="f")
        execution.mark_running()
        assert execution.append_result(ValidationExecutionResult(validator_id="a"))
        execution.cancel()
        assert not execution.append_result(ValidationExecutionResult(validator_id="b"))
        assert [r.validator_id for r in execution.results] == ["a"]

    def test_to_dict(self) -> None:
        execution = ValidationExecution(pipeline_id="p", feature_id="f")
        data = execution.to_dict()
        assert data["status"] == "pending"
        assert data["ended_at"] is None
        assert data["id"].startswith("exec-")


class TestRetryDelay:
    def test_linear(self) -> None:
        policy = RetryPolicy(backoff_strategy=BackoffStrategy.LINEAR, base_delay_seconds=2)
        assert [retry_delay(policy, n) for n in (1, 2, 3)] == [2, 4, 6]

    def test_exponential(self) -> None:
        policy = RetryPolicy(backoff_strategy=BackoffStrategy.EXPONENTIAL, base_delay_seconds=1)
        assert [retry_delay(policy, n) for n in (1, 2, 3, 4)] == [1, 2, 4, 8]

    def test_fixed(self) -> None:
        policy = RetryPolicy(backoff_strategy=BackoffStrategy.FIXED, base_delay_seconds=5)
        assert [retry_delay(policy, n) for n in (1, 5)] == [5, 5]

    def test_capped(self) -> None:
        policy = RetryPolicy(
            backoff_strategy=BackoffStrategy.EXPONENTIAL,
            base_delay_seconds=1,
            max_delay_seconds=3,
        )
        assert retry_delay(policy, 10) == 3


class TestFaultCategory:
    def test_validator_fault_carries_category(self) -> None:
        assert fault_category(ValidatorFault("flaky", category="temporary")) == "temporary"

    def test_timeouts(self) -> None:
        assert fault_category(TimeoutError()) == "timeout"
        assert fault_category(asyncio.TimeoutError()) == "timeout"
        assert fault_category(httpx.ConnectTimeout("slow")) == "timeout"

    def test_network(self) -> None:
        assert fault_category(ConnectionRefusedError()) == "network"
        assert fault_category(httpx.ConnectError("refused")) == "network"

    def test_everything_else_is_internal(self) -> None:
        assert fault_category(ValueError("bad")) == "internal"

    def test_is_retryable(self) -> None:
        policy = RetryPolicy(retryable_errors=["timeout"])
        assert is_retryable(TimeoutError(), policy)
        assert not is_retryable(ConnectionError(), policy)
