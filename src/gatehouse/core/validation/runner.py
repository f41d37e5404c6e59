"""
PipelineRunner — executes a ValidationPipeline against one feature.

Execution flow:
  1. Resolve the pipeline (unknown id → PipelineNotFoundError, nothing created)
  2. Register a ValidationExecution in the store and mark it running
  3. Run enabled validators, sequentially (with optional fail-fast) or
     concurrently via asyncio.gather with per-validator fault isolation
  4. Each validator attempt is bounded by its timeout; retryable faults are
     retried with the pipeline's backoff
  5. Aggregate scores, issues and recommendations; decide pass/fail

Cancellation is cooperative: ``cancel()`` flips a running execution to
cancelled, after which no further results are appended and no aggregation
happens.  Results recorded before cancellation are kept.
"""

from __future__ import annotations

import asyncio
import math
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from datetime import UTC, datetime

import structlog

from gatehouse.core.constants import PASSING_SCORE
from gatehouse.core.exceptions import (
    ExecutionNotFoundError,
    PipelineNotFoundError,
    ValidatorFault,
)
from gatehouse.core.planning.models import Feature
from gatehouse.core.store.registry import EngineStore
from gatehouse.core.validation.checks import (
    CheckRegistry,
    IntegrationContext,
    get_default_registry,
)
from gatehouse.core.validation.models import (
    ExecutionStatus,
    IssueSeverity,
    ResultStatus,
    ValidationExecution,
    ValidationExecutionResult,
    ValidationIssue,
    ValidationPipeline,
    Validator,
)
from gatehouse.core.validation.pipelines import default_pipelines
from gatehouse.core.validation.retry import fault_category, is_retryable, retry_delay

logger = structlog.get_logger()

SleepFn = Callable[[float], Awaitable[None]]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class PipelineRunner:
    """Runs validation pipelines; state lives in the injected EngineStore."""

    def __init__(
        self,
        store: EngineStore | None = None,
        checks: CheckRegistry | None = None,
        *,
        register_defaults: bool = True,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._store = store or EngineStore()
        self._checks = checks or get_default_registry()
        self._sleep = sleep
        if register_defaults:
            for pipeline in default_pipelines():
                if pipeline.id not in self._store.pipelines:
                    self._store.pipelines.put(pipeline.id, pipeline)

    @property
    def store(self) -> EngineStore:
        return self._store

    # ------------------------------------------------------------------
    # Pipelines
    # ------------------------------------------------------------------

    def register_pipeline(self, pipeline: ValidationPipeline) -> None:
        self._store.pipelines.put(pipeline.id, pipeline)
        logger.info(
            "pipeline_registered",
            pipeline_id=pipeline.id,
            validators=len(pipeline.validators),
            parallel=pipeline.parallel,
        )

    def get_pipeline(self, pipeline_id: str) -> ValidationPipeline:
        pipeline = self._store.pipelines.get(pipeline_id)
        if pipeline is None:
            raise PipelineNotFoundError(f"Validation pipeline not found: {pipeline_id}")
        return pipeline

    def list_pipelines(self) -> list[ValidationPipeline]:
        return self._store.pipelines.values()

    # ------------------------------------------------------------------
    # Executions
    # ------------------------------------------------------------------

    def get_execution(self, execution_id: str) -> ValidationExecution:
        execution = self._store.executions.get(execution_id)
        if execution is None:
            raise ExecutionNotFoundError(f"Validation execution not found: {execution_id}")
        return execution

    def list_executions(
        self,
        *,
        pipeline_id: str | None = None,
        feature_id: str | None = None,
        status: ExecutionStatus | None = None,
    ) -> list[ValidationExecution]:
        return self._store.executions.filter(
            lambda e: (pipeline_id is None or e.pipeline_id == pipeline_id)
            and (feature_id is None or e.feature_id == feature_id)
            and (status is None or e.status == status)
        )

    def cancel(self, execution_id: str) -> bool:
        """Cancel a running execution.  Returns False if it was not running."""
        execution = self.get_execution(execution_id)
        if not execution.cancel():
            logger.info(
                "execution_cancel_ignored",
                execution_id=execution_id,
                status=execution.status.value,
            )
            return False
        execution.log("warn", "Validation execution cancelled", "pipeline")
        logger.warning("execution_cancelled", execution_id=execution_id)
        return True

    async def execute(
        self,
        pipeline_id: str,
        feature: Feature,
        context: IntegrationContext | None = None,
    ) -> ValidationExecution:
        pipeline = self.get_pipeline(pipeline_id)
        ctx = context or IntegrationContext()

        execution = ValidationExecution(pipeline_id=pipeline.id, feature_id=feature.id)
        self._store.executions.put(execution.id, execution)
        log = logger.bind(
            execution_id=execution.id, pipeline_id=pipeline.id, feature_id=feature.id
        )

        execution.mark_running()
        execution.log("info", f"Starting validation pipeline: {pipeline.name or pipeline.id}")
        validators = pipeline.selected_validators()
        log.info(
            "execution_started",
            validators=[v.id for v in validators],
            parallel=pipeline.parallel,
            fail_fast=pipeline.fail_fast,
        )

        try:
            if pipeline.parallel:
                await self._run_parallel(execution, pipeline, validators, feature, ctx)
            else:
                await self._run_sequential(execution, pipeline, validators, feature, ctx)
        except asyncio.CancelledError:
            execution.cancel()
            log.warning("execution_interrupted", results=len(execution.results))
            raise

        if execution.status == ExecutionStatus.CANCELLED:
            log.info("execution_finished_cancelled", results=len(execution.results))
            return execution

        self._aggregate(execution)
        log.info(
            "execution_completed",
            status=execution.status.value,
            overall_score=execution.overall_score,
            passed=execution.passed,
            results=len(execution.results),
        )
        return execution

    async def validate_features(
        self,
        features: Iterable[Feature],
        pipeline_id: str,
        contexts: Mapping[str, IntegrationContext] | None = None,
    ) -> list[ValidationExecution]:
        """Validate each feature in turn (e.g. in integration-sequence order)."""
        contexts = contexts or {}
        return [
            await self.execute(pipeline_id, feature, contexts.get(feature.id))
            for feature in features
        ]

    # ------------------------------------------------------------------
    # Scheduling modes
    # ------------------------------------------------------------------

    async def _run_sequential(
        self,
        execution: ValidationExecution,
        pipeline: ValidationPipeline,
        validators: list[Validator],
        feature: Feature,
        ctx: IntegrationContext,
    ) -> None:
        for i, validator in enumerate(validators):
            if execution.status == ExecutionStatus.CANCELLED:
                break
            execution.current_validator = validator.display_name
            execution.progress = i / len(validators) * 100

            result = await self._run_validator(execution, pipeline, validator, feature, ctx)
            if not execution.append_result(result):
                break

            if pipeline.fail_fast and result.status == ResultStatus.FAILED:
                execution.log("warn", "Failing fast due to validator failure", "fail-fast")
                logger.warning(
                    "execution_fail_fast",
                    execution_id=execution.id,
                    validator_id=validator.id,
                    skipped=[v.id for v in validators[i + 1 :]],
                )
                break

    async def _run_parallel(
        self,
        execution: ValidationExecution,
        pipeline: ValidationPipeline,
        validators: list[Validator],
        feature: Feature,
        ctx: IntegrationContext,
    ) -> None:
        execution.current_validator = ", ".join(v.display_name for v in validators)
        outcomes = await asyncio.gather(
            *(self._run_validator(execution, pipeline, v, feature, ctx) for v in validators),
            return_exceptions=True,
        )
        for validator, outcome in zip(validators, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                outcome = self._fault_result(
                    ValidationExecutionResult(validator_id=validator.id), validator, outcome
                )
            if not execution.append_result(outcome):
                break

    # ------------------------------------------------------------------
    # Single validator
    # ------------------------------------------------------------------

    async def _run_validator(
        self,
        execution: ValidationExecution,
        pipeline: ValidationPipeline,
        validator: Validator,
        feature: Feature,
        ctx: IntegrationContext,
    ) -> ValidationExecutionResult:
        result = ValidationExecutionResult(validator_id=validator.id, status=ResultStatus.RUNNING)
        started = time.monotonic()
        execution.log("info", f"Starting validator: {validator.display_name}", validator.id)

        check = self._checks.get(validator.type)
        if check is None:
            fault = ValidatorFault(
                f"No check registered for validator type {validator.type.value!r}",
                category="configuration",
            )
            return self._fault_result(result, validator, fault, execution, started)

        policy = pipeline.retry_policy
        max_retries = min(validator.retries, policy.max_retries)
        while True:
            result.attempts += 1
            try:
                async with asyncio.timeout(validator.timeout_seconds):
                    outcome = await check(validator, feature, ctx)
            except Exception as exc:  # noqa: BLE001
                category = fault_category(exc)
                retry_number = result.attempts
                if retry_number <= max_retries and is_retryable(exc, policy):
                    delay = retry_delay(policy, retry_number)
                    logger.warning(
                        "validator_retry",
                        execution_id=execution.id,
                        validator_id=validator.id,
                        attempt=result.attempts,
                        category=category,
                        delay_seconds=delay,
                    )
                    execution.log(
                        "warn",
                        f"Retrying {validator.display_name} after {category} fault "
                        f"(attempt {result.attempts}, waiting {delay:g}s)",
                        validator.id,
                    )
                    await self._sleep(delay)
                    continue
                return self._fault_result(result, validator, exc, execution, started)

            try:
                score = max(0.0, min(100.0, float(outcome.score)))
                issues = list(outcome.issues)
                recommendations = list(outcome.recommendations)
                data = dict(outcome.data)
                passed = bool(outcome.passed)
            except Exception as exc:  # noqa: BLE001
                fault = ValidatorFault(f"Malformed check result: {exc}", category="internal")
                return self._fault_result(result, validator, fault, execution, started)

            result.status = ResultStatus.PASSED if passed else ResultStatus.FAILED
            result.score = score
            result.issues = issues
            result.recommendations = recommendations
            result.data = data
            result.ended_at = datetime.now(UTC)
            result.duration_seconds = time.monotonic() - started
            execution.log(
                "info",
                f"Validator completed: {validator.display_name}, Score: {result.score:g}",
                validator.id,
            )
            logger.info(
                "validator_completed",
                execution_id=execution.id,
                validator_id=validator.id,
                status=result.status.value,
                score=result.score,
                attempts=result.attempts,
            )
            return result

    def _fault_result(
        self,
        result: ValidationExecutionResult,
        validator: Validator,
        exc: BaseException,
        execution: ValidationExecution | None = None,
        started: float | None = None,
    ) -> ValidationExecutionResult:
        message = str(exc)
        if not message and isinstance(exc, TimeoutError):
            message = f"Validator timed out after {validator.timeout_seconds:g}s"
        message = message or type(exc).__name__

        result.status = ResultStatus.FAILED
        result.score = 0.0
        result.error = message
        result.issues = [
            ValidationIssue(
                type="execution_error",
                severity=IssueSeverity.CRITICAL,
                message=f"Validator execution failed: {message}",
                details={"category": fault_category(exc)},
            )
        ]
        result.recommendations = ["Review validator configuration"]
        result.ended_at = datetime.now(UTC)
        if started is not None:
            result.duration_seconds = time.monotonic() - started

        if execution is not None:
            execution.log(
                "error",
                f"Validator failed: {validator.display_name}, Error: {message}",
                validator.id,
            )
        logger.error(
            "validator_failed",
            execution_id=execution.id if execution else None,
            validator_id=validator.id,
            category=fault_category(exc),
            error=message,
        )
        return result

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def _aggregate(self, execution: ValidationExecution) -> None:
        results = execution.results
        if results:
            execution.overall_score = _round_half_up(
                sum(r.score for r in results) / len(results)
            )
        else:
            execution.overall_score = 0

        execution.issues = [issue for r in results for issue in r.issues]
        execution.recommendations = list(
            dict.fromkeys(rec for r in results for rec in r.recommendations)
        )

        has_failures = any(r.status == ResultStatus.FAILED for r in results)
        has_critical = any(i.severity == IssueSeverity.CRITICAL for i in execution.issues)
        execution.passed = (
            bool(results)
            and not has_failures
            and not has_critical
            and execution.overall_score >= PASSING_SCORE
        )

        execution.status = ExecutionStatus.COMPLETED if execution.passed else ExecutionStatus.FAILED
        execution.progress = 100.0
        execution.current_validator = ""
        execution.ended_at = datetime.now(UTC)
        execution.log(
            "info",
            f"Validation {'passed' if execution.passed else 'failed'} "
            f"with score {execution.overall_score}",
        )
