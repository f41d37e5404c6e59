"""
Validation domain models.

ValidationPipeline and its Validators are configuration (pydantic, loadable
from TOML).  A ValidationExecution is the runtime record of one pipeline run
against one feature:

    pending → running → completed | failed | cancelled

Once cancelled, an execution accepts no further results or aggregation.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ValidatorType(StrEnum):
    COMPATIBILITY = "compatibility"
    PERFORMANCE = "performance"
    SECURITY = "security"
    FUNCTIONALITY = "functionality"
    REGRESSION = "regression"
    WHITE_LABEL = "white-label"
    API = "api"
    DATABASE = "database"
    UI = "ui"
    ACCESSIBILITY = "accessibility"


class BackoffStrategy(StrEnum):
    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    FIXED = "fixed"


class ExecutionStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ResultStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class IssueSeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class RetryPolicy(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_retries: int = Field(default=0, ge=0)
    backoff_strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL
    base_delay_seconds: float = Field(default=1.0, ge=0)
    max_delay_seconds: float = Field(default=30.0, ge=0)
    retryable_errors: list[str] = Field(
        default_factory=lambda: ["timeout", "network", "temporary"]
    )

    @model_validator(mode="after")
    def delay_bounds(self) -> RetryPolicy:
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")
        return self


class Validator(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    name: str = ""
    description: str = ""
    type: ValidatorType
    enabled: bool = True
    priority: int = 1
    timeout_seconds: float = Field(default=300.0, gt=0)
    retries: int = Field(default=0, ge=0)
    config: dict[str, Any] = Field(default_factory=dict)
    # Informational only; the runner orders by priority and execution_order.
    dependencies: list[str] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name or self.id


class ValidationPipeline(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    name: str = ""
    description: str = ""
    validators: list[Validator] = Field(default_factory=list)
    execution_order: list[str] = Field(default_factory=list)
    parallel: bool = False
    fail_fast: bool = False
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)

    @field_validator("validators")
    @classmethod
    def unique_validator_ids(cls, v: list[Validator]) -> list[Validator]:
        seen: set[str] = set()
        for validator in v:
            if validator.id in seen:
                raise ValueError(f"Duplicate validator id {validator.id!r}")
            seen.add(validator.id)
        return v

    def selected_validators(self) -> list[Validator]:
        """Enabled validators by ascending priority, then position in execution_order."""
        order = {vid: i for i, vid in enumerate(self.execution_order)}
        enabled = [v for v in self.validators if v.enabled]
        return sorted(enabled, key=lambda v: (v.priority, order.get(v.id, len(order))))


# ---------------------------------------------------------------------------
# Runtime records
# ---------------------------------------------------------------------------


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class ValidationIssue:
    type: str
    severity: IssueSeverity
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "severity": self.severity.value,
            "message": self.message,
            "details": dict(self.details),
        }


@dataclass
class CheckResult:
    """What a validator check returns: the runner treats the check as opaque."""

    passed: bool
    score: float
    issues: list[ValidationIssue] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class ValidationExecutionResult:
    validator_id: str
    status: ResultStatus = ResultStatus.PENDING
    started_at: datetime = field(default_factory=_now)
    ended_at: datetime | None = None
    duration_seconds: float = 0.0
    score: float = 0.0
    issues: list[ValidationIssue] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    attempts: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "validator_id": self.validator_id,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration_seconds": self.duration_seconds,
            "score": self.score,
            "issues": [i.to_dict() for i in self.issues],
            "recommendations": list(self.recommendations),
            "error": self.error,
            "attempts": self.attempts,
        }


@dataclass
class ValidationLog:
    timestamp: datetime
    level: str  # debug | info | warn | error
    validator: str
    message: str
    data: dict[str, Any] | None = None


@dataclass
class ValidationExecution:
    """One run of a pipeline against one feature."""

    pipeline_id: str
    feature_id: str
    id: str = field(default_factory=lambda: f"exec-{uuid.uuid4().hex[:12]}")
    status: ExecutionStatus = ExecutionStatus.PENDING
    started_at: datetime = field(default_factory=_now)
    ended_at: datetime | None = None
    progress: float = 0.0
    current_validator: str = ""
    results: list[ValidationExecutionResult] = field(default_factory=list)
    overall_score: int = 0
    passed: bool = False
    issues: list[ValidationIssue] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    logs: list[ValidationLog] = field(default_factory=list)

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def mark_running(self) -> None:
        self.status = ExecutionStatus.RUNNING
        self.started_at = _now()

    def cancel(self) -> bool:
        """Move running → cancelled.  Returns False if the execution is not running."""
        if self.status != ExecutionStatus.RUNNING:
            return False
        self.status = ExecutionStatus.CANCELLED
        self.ended_at = _now()
        return True

    def append_result(self, result: ValidationExecutionResult) -> bool:
        """Record *result* unless the execution was cancelled."""
        if self.status == ExecutionStatus.CANCELLED:
            return False
        self.results.append(result)
        return True

    def log(
        self,
        level: str,
        message: str,
        validator: str = "",
        data: dict[str, Any] | None = None,
    ) -> None:
        self.logs.append(ValidationLog(_now(), level, validator, message, data))

    @property
    def is_terminal(self) -> bool:
        return self.status in (
            ExecutionStatus.COMPLETED,
            ExecutionStatus.FAILED,
            ExecutionStatus.CANCELLED,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pipeline_id": self.pipeline_id,
            "feature_id": self.feature_id,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "progress": self.progress,
            "results": [r.to_dict() for r in self.results],
            "overall_score": self.overall_score,
            "passed": self.passed,
            "issues": [i.to_dict() for i in self.issues],
            "recommendations": list(self.recommendations),
        }
