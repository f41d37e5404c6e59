"""Validator pipelines: checks, retry policy, and the pipeline runner."""

from gatehouse.core.validation.checks import (
    CheckRegistry,
    IntegrationContext,
    get_default_registry,
)
from gatehouse.core.validation.models import (
    BackoffStrategy,
    CheckResult,
    ExecutionStatus,
    IssueSeverity,
    ResultStatus,
    RetryPolicy,
    ValidationExecution,
    ValidationExecutionResult,
    ValidationIssue,
    ValidationPipeline,
    Validator,
    ValidatorType,
)
from gatehouse.core.validation.pipelines import default_pipelines
from gatehouse.core.validation.runner import PipelineRunner

__all__ = [
    "BackoffStrategy",
    "CheckRegistry",
    "CheckResult",
    "ExecutionStatus",
    "IntegrationContext",
    "IssueSeverity",
    "PipelineRunner",
    "ResultStatus",
    "RetryPolicy",
    "ValidationExecution",
    "ValidationExecutionResult",
    "ValidationIssue",
    "ValidationPipeline",
    "Validator",
    "ValidatorType",
    "default_pipelines",
    "get_default_registry",
]
