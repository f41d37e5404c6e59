"""Built-in validation pipelines registered by every PipelineRunner."""

from __future__ import annotations

from gatehouse.core.validation.models import (
    BackoffStrategy,
    RetryPolicy,
    ValidationPipeline,
    Validator,
    ValidatorType,
)


def comprehensive_pipeline() -> ValidationPipeline:
    """Sequential, fail-fast run of the five core validators."""
    return ValidationPipeline(
        id="comprehensive",
        name="Comprehensive Validation",
        description="Complete validation pipeline for feature integration",
        validators=[
            Validator(
                id="compatibility",
                name="Compatibility Validator",
                description="Validates compatibility with existing features",
                type=ValidatorType.COMPATIBILITY,
                priority=1,
                timeout_seconds=300,
                retries=2,
            ),
            Validator(
                id="performance",
                name="Performance Validator",
                description="Validates performance impact",
                type=ValidatorType.PERFORMANCE,
                priority=2,
                timeout_seconds=600,
                retries=1,
                dependencies=["compatibility"],
            ),
            Validator(
                id="security",
                name="Security Validator",
                description="Validates security implications",
                type=ValidatorType.SECURITY,
                priority=3,
                timeout_seconds=300,
                retries=2,
            ),
            Validator(
                id="functionality",
                name="Functionality Validator",
                description="Validates feature functionality",
                type=ValidatorType.FUNCTIONALITY,
                priority=4,
                timeout_seconds=900,
                retries=1,
                dependencies=["compatibility"],
            ),
            Validator(
                id="regression",
                name="Regression Validator",
                description="Validates no regressions introduced",
                type=ValidatorType.REGRESSION,
                priority=5,
                timeout_seconds=1200,
                retries=1,
                dependencies=["functionality"],
            ),
        ],
        execution_order=["compatibility", "security", "performance", "functionality", "regression"],
        parallel=False,
        fail_fast=True,
        retry_policy=RetryPolicy(
            max_retries=2,
            backoff_strategy=BackoffStrategy.EXPONENTIAL,
            base_delay_seconds=1.0,
            max_delay_seconds=30.0,
            retryable_errors=["timeout", "network", "temporary"],
        ),
    )


def fast_pipeline() -> ValidationPipeline:
    """Two quick checks run concurrently, for low-risk features."""
    return ValidationPipeline(
        id="fast",
        name="Fast Validation",
        description="Quick validation for low-risk features",
        validators=[
            Validator(
                id="compatibility-fast",
                name="Fast Compatibility Check",
                description="Quick compatibility validation",
                type=ValidatorType.COMPATIBILITY,
                priority=1,
                timeout_seconds=60,
                retries=1,
                config={"quick": True},
            ),
            Validator(
                id="functionality-fast",
                name="Fast Functionality Check",
                description="Quick functionality validation",
                type=ValidatorType.FUNCTIONALITY,
                priority=2,
                timeout_seconds=120,
                retries=1,
                config={"quick": True},
            ),
        ],
        execution_order=["compatibility-fast", "functionality-fast"],
        parallel=True,
        fail_fast=False,
        retry_policy=RetryPolicy(
            max_retries=1,
            backoff_strategy=BackoffStrategy.FIXED,
            base_delay_seconds=5.0,
            max_delay_seconds=5.0,
            retryable_errors=["timeout"],
        ),
    )


def default_pipelines() -> list[ValidationPipeline]:
    return [comprehensive_pipeline(), fast_pipeline()]
