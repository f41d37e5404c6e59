"""
Validator checks — one async function per ValidatorType.

A check receives the Validator definition, the Feature under test and an
optional IntegrationContext carrying evidence gathered while integrating
the feature (compatibility findings, performance deltas, test results,
before/after metrics).  Without evidence each check reports its baseline
score.  Checks may raise ValidatorFault to signal a retryable condition.

The runner resolves checks through a CheckRegistry::

    registry = get_default_registry()
    registry.register(ValidatorType.ACCESSIBILITY, my_accessibility_check)
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Literal

from pydantic import BaseModel, Field

from gatehouse.core.planning.models import Feature
from gatehouse.core.regression.detector import (
    RegressionSeverity,
    RegressionThresholds,
    detect_regressions,
)
from gatehouse.core.validation.models import (
    CheckResult,
    IssueSeverity,
    ValidationIssue,
    Validator,
    ValidatorType,
)

# ---------------------------------------------------------------------------
# Evidence
# ---------------------------------------------------------------------------

CompatibilityArea = Literal["api", "database", "ui", "white-label"]


class CompatibilityFinding(BaseModel):
    area: CompatibilityArea
    message: str
    severity: IssueSeverity = IssueSeverity.MEDIUM


class SecurityFinding(BaseModel):
    message: str
    severity: IssueSeverity = IssueSeverity.MEDIUM


class SuiteResult(BaseModel):
    total: int = Field(ge=0)
    passed: int = Field(ge=0)


class IntegrationContext(BaseModel):
    """Evidence available to checks.  Every field is optional."""

    compatibility: list[CompatibilityFinding] = Field(default_factory=list)
    security: list[SecurityFinding] = Field(default_factory=list)
    # metric name → percentage change observed after integration
    performance_change: dict[str, float] = Field(default_factory=dict)
    tests: SuiteResult | None = None
    baseline_metrics: dict[str, float] = Field(default_factory=dict)
    current_metrics: dict[str, float] = Field(default_factory=dict)


CheckFn = Callable[[Validator, Feature, IntegrationContext], Awaitable[CheckResult]]


# ---------------------------------------------------------------------------
# Built-in checks
# ---------------------------------------------------------------------------

_COMPATIBILITY_PENALTY: dict[str, float] = {
    "api": 5,
    "database": 10,
    "ui": 3,
    "white-label": 8,
}

_SECURITY_PENALTY: dict[IssueSeverity, float] = {
    IssueSeverity.LOW: 5,
    IssueSeverity.MEDIUM: 10,
    IssueSeverity.HIGH: 20,
    IssueSeverity.CRITICAL: 40,
}

_REGRESSION_PENALTY: dict[RegressionSeverity, float] = {
    RegressionSeverity.MEDIUM: 5,
    RegressionSeverity.HIGH: 15,
    RegressionSeverity.CRITICAL: 25,
}

_REGRESSION_ISSUE_SEVERITY: dict[RegressionSeverity, IssueSeverity] = {
    RegressionSeverity.MEDIUM: IssueSeverity.MEDIUM,
    RegressionSeverity.HIGH: IssueSeverity.HIGH,
    RegressionSeverity.CRITICAL: IssueSeverity.CRITICAL,
}


def _has_critical(issues: list[ValidationIssue]) -> bool:
    return any(i.severity == IssueSeverity.CRITICAL for i in issues)


async def check_compatibility(
    validator: Validator, feature: Feature, context: IntegrationContext
) -> CheckResult:
    areas: tuple[str, ...] = ("api", "database", "ui", "white-label")
    if validator.config.get("quick"):
        areas = ("api",)

    score = 100.0
    issues: list[ValidationIssue] = []
    for finding in context.compatibility:
        if finding.area not in areas:
            continue
        score -= _COMPATIBILITY_PENALTY[finding.area]
        issues.append(
            ValidationIssue(
                type=f"{finding.area}_compatibility",
                severity=finding.severity,
                message=finding.message,
            )
        )

    recommendations: list[str] = []
    if issues:
        recommendations.append("Resolve compatibility issues before integration")
    score = max(0.0, score)
    return CheckResult(
        passed=score >= 80 and not _has_critical(issues),
        score=score,
        issues=issues,
        recommendations=recommendations,
    )


async def check_performance(
    validator: Validator, feature: Feature, context: IntegrationContext
) -> CheckResult:
    score = 100.0
    issues: list[ValidationIssue] = []
    recommendations: list[str] = []

    load_time = context.performance_change.get("load_time")
    if load_time is not None and load_time > 10:
        issues.append(
            ValidationIssue(
                type="performance_regression",
                severity=IssueSeverity.HIGH,
                message=f"Load time increased by {load_time}%",
            )
        )
        recommendations.append("Profile the feature's critical rendering path")
        score -= 20

    bundle_size = context.performance_change.get("bundle_size")
    if bundle_size is not None and bundle_size > 15:
        issues.append(
            ValidationIssue(
                type="bundle_size",
                severity=IssueSeverity.MEDIUM,
                message=f"Bundle size increased by {bundle_size}%",
            )
        )
        recommendations.append("Split or lazy-load the feature's bundle")
        score -= 10

    score = max(0.0, score)
    return CheckResult(
        passed=score >= 80,
        score=score,
        issues=issues,
        recommendations=recommendations,
    )


async def check_security(
    validator: Validator, feature: Feature, context: IntegrationContext
) -> CheckResult:
    score = 95.0
    issues: list[ValidationIssue] = []
    for finding in context.security:
        score -= _SECURITY_PENALTY[finding.severity]
        issues.append(
            ValidationIssue(type="security", severity=finding.severity, message=finding.message)
        )
    score = max(0.0, score)
    recommendations = ["Address security findings before release"] if issues else []
    return CheckResult(
        passed=score >= 80 and not _has_critical(issues),
        score=score,
        issues=issues,
        recommendations=recommendations,
    )


async def check_functionality(
    validator: Validator, feature: Feature, context: IntegrationContext
) -> CheckResult:
    tests = context.tests
    if tests is None or tests.total == 0:
        return CheckResult(passed=True, score=90.0)

    score = round(min(tests.passed, tests.total) / tests.total * 100, 2)
    issues: list[ValidationIssue] = []
    failed = tests.total - min(tests.passed, tests.total)
    if failed:
        issues.append(
            ValidationIssue(
                type="test_failures",
                severity=IssueSeverity.HIGH if score < 80 else IssueSeverity.MEDIUM,
                message=f"{failed} of {tests.total} tests failed",
            )
        )
    return CheckResult(
        passed=score >= 80,
        score=score,
        issues=issues,
        recommendations=["Fix failing tests"] if failed else [],
        data={"tests_total": tests.total, "tests_passed": tests.passed},
    )


async def check_regression(
    validator: Validator, feature: Feature, context: IntegrationContext
) -> CheckResult:
    if not context.baseline_metrics or not context.current_metrics:
        return CheckResult(passed=True, score=88.0)

    thresholds = RegressionThresholds.model_validate(validator.config.get("thresholds", {}))
    regressions = detect_regressions(context.baseline_metrics, context.current_metrics, thresholds)
    score = 100.0
    issues: list[ValidationIssue] = []
    for reg in regressions:
        score -= _REGRESSION_PENALTY[reg.severity]
        issues.append(
            ValidationIssue(
                type="performance_regression",
                severity=_REGRESSION_ISSUE_SEVERITY[reg.severity],
                message=reg.description,
                details=reg.to_dict(),
            )
        )
    score = max(0.0, score)
    return CheckResult(
        passed=score >= 80 and not _has_critical(issues),
        score=score,
        issues=issues,
        recommendations=["Investigate metric regressions"] if issues else [],
        data={"regressions": len(regressions)},
    )


async def check_white_label(
    validator: Validator, feature: Feature, context: IntegrationContext
) -> CheckResult:
    score = 92.0
    issues = [
        ValidationIssue(
            type="white-label_compatibility", severity=f.severity, message=f.message
        )
        for f in context.compatibility
        if f.area == "white-label"
    ]
    score = max(0.0, score - 8 * len(issues))
    return CheckResult(
        passed=score >= 80 and not _has_critical(issues),
        score=score,
        issues=issues,
        recommendations=["Verify tenant branding overrides"] if issues else [],
    )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class CheckRegistry:
    """Dispatch table from ValidatorType to check function."""

    def __init__(self) -> None:
        self._checks: dict[ValidatorType, CheckFn] = {}

    def register(self, validator_type: ValidatorType, check: CheckFn) -> None:
        self._checks[ValidatorType(validator_type)] = check

    def get(self, validator_type: ValidatorType) -> CheckFn | None:
        return self._checks.get(validator_type)

    def types(self) -> list[ValidatorType]:
        return list(self._checks)

    def __contains__(self, validator_type: Any) -> bool:
        return validator_type in self._checks


def get_default_registry() -> CheckRegistry:
    """Create a CheckRegistry with every built-in check registered."""
    registry = CheckRegistry()
    registry.register(ValidatorType.COMPATIBILITY, check_compatibility)
    registry.register(ValidatorType.PERFORMANCE, check_performance)
    registry.register(ValidatorType.SECURITY, check_security)
    registry.register(ValidatorType.FUNCTIONALITY, check_functionality)
    registry.register(ValidatorType.REGRESSION, check_regression)
    registry.register(ValidatorType.WHITE_LABEL, check_white_label)
    return registry
