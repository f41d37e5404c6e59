"""Unit tests for the built-in validator checks."""

from __future__ import annotations

import pytest

from gatehouse.core.planning.models import Feature
from gatehouse.core.validation.checks import (
    CompatibilityFinding,
    IntegrationContext,
    SecurityFinding,
    SuiteResult,
    check_compatibility,
    check_functionality,
    check_performance,
    check_regression,
    check_security,
    check_white_label,
    get_default_registry,
)
from gatehouse.core.validation.models import IssueSeverity, Validator, ValidatorType

FEATURE = Feature(
    id="feat-1", title="Feature one", business_value=80, technical_value=70, estimated_hours=20
)


def _validator(vtype: ValidatorType, **config) -> Validator:
    return Validator(id=vtype.value, type=vtype, config=config)


class TestBaselines:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("check", "vtype", "score"),
        [
            (check_compatibility, ValidatorType.COMPATIBILITY, 100),
            (check_performance, ValidatorType.PERFORMANCE, 100),
            (check_security, ValidatorType.SECURITY, 95),
            (check_functionality, ValidatorType.FUNCTIONALITY, 90),
            (check_regression, ValidatorType.REGRESSION, 88),
            (check_white_label, ValidatorType.WHITE_LABEL, 92),
        ],
    )
    async def test_no_evidence(self, check, vtype: ValidatorType, score: float) -> None:
        result = await check(_validator(vtype), FEATURE, IntegrationContext())
        assert result.passed
        assert result.score == score
        assert result.issues == []


class TestCompatibility:
    @pytest.mark.asyncio
    async def test_penalties_per_area(self) -> None:
        ctx = IntegrationContext(
            compatibility=[
                CompatibilityFinding(area="api", message="v1 route removed"),
                CompatibilityFinding(area="database", message="column renamed"),
            ]
        )
        result = await check_compatibility(_validator(ValidatorType.COMPATIBILITY), FEATURE, ctx)
        assert result.score == 85
        assert result.passed
        assert [i.type for i in result.issues] == ["api_compatibility", "database_compatibility"]
        assert result.recommendations

    @pytest.mark.asyncio
    async def test_quick_mode_checks_api_only(self) -> None:
        ctx = IntegrationContext(
            compatibility=[CompatibilityFinding(area="database", message="column renamed")]
        )
        validator = _validator(ValidatorType.COMPATIBILITY, quick=True)
        result = await check_compatibility(validator, FEATURE, ctx)
        assert result.score == 100
        assert result.issues == []

    @pytest.mark.asyncio
    async def test_critical_finding_fails(self) -> None:
        ctx = IntegrationContext(
            compatibility=[
                CompatibilityFinding(
                    area="ui", message="layout broken", severity=IssueSeverity.CRITICAL
                )
            ]
        )
        result = await check_compatibility(_validator(ValidatorType.COMPATIBILITY), FEATURE, ctx)
        assert result.score == 97
        assert not result.passed


class TestPerformance:
    @pytest.mark.asyncio
    async def test_load_time_regression(self) -> None:
        ctx = IntegrationContext(performance_change={"load_time": 15})
        result = await check_performance(_validator(ValidatorType.PERFORMANCE), FEATURE, ctx)
        assert result.score == 80
        assert result.passed
        assert result.issues[0].severity == IssueSeverity.HIGH

    @pytest.mark.asyncio
    async def test_load_time_and_bundle_size(self) -> None:
        ctx = IntegrationContext(performance_change={"load_time": 15, "bundle_size": 20})
        result = await check_performance(_validator(ValidatorType.PERFORMANCE), FEATURE, ctx)
        assert result.score == 70
        assert not result.passed
        assert len(result.recommendations) == 2

    @pytest.mark.asyncio
    async def test_small_changes_ignored(self) -> None:
        ctx = IntegrationContext(performance_change={"load_time": 10, "bundle_size": 15})
        result = await check_performance(_validator(ValidatorType.PERFORMANCE), FEATURE, ctx)
        assert result.score == 100


class TestSecurity:
    @pytest.mark.asyncio
    async def test_high_finding_fails(self) -> None:
        ctx = IntegrationContext(
            security=[SecurityFinding(message="token in logs", severity=IssueSeverity.HIGH)]
        )
        result = await check_security(_validator(ValidatorType.SECURITY), FEATURE, ctx)
        assert result.score == 75
        assert not result.passed

    @pytest.mark.asyncio
    async def test_low_finding_passes(self) -> None:
        finding = SecurityFinding(message="verbose header", severity="low")
        ctx = IntegrationContext(security=[finding])
        result = await check_security(_validator(ValidatorType.SECURITY), FEATURE, ctx)
        assert result.score == 90
        assert result.passed


class TestFunctionality:
    @pytest.mark.asyncio
    async def test_pass_rate_scores(self) -> None:
        ctx = IntegrationContext(tests=SuiteResult(total=10, passed=9))
        result = await check_functionality(_validator(ValidatorType.FUNCTIONALITY), FEATURE, ctx)
        assert result.score == 90
        assert result.passed
        assert result.issues[0].severity == IssueSeverity.MEDIUM
        assert result.data == {"tests_total": 10, "tests_passed": 9}

    @pytest.mark.asyncio
    async def test_low_pass_rate_fails(self) -> None:
        ctx = IntegrationContext(tests=SuiteResult(total=10, passed=7))
        result = await check_functionality(_validator(ValidatorType.FUNCTIONALITY), FEATURE, ctx)
        assert result.score == 70
        assert not result.passed
        assert result.issues[0].severity == IssueSeverity.HIGH


class TestRegressionCheck:
    @pytest.mark.asyncio
    async def test_high_regression(self) -> None:
        ctx = IntegrationContext(
            baseline_metrics={"latency_ms": 100}, current_metrics={"latency_ms": 112}
        )
        result = await check_regression(_validator(ValidatorType.REGRESSION), FEATURE, ctx)
        assert result.score == 85
        assert result.passed
        assert result.issues[0].severity == IssueSeverity.HIGH
        assert result.data == {"regressions": 1}

    @pytest.mark.asyncio
    async def test_critical_regression_fails(self) -> None:
        ctx = IntegrationContext(
            baseline_metrics={"latency_ms": 100}, current_metrics={"latency_ms": 130}
        )
        result = await check_regression(_validator(ValidatorType.REGRESSION), FEATURE, ctx)
        assert result.score == 75
        assert not result.passed

    @pytest.mark.asyncio
    async def test_custom_thresholds(self) -> None:
        ctx = IntegrationContext(
            baseline_metrics={"latency_ms": 100}, current_metrics={"latency_ms": 112}
        )
        validator = _validator(
            ValidatorType.REGRESSION,
            thresholds={"report_percent": 15, "high_percent": 20, "critical_percent": 30},
        )
        result = await check_regression(validator, FEATURE, ctx)
        assert result.score == 100
        assert result.issues == []


class TestWhiteLabel:
    @pytest.mark.asyncio
    async def test_finding_penalized(self) -> None:
        ctx = IntegrationContext(
            compatibility=[CompatibilityFinding(area="white-label", message="logo override lost")]
        )
        result = await check_white_label(_validator(ValidatorType.WHITE_LABEL), FEATURE, ctx)
        assert result.score == 84
        assert result.passed


class TestCheckRegistry:
    def test_default_registry_covers_builtin_types(self) -> None:
        registry = get_default_registry()
        for vtype in (
            ValidatorType.COMPATIBILITY,
            ValidatorType.PERFORMANCE,
            ValidatorType.SECURITY,
            ValidatorType.FUNCTIONALITY,
            ValidatorType.REGRESSION,
            ValidatorType.WHITE_LABEL,
        ):
            assert vtype in registry
        assert ValidatorType.ACCESSIBILITY not in registry
        assert registry.get(ValidatorType.UI) is None

    def test_register_custom_check(self) -> None:
        async def accessible(validator, feature, context):
            raise NotImplementedError

        registry = get_default_registry()
        registry.register(ValidatorType.ACCESSIBILITY, accessible)
        assert registry.get(ValidatorType.ACCESSIBILITY) is accessible
