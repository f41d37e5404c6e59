"""Built-in monitoring configuration used when none is configured."""

from __future__ import annotations

from gatehouse.core.monitoring.models import (
    AlertAction,
    AlertActionType,
    AlertCondition,
    AlertConfiguration,
    AlertRuleType,
    ComparisonOperator,
    MonitoringConfiguration,
    MonitoringTarget,
    Severity,
    TargetType,
)

DEFAULT_MONITORING_ID = "default-monitoring"


def default_monitoring_configuration() -> MonitoringConfiguration:
    return MonitoringConfiguration(
        id=DEFAULT_MONITORING_ID,
        name="Default Monitoring",
        description="Test suite and validation pipeline health",
        interval_seconds=300,
        targets=[
            MonitoringTarget(
                id="test-suites",
                name="Test Suites",
                type=TargetType.TEST_SUITE,
                priority=1,
                parameters={"path": "reports/test-results.json"},
            ),
            MonitoringTarget(
                id="validation-pipelines",
                name="Validation Pipelines",
                type=TargetType.VALIDATION_PIPELINE,
                priority=2,
            ),
        ],
        alerts=[
            AlertConfiguration(
                id="test-failure-alert",
                name="Test Failure Alert",
                description="Alert when test pass rate drops below threshold",
                type=AlertRuleType.THRESHOLD,
                condition=AlertCondition(
                    metric="pass_rate", operator=ComparisonOperator.LT, value=90
                ),
                severity=Severity.WARNING,
                cooldown_seconds=300,
                max_alerts=5,
                actions=[AlertAction(type=AlertActionType.LOG)],
            )
        ],
    )
