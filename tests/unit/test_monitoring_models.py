"""Unit tests for monitoring configuration and runtime records."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from gatehouse.core.exceptions import AlertStateError
from gatehouse.core.monitoring.models import (
    Alert,
    AlertRuleType,
    AlertStatus,
    EscalationLevel,
    EscalationPolicy,
    MonitoringExecution,
    MonitoringExecutionStatus,
    MonitoringResult,
    MonitoringThresholds,
    Severity,
    TargetStatus,
    ThresholdBand,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def _alert(severity: Severity = Severity.WARNING) -> Alert:
    return Alert(
        configuration_id="cfg",
        rule_id="rule",
        type=AlertRuleType.THRESHOLD,
        severity=severity,
        title="Low pass rate",
        message="Pass rate below 90 - Target: suite",
        source="suite",
        created_at=NOW,
    )


class TestThresholdBand:
    def test_below_band(self) -> None:
        band = ThresholdBand(warning=90, critical=80, direction="below")
        assert band.breach(95) is None
        assert band.breach(90) is None
        assert band.breach(85) == Severity.WARNING
        assert band.breach(79.9) == Severity.CRITICAL
        assert band.higher_is_better

    def test_above_band(self) -> None:
        band = ThresholdBand(warning=5000, critical=10000)
        assert band.breach(5000) is None
        assert band.breach(7000) == Severity.WARNING
        assert band.breach(12000) == Severity.CRITICAL
        assert not band.higher_is_better

    def test_inverted_bounds_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ThresholdBand(warning=80, critical=90, direction="below")
        with pytest.raises(ValidationError):
            ThresholdBand(warning=10, critical=5, direction="above")

    def test_default_bands(self) -> None:
        thresholds = MonitoringThresholds()
        assert thresholds.get("pass_rate").direction == "below"
        assert thresholds.get("error_rate").critical == 0.05
        assert thresholds.get("unknown") is None


class TestEscalationPolicy:
    def test_levels_sorted(self) -> None:
        policy = EscalationPolicy(
            enabled=True,
            levels=[
                EscalationLevel(level=2, delay_seconds=600),
                EscalationLevel(level=1, delay_seconds=60),
            ],
        )
        assert [lvl.level for lvl in policy.levels] == [1, 2]


class TestAlertLifecycle:
    def test_acknowledge_then_resolve(self) -> None:
        alert = _alert()
        alert.acknowledge("ops", NOW)
        assert alert.status == AlertStatus.ACKNOWLEDGED
        assert alert.acknowledged_by == "ops"
        assert alert.is_active
        alert.resolve("ops", "fixed flaky test", NOW)
        assert alert.status == AlertStatus.RESOLVED
        assert alert.metadata["resolution"] == "fixed flaky test"
        assert not alert.is_active

    def test_acknowledge_requires_open(self) -> None:
        alert = _alert()
        alert.acknowledge("ops")
        with pytest.raises(AlertStateError):
            alert.acknowledge("ops")

    def test_resolved_is_terminal(self) -> None:
        alert = _alert()
        alert.resolve("ops")
        with pytest.raises(AlertStateError):
            alert.resolve("ops")
        with pytest.raises(AlertStateError):
            alert.suppress(NOW + timedelta(hours=1))

    def test_suppression_expires(self) -> None:
        alert = _alert()
        alert.suppress(NOW + timedelta(minutes=10))
        assert alert.status == AlertStatus.SUPPRESSED
        assert not alert.is_active
        assert not alert.expire_suppression(NOW + timedelta(minutes=5))
        assert alert.expire_suppression(NOW + timedelta(minutes=10))
        assert alert.status == AlertStatus.OPEN
        assert alert.suppressed_until is None

    def test_to_dict(self) -> None:
        data = _alert().to_dict()
        assert data["status"] == "open"
        assert data["created_at"] == NOW.isoformat()
        assert data["resolved_at"] is None


class TestExecutionSummary:
    def _result(self, status: TargetStatus, duration: float) -> MonitoringResult:
        return MonitoringResult(
            target_id="t", target_name="t", status=status, timestamp=NOW, duration_seconds=duration
        )

    def test_summary_folds_results(self) -> None:
        execution = MonitoringExecution(configuration_id="cfg", started_at=NOW)
        execution.summary.total_targets = 4
        execution.record_result(self._result(TargetStatus.SUCCESS, 0.1))
        execution.record_result(self._result(TargetStatus.SUCCESS, 0.3))
        execution.record_result(self._result(TargetStatus.WARNING, 0.2))
        execution.record_result(self._result(TargetStatus.CRITICAL, 0.2))

        s = execution.summary
        assert (s.successful_targets, s.warning_targets, s.failed_targets) == (2, 1, 1)
        assert s.average_response_time_ms == pytest.approx(200.0)
        assert s.availability == 50.0
        assert s.reliability == 75.0

    def test_alert_counts(self) -> None:
        execution = MonitoringExecution(configuration_id="cfg", started_at=NOW)
        execution.record_alerts([_alert(Severity.CRITICAL), _alert(), _alert(Severity.INFO)])
        s = execution.summary
        assert s.total_alerts == 3
        assert (s.critical_alerts, s.warning_alerts, s.info_alerts, s.error_alerts) == (1, 1, 1, 0)

    def test_finish(self) -> None:
        execution = MonitoringExecution(configuration_id="cfg", started_at=NOW)
        execution.finish(MonitoringExecutionStatus.COMPLETED, NOW)
        assert execution.progress == 100.0
        assert execution.ended_at == NOW
