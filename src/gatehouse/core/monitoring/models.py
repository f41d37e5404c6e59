"""
Monitoring domain models.

Configuration (pydantic): MonitoringConfiguration owns its targets,
threshold bands, alert rules and retention policy.

Runtime (dataclasses): each tick of a configuration produces one
MonitoringExecution holding a MonitoringResult per target.  Alerts follow
their own lifecycle:

    open → acknowledged → resolved
    open | acknowledged → suppressed (until a timestamp) → open

Resolved is terminal.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from gatehouse.core.constants import (
    DEFAULT_COLLECTOR_TIMEOUT_SECONDS,
    DEFAULT_MONITORING_INTERVAL_SECONDS,
)
from gatehouse.core.exceptions import AlertStateError
from gatehouse.core.regression.trend import TrendAnalysisResult


class TargetType(StrEnum):
    TEST_SUITE = "test-suite"
    VALIDATION_PIPELINE = "validation-pipeline"
    INTEGRATION = "integration"
    PERFORMANCE = "performance"
    SECURITY = "security"


class Severity(StrEnum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


SEVERITY_ORDER: dict[Severity, int] = {
    Severity.INFO: 0,
    Severity.WARNING: 1,
    Severity.ERROR: 2,
    Severity.CRITICAL: 3,
}


class TargetStatus(StrEnum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ComparisonOperator(StrEnum):
    GT = "gt"
    LT = "lt"
    EQ = "eq"
    NE = "ne"
    GTE = "gte"
    LTE = "lte"
    CONTAINS = "contains"
    MATCHES = "matches"


class AlertRuleType(StrEnum):
    THRESHOLD = "threshold"
    ANOMALY = "anomaly"
    TREND = "trend"
    PATTERN = "pattern"


class AlertActionType(StrEnum):
    LOG = "log"
    EMAIL = "email"
    SLACK = "slack"
    WEBHOOK = "webhook"
    SMS = "sms"
    TICKET = "ticket"
    ROLLBACK = "rollback"


class AlertStatus(StrEnum):
    OPEN = "open"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"
    SUPPRESSED = "suppressed"


class MonitoringState(StrEnum):
    STOPPED = "stopped"
    RUNNING = "running"


class MonitoringExecutionStatus(StrEnum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class MonitoringTarget(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    name: str = ""
    type: TargetType
    enabled: bool = True
    priority: int = 1
    endpoint: str | None = None
    timeout_seconds: float = Field(default=DEFAULT_COLLECTOR_TIMEOUT_SECONDS, gt=0)
    parameters: dict[str, Any] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name or self.id


class ThresholdBand(BaseModel):
    """
    Warning/critical bounds for one metric.

    ``direction="below"`` flags values under the bounds (pass rates,
    availability); ``"above"`` flags values over them (latency, error rate).
    """

    model_config = ConfigDict(extra="forbid")

    warning: float
    critical: float
    direction: Literal["below", "above"] = "above"

    @model_validator(mode="after")
    def ordered(self) -> ThresholdBand:
        if self.direction == "below" and self.critical > self.warning:
            raise ValueError("critical must be <= warning for a 'below' threshold")
        if self.direction == "above" and self.critical < self.warning:
            raise ValueError("critical must be >= warning for an 'above' threshold")
        return self

    def breach(self, value: float) -> Severity | None:
        if self.direction == "below":
            if value < self.critical:
                return Severity.CRITICAL
            if value < self.warning:
                return Severity.WARNING
            return None
        if value > self.critical:
            return Severity.CRITICAL
        if value > self.warning:
            return Severity.WARNING
        return None

    @property
    def higher_is_better(self) -> bool:
        return self.direction == "below"


def _default_bands() -> dict[str, ThresholdBand]:
    return {
        "pass_rate": ThresholdBand(warning=90, critical=80, direction="below"),
        "validation_score": ThresholdBand(warning=80, critical=70, direction="below"),
        "performance_regression": ThresholdBand(warning=10, critical=20, direction="above"),
        "error_rate": ThresholdBand(warning=0.01, critical=0.05, direction="above"),
        "response_time": ThresholdBand(warning=5000, critical=10000, direction="above"),
        "availability": ThresholdBand(warning=99, critical=95, direction="below"),
    }


class MonitoringThresholds(BaseModel):
    """Threshold bands keyed by metric name."""

    model_config = ConfigDict(extra="forbid")

    bands: dict[str, ThresholdBand] = Field(default_factory=_default_bands)

    def get(self, metric: str) -> ThresholdBand | None:
        return self.bands.get(metric)


class AlertCondition(BaseModel):
    model_config = ConfigDict(extra="forbid")

    metric: str
    operator: ComparisonOperator
    value: float | str
    # Optional aggregation of the metric over the target's recent history
    aggregation: Literal["avg", "min", "max", "sum", "count"] | None = None
    window_seconds: float | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def aggregation_needs_window(self) -> AlertCondition:
        if self.aggregation is not None and self.window_seconds is None:
            raise ValueError("window_seconds is required when aggregation is set")
        return self


class EscalationLevel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: int = Field(ge=1)
    delay_seconds: float = Field(ge=0)
    recipients: list[str] = Field(default_factory=list)
    actions: list[AlertActionType] = Field(default_factory=list)


class EscalationPolicy(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    levels: list[EscalationLevel] = Field(default_factory=list)

    @field_validator("levels")
    @classmethod
    def sort_levels(cls, v: list[EscalationLevel]) -> list[EscalationLevel]:
        return sorted(v, key=lambda lvl: lvl.level)


class AlertAction(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: AlertActionType
    configuration: dict[str, Any] = Field(default_factory=dict)
    enabled: bool = True


class AlertConfiguration(BaseModel):
    """One alert rule."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    name: str = ""
    description: str = ""
    type: AlertRuleType = AlertRuleType.THRESHOLD
    condition: AlertCondition
    severity: Severity = Severity.WARNING
    enabled: bool = True
    cooldown_seconds: float = Field(default=300.0, ge=0)
    max_alerts: int = Field(default=5, ge=1)
    escalation: EscalationPolicy = Field(default_factory=EscalationPolicy)
    actions: list[AlertAction] = Field(default_factory=list)


class RetentionPolicy(BaseModel):
    model_config = ConfigDict(extra="forbid")

    metrics_days: float = Field(default=30, gt=0)
    logs_days: float = Field(default=7, gt=0)
    alerts_days: float = Field(default=90, gt=0)
    reports_days: float = Field(default=30, gt=0)


class MonitoringConfiguration(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    name: str = ""
    description: str = ""
    enabled: bool = True
    interval_seconds: float = Field(default=DEFAULT_MONITORING_INTERVAL_SECONDS, gt=0)
    targets: list[MonitoringTarget] = Field(default_factory=list)
    thresholds: MonitoringThresholds = Field(default_factory=MonitoringThresholds)
    alerts: list[AlertConfiguration] = Field(default_factory=list)
    retention: RetentionPolicy = Field(default_factory=RetentionPolicy)

    def rule(self, rule_id: str) -> AlertConfiguration | None:
        return next((r for r in self.alerts if r.id == rule_id), None)


# ---------------------------------------------------------------------------
# Runtime records
# ---------------------------------------------------------------------------


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class MonitoringIssue:
    type: str
    severity: Severity
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    first_seen: datetime = field(default_factory=_now)
    last_seen: datetime = field(default_factory=_now)
    count: int = 1
    resolved: bool = False


@dataclass
class MonitoringResult:
    target_id: str
    target_name: str
    status: TargetStatus
    timestamp: datetime
    duration_seconds: float = 0.0
    metrics: dict[str, float] = field(default_factory=dict)
    data: dict[str, Any] = field(default_factory=dict)
    issues: list[MonitoringIssue] = field(default_factory=list)
    trends: dict[str, TrendAnalysisResult] = field(default_factory=dict)


@dataclass
class MonitoringSummary:
    total_targets: int = 0
    successful_targets: int = 0
    warning_targets: int = 0
    failed_targets: int = 0
    average_response_time_ms: float = 0.0
    total_alerts: int = 0
    critical_alerts: int = 0
    error_alerts: int = 0
    warning_alerts: int = 0
    info_alerts: int = 0
    availability: float = 0.0
    reliability: float = 0.0


@dataclass
class MonitoringLog:
    timestamp: datetime
    level: str
    source: str
    message: str


@dataclass
class Alert:
    configuration_id: str
    rule_id: str
    type: AlertRuleType
    severity: Severity
    title: str
    message: str
    source: str
    id: str = field(default_factory=lambda: f"alert-{uuid.uuid4().hex[:12]}")
    created_at: datetime = field(default_factory=_now)
    status: AlertStatus = AlertStatus.OPEN
    tags: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    escalation_level: int = 0
    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None
    resolved_by: str | None = None
    resolved_at: datetime | None = None
    suppressed_until: datetime | None = None
    related_alerts: list[str] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def acknowledge(self, actor: str, at: datetime | None = None) -> None:
        if self.status != AlertStatus.OPEN:
            raise AlertStateError(f"Cannot acknowledge alert {self.id} in status {self.status}")
        self.status = AlertStatus.ACKNOWLEDGED
        self.acknowledged_by = actor
        self.acknowledged_at = at or _now()

    def resolve(
        self,
        actor: str,
        resolution: str | None = None,
        at: datetime | None = None,
    ) -> None:
        if self.status == AlertStatus.RESOLVED:
            raise AlertStateError(f"Alert {self.id} is already resolved")
        self.status = AlertStatus.RESOLVED
        self.resolved_by = actor
        self.resolved_at = at or _now()
        self.suppressed_until = None
        if resolution:
            self.metadata["resolution"] = resolution

    def suppress(self, until: datetime) -> None:
        if self.status == AlertStatus.RESOLVED:
            raise AlertStateError(f"Cannot suppress resolved alert {self.id}")
        self.status = AlertStatus.SUPPRESSED
        self.suppressed_until = until

    def expire_suppression(self, now: datetime) -> bool:
        """Reopen a suppressed alert whose window has passed."""
        if self.status != AlertStatus.SUPPRESSED or self.suppressed_until is None:
            return False
        if now < self.suppressed_until:
            return False
        self.status = AlertStatus.OPEN
        self.suppressed_until = None
        return True

    @property
    def is_active(self) -> bool:
        """Unresolved and not suppressed."""
        return self.status in (AlertStatus.OPEN, AlertStatus.ACKNOWLEDGED)

    def to_dict(self) -> dict[str, Any]:
        def _iso(ts: datetime | None) -> str | None:
            return ts.isoformat() if ts else None

        return {
            "id": self.id,
            "configuration_id": self.configuration_id,
            "rule_id": self.rule_id,
            "type": self.type.value,
            "severity": self.severity.value,
            "title": self.title,
            "message": self.message,
            "source": self.source,
            "created_at": self.created_at.isoformat(),
            "status": self.status.value,
            "tags": list(self.tags),
            "escalation_level": self.escalation_level,
            "acknowledged_by": self.acknowledged_by,
            "acknowledged_at": _iso(self.acknowledged_at),
            "resolved_by": self.resolved_by,
            "resolved_at": _iso(self.resolved_at),
            "suppressed_until": _iso(self.suppressed_until),
        }


@dataclass
class MonitoringExecution:
    configuration_id: str
    started_at: datetime
    id: str = field(default_factory=lambda: f"mon-{uuid.uuid4().hex[:12]}")
    status: MonitoringExecutionStatus = MonitoringExecutionStatus.RUNNING
    ended_at: datetime | None = None
    progress: float = 0.0
    current_target: str = ""
    results: list[MonitoringResult] = field(default_factory=list)
    alerts: list[Alert] = field(default_factory=list)
    summary: MonitoringSummary = field(default_factory=MonitoringSummary)
    logs: list[MonitoringLog] = field(default_factory=list)
    error: str | None = None

    def log(
        self,
        level: str,
        message: str,
        source: str = "monitoring",
        at: datetime | None = None,
    ) -> None:
        self.logs.append(MonitoringLog(at or _now(), level, source, message))

    def record_result(self, result: MonitoringResult) -> None:
        """Append *result* and fold it into the running summary."""
        self.results.append(result)
        s = self.summary
        if result.status == TargetStatus.SUCCESS:
            s.successful_targets += 1
        elif result.status == TargetStatus.WARNING:
            s.warning_targets += 1
        else:
            s.failed_targets += 1

        n = len(self.results)
        duration_ms = result.duration_seconds * 1000
        s.average_response_time_ms = (s.average_response_time_ms * (n - 1) + duration_ms) / n
        if s.total_targets:
            s.availability = s.successful_targets / s.total_targets * 100
            s.reliability = (s.successful_targets + s.warning_targets) / s.total_targets * 100

    def record_alerts(self, alerts: list[Alert]) -> None:
        self.alerts.extend(alerts)
        s = self.summary
        for alert in alerts:
            s.total_alerts += 1
            if alert.severity == Severity.CRITICAL:
                s.critical_alerts += 1
            elif alert.severity == Severity.ERROR:
                s.error_alerts += 1
            elif alert.severity == Severity.WARNING:
                s.warning_alerts += 1
            else:
                s.info_alerts += 1

    def finish(self, status: MonitoringExecutionStatus, at: datetime) -> None:
        self.status = status
        self.ended_at = at
        if status == MonitoringExecutionStatus.COMPLETED:
            self.progress = 100.0
        self.current_target = ""
