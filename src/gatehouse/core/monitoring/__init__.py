"""Periodic target monitoring, alerting and trend tracking."""

from gatehouse.core.monitoring.alerts import AlertManager
from gatehouse.core.monitoring.collectors import (
    CollectorOutput,
    CollectorRegistry,
    HttpHealthCollector,
    PipelineCollector,
    ReportFileCollector,
    get_default_collectors,
)
from gatehouse.core.monitoring.conditions import evaluate_condition
from gatehouse.core.monitoring.defaults import (
    DEFAULT_MONITORING_ID,
    default_monitoring_configuration,
)
from gatehouse.core.monitoring.models import (
    Alert,
    AlertAction,
    AlertActionType,
    AlertCondition,
    AlertConfiguration,
    AlertStatus,
    ComparisonOperator,
    MonitoringConfiguration,
    MonitoringExecution,
    MonitoringResult,
    MonitoringTarget,
    MonitoringThresholds,
    Severity,
    TargetStatus,
    TargetType,
    ThresholdBand,
)
from gatehouse.core.monitoring.service import MonitoringService
from gatehouse.core.monitoring.trends import TrendAlert, TrendMonitor, TrendThresholds

__all__ = [
    "Alert",
    "AlertAction",
    "AlertActionType",
    "AlertCondition",
    "AlertConfiguration",
    "AlertManager",
    "AlertStatus",
    "CollectorOutput",
    "CollectorRegistry",
    "ComparisonOperator",
    "DEFAULT_MONITORING_ID",
    "HttpHealthCollector",
    "MonitoringConfiguration",
    "MonitoringExecution",
    "MonitoringResult",
    "MonitoringService",
    "MonitoringTarget",
    "MonitoringThresholds",
    "PipelineCollector",
    "ReportFileCollector",
    "Severity",
    "TargetStatus",
    "TargetType",
    "ThresholdBand",
    "TrendAlert",
    "TrendMonitor",
    "TrendThresholds",
    "default_monitoring_configuration",
    "evaluate_condition",
    "get_default_collectors",
]
