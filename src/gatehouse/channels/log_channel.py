"""LogChannel — writes alerts to the structured log."""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from gatehouse.channels.base import AlertChannel
from gatehouse.core.monitoring.models import Alert, AlertAction, AlertActionType, Severity

logger = structlog.get_logger()

_LEVELS = {
    Severity.INFO: "info",
    Severity.WARNING: "warning",
    Severity.ERROR: "error",
    Severity.CRITICAL: "critical",
}


class LogChannel(AlertChannel):
    action_type = AlertActionType.LOG
    channel_name = "log"

    async def send(
        self,
        alert: Alert,
        action: AlertAction,
        recipients: Sequence[str] = (),
    ) -> None:
        level = action.configuration.get("level") or _LEVELS[alert.severity]
        emit = getattr(logger, level, logger.warning)
        emit(
            "alert_raised",
            alert_id=alert.id,
            rule_id=alert.rule_id,
            config_id=alert.configuration_id,
            severity=alert.severity.value,
            title=alert.title,
            message=alert.message,
            escalation_level=alert.escalation_level,
            recipients=list(recipients) or None,
        )
