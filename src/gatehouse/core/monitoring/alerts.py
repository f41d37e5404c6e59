"""
AlertManager — raises, dispatches, escalates and tracks alerts.

Firing rules for one AlertConfiguration (a "rule") on one monitoring
configuration:

  - the rule's condition must hold for the target's metric snapshot
  - the rule last fired at least ``cooldown_seconds`` ago
  - fewer than ``max_alerts`` of the rule's alerts are open or acknowledged
  - none of the rule's alerts is suppressed with ``suppressed_until`` ahead

Actions are dispatched concurrently through the channel registry.  A failed
delivery is logged and never changes the alert's state.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

from gatehouse.core.exceptions import AlertNotFoundError
from gatehouse.core.monitoring.conditions import evaluate_condition
from gatehouse.core.monitoring.models import (
    Alert,
    AlertAction,
    AlertConfiguration,
    AlertStatus,
    MonitoringConfiguration,
    MonitoringResult,
    Severity,
)
from gatehouse.core.store.registry import EngineStore

if TYPE_CHECKING:
    from gatehouse.channels.registry import ChannelRegistry

logger = structlog.get_logger()

Clock = Callable[[], datetime]

# (alert, action, recipients)
_Delivery = tuple[Alert, AlertAction, Sequence[str]]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AlertManager:
    def __init__(
        self,
        store: EngineStore,
        channels: ChannelRegistry | None = None,
        clock: Clock | None = None,
    ) -> None:
        if channels is None:
            from gatehouse.channels.registry import get_default_channel_registry

            channels = get_default_channel_registry()
        self._store = store
        self._channels = channels
        self._clock = clock or _utcnow
        self._last_fired: dict[tuple[str, str], datetime] = {}

    @property
    def channels(self) -> ChannelRegistry:
        return self._channels

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _rule_alerts(self, config_id: str, rule_id: str) -> list[Alert]:
        return self._store.alerts.filter(
            lambda a: a.configuration_id == config_id and a.rule_id == rule_id
        )

    def _silenced_by(
        self, config: MonitoringConfiguration, rule: AlertConfiguration, now: datetime
    ) -> str | None:
        """Why *rule* may not fire right now, or None if it may."""
        existing = self._rule_alerts(config.id, rule.id)
        for alert in existing:
            if alert.expire_suppression(now):
                logger.info("alert_suppression_expired", alert_id=alert.id)
        if any(a.status == AlertStatus.SUPPRESSED for a in existing):
            return "suppressed"

        last = self._last_fired.get((config.id, rule.id))
        if last is not None and (now - last).total_seconds() < rule.cooldown_seconds:
            return "cooldown"

        if sum(1 for a in existing if a.is_active) >= rule.max_alerts:
            return "max_alerts"
        return None

    def evaluate(
        self,
        config: MonitoringConfiguration,
        result: MonitoringResult,
        history: Sequence[tuple[datetime, Mapping[str, Any]]] = (),
    ) -> list[Alert]:
        """Raise an alert for every enabled rule that *result* satisfies."""
        now = self._clock()
        raised: list[Alert] = []
        for rule in config.alerts:
            if not rule.enabled:
                continue
            if not evaluate_condition(rule.condition, result.metrics, history, now):
                continue

            reason = self._silenced_by(config, rule, now)
            if reason is not None:
                logger.debug(
                    "alert_silenced",
                    config_id=config.id,
                    rule_id=rule.id,
                    target_id=result.target_id,
                    reason=reason,
                )
                continue

            alert_title = rule.name or rule.id
            alert = Alert(
                configuration_id=config.id,
                rule_id=rule.id,
                type=rule.type,
                severity=rule.severity,
                title=alert_title,
                message=f"{rule.description or alert_title} - Target: {result.target_name}",
                source=result.target_id,
                created_at=now,
                tags=[result.target_name, rule.type.value],
                metadata={
                    "target_id": result.target_id,
                    "target_name": result.target_name,
                    "metrics": dict(result.metrics),
                    "condition": rule.condition.model_dump(mode="json"),
                },
            )
            self._store.alerts.put(alert.id, alert)
            self._last_fired[(config.id, rule.id)] = now
            raised.append(alert)
            logger.info(
                "alert_opened",
                alert_id=alert.id,
                config_id=config.id,
                rule_id=rule.id,
                target_id=result.target_id,
                severity=alert.severity.value,
            )
        return raised

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def _deliver(self, deliveries: list[_Delivery]) -> int:
        """Send every delivery concurrently; returns how many succeeded."""
        sent: list[_Delivery] = []
        coros = []
        for alert, action, recipients in deliveries:
            channel = self._channels.get(action.type)
            if channel is None:
                logger.warning(
                    "alert_action_unsupported", alert_id=alert.id, action=action.type.value
                )
                continue
            sent.append((alert, action, recipients))
            coros.append(channel.guarded_send(alert, action, recipients))

        outcomes = await asyncio.gather(*coros, return_exceptions=True)
        delivered = 0
        for (alert, action, _), outcome in zip(sent, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                logger.warning(
                    "alert_action_failed",
                    alert_id=alert.id,
                    action=action.type.value,
                    error=str(outcome),
                )
            else:
                delivered += 1
        return delivered

    async def dispatch(self, config: MonitoringConfiguration, alerts: Sequence[Alert]) -> int:
        """Run the enabled actions of each alert's rule."""
        deliveries: list[_Delivery] = []
        for alert in alerts:
            rule = config.rule(alert.rule_id)
            if rule is None:
                continue
            deliveries.extend((alert, action, ()) for action in rule.actions if action.enabled)
        if not deliveries:
            return 0
        return await self._deliver(deliveries)

    async def escalate_due(
        self, config: MonitoringConfiguration, now: datetime | None = None
    ) -> list[Alert]:
        """
        Advance unresolved alerts through their rule's escalation levels.

        Each level fires once, after its delay has elapsed since the alert was
        raised, sending the level's actions to the level's recipients.  An
        action type the rule itself configures reuses that configuration.
        """
        now = now or self._clock()
        escalated: list[Alert] = []
        deliveries: list[_Delivery] = []
        active = self._store.alerts.filter(
            lambda a: a.configuration_id == config.id and a.is_active
        )
        for alert in active:
            rule = config.rule(alert.rule_id)
            if rule is None or not rule.escalation.enabled:
                continue
            elapsed = (now - alert.created_at).total_seconds()
            for level in rule.escalation.levels:
                if level.level <= alert.escalation_level:
                    continue
                if elapsed < level.delay_seconds:
                    break
                alert.escalation_level = level.level
                configured = {a.type: a for a in rule.actions}
                for action_type in level.actions:
                    action = configured.get(action_type) or AlertAction(type=action_type)
                    deliveries.append((alert, action, tuple(level.recipients)))
                logger.info(
                    "alert_escalated",
                    alert_id=alert.id,
                    level=level.level,
                    recipients=len(level.recipients),
                )
                if alert not in escalated:
                    escalated.append(alert)
        if deliveries:
            await self._deliver(deliveries)
        return escalated

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def get(self, alert_id: str) -> Alert:
        alert = self._store.alerts.get(alert_id)
        if alert is None:
            raise AlertNotFoundError(f"Unknown alert {alert_id!r}")
        return alert

    def list_alerts(
        self,
        *,
        config_id: str | None = None,
        status: AlertStatus | None = None,
        severity: Severity | None = None,
    ) -> list[Alert]:
        def keep(a: Alert) -> bool:
            if config_id is not None and a.configuration_id != config_id:
                return False
            if status is not None and a.status != status:
                return False
            return severity is None or a.severity == severity

        return sorted(self._store.alerts.filter(keep), key=lambda a: a.created_at)

    def acknowledge(self, alert_id: str, actor: str) -> Alert:
        alert = self.get(alert_id)
        alert.acknowledge(actor, self._clock())
        logger.info("alert_acknowledged", alert_id=alert_id, actor=actor)
        return alert

    def resolve(self, alert_id: str, actor: str, resolution: str | None = None) -> Alert:
        alert = self.get(alert_id)
        alert.resolve(actor, resolution, self._clock())
        logger.info("alert_resolved", alert_id=alert_id, actor=actor)
        return alert

    def suppress(self, alert_id: str, until: datetime) -> Alert:
        alert = self.get(alert_id)
        alert.suppress(until)
        logger.info("alert_suppressed", alert_id=alert_id, until=until.isoformat())
        return alert

    def forget(self, config_id: str) -> None:
        """Drop cooldown bookkeeping for a removed configuration."""
        for key in [k for k in self._last_fired if k[0] == config_id]:
            del self._last_fired[key]
