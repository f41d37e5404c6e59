"""
MonitoringService — periodic polling of monitoring configurations.

Each registered configuration is either stopped or running.  Running means
one asyncio.Task that sleeps ``interval_seconds`` and then ticks, forever:

    stopped ──start()──▶ running ──stop()──▶ stopped

``stop()`` cancels the task and waits for it, so no tick fires after it
returns.  A tick interrupted by ``stop()`` keeps its partial results and is
marked ``cancelled``.

One tick (``tick()``) produces a MonitoringExecution:

  1. every enabled target is collected (bounded by its timeout)
  2. numeric metrics are checked against the threshold bands
  3. each metric's recent history is trend-analysed
  4. trend monitors receive the new samples
  5. alert rules are evaluated and their actions dispatched
  6. due escalations are processed
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import structlog

from gatehouse.core.exceptions import ConfigurationNotFoundError, ExecutionNotFoundError
from gatehouse.core.monitoring.alerts import AlertManager, Clock
from gatehouse.core.monitoring.collectors import (
    CollectorRegistry,
    extract_metrics,
    get_default_collectors,
)
from gatehouse.core.monitoring.models import (
    SEVERITY_ORDER,
    AlertStatus,
    MonitoringConfiguration,
    MonitoringExecution,
    MonitoringExecutionStatus,
    MonitoringIssue,
    MonitoringResult,
    MonitoringState,
    MonitoringTarget,
    Severity,
    TargetStatus,
)
from gatehouse.core.monitoring.trends import TrendMonitor, TrendThresholds
from gatehouse.core.regression.trend import TrendAnalysisResult, analyze_trend
from gatehouse.core.store.registry import EngineStore
from gatehouse.core.validation.models import ExecutionStatus, ValidationExecution

if TYPE_CHECKING:
    from gatehouse.channels.registry import ChannelRegistry

logger = structlog.get_logger()

_STATUS_FOR_SEVERITY: dict[Severity, TargetStatus] = {
    Severity.INFO: TargetStatus.SUCCESS,
    Severity.WARNING: TargetStatus.WARNING,
    Severity.ERROR: TargetStatus.ERROR,
    Severity.CRITICAL: TargetStatus.CRITICAL,
}

_EXECUTION_METRICS: dict[str, Callable[[ValidationExecution], float | None]] = {
    "overall_score": lambda e: float(e.overall_score),
    "pass_rate": lambda e: 100.0 if e.passed else 0.0,
    "issue_count": lambda e: float(len(e.issues)),
    "duration_seconds": lambda e: (
        (e.ended_at - e.started_at).total_seconds() if e.ended_at else None
    ),
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


def history_key(config_id: str, target_id: str) -> str:
    return f"{config_id}:{target_id}"


class MonitoringService:
    def __init__(
        self,
        store: EngineStore | None = None,
        collectors: CollectorRegistry | None = None,
        channels: ChannelRegistry | None = None,
        clock: Clock | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._store = store or EngineStore()
        self._collectors = collectors or get_default_collectors(self._store)
        self._clock = clock or _utcnow
        self._sleep = sleep
        self.alerts = AlertManager(self._store, channels, self._clock)
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._last_execution: dict[str, datetime] = {}
        self._next_execution: dict[str, datetime] = {}

    @property
    def store(self) -> EngineStore:
        return self._store

    # ------------------------------------------------------------------
    # Configurations
    # ------------------------------------------------------------------

    def register(self, config: MonitoringConfiguration) -> None:
        self._store.monitoring_configs.put(config.id, config)
        logger.info(
            "monitoring_config_registered",
            config_id=config.id,
            targets=len(config.targets),
            rules=len(config.alerts),
        )

    def get_configuration(self, config_id: str) -> MonitoringConfiguration:
        config = self._store.monitoring_configs.get(config_id)
        if config is None:
            raise ConfigurationNotFoundError(f"Unknown monitoring configuration {config_id!r}")
        return config

    def list_configurations(self) -> list[MonitoringConfiguration]:
        return self._store.monitoring_configs.values()

    async def remove(self, config_id: str) -> None:
        self.get_configuration(config_id)
        await self.stop(config_id)
        self._store.monitoring_configs.remove(config_id)
        self.alerts.forget(config_id)
        self._last_execution.pop(config_id, None)
        logger.info("monitoring_config_removed", config_id=config_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def is_running(self, config_id: str) -> bool:
        task = self._tasks.get(config_id)
        return task is not None and not task.done()

    async def start(self, config_id: str) -> bool:
        """Arm the interval timer.  Returns False if already running or disabled."""
        config = self.get_configuration(config_id)
        if self.is_running(config_id):
            return False
        if not config.enabled:
            logger.warning("monitoring_config_disabled", config_id=config_id)
            return False
        self._tasks[config_id] = asyncio.create_task(
            self._loop(config_id), name=f"monitoring:{config_id}"
        )
        logger.info("monitoring_started", config_id=config_id, interval=config.interval_seconds)
        return True

    async def stop(self, config_id: str) -> bool:
        """Cancel the timer and wait for it.  Returns False if it was not running."""
        task = self._tasks.pop(config_id, None)
        self._next_execution.pop(config_id, None)
        if task is None:
            return False
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("monitoring_stopped", config_id=config_id)
        return True

    async def stop_all(self) -> None:
        for config_id in list(self._tasks):
            await self.stop(config_id)

    async def _loop(self, config_id: str) -> None:
        while True:
            config = self.get_configuration(config_id)
            self._next_execution[config_id] = self._clock() + timedelta(
                seconds=config.interval_seconds
            )
            await self._sleep(config.interval_seconds)
            try:
                await self.tick(config_id)
            except ConfigurationNotFoundError:
                logger.warning("monitoring_config_vanished", config_id=config_id)
                return
            except Exception as exc:  # noqa: BLE001
                logger.error("monitoring_tick_failed", config_id=config_id, error=str(exc))

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    async def tick(self, config_id: str) -> MonitoringExecution:
        """Run one monitoring pass over *config_id*'s targets."""
        config = self.get_configuration(config_id)
        execution = MonitoringExecution(configuration_id=config.id, started_at=self._clock())
        targets = [t for t in config.targets if t.enabled]
        execution.summary.total_targets = len(targets)
        self._store.monitoring_executions.put(execution.id, execution)
        self._last_execution[config.id] = execution.started_at
        log = logger.bind(config_id=config.id, execution_id=execution.id)
        log.info("monitoring_tick_started", targets=len(targets))

        try:
            for index, target in enumerate(targets):
                execution.current_target = target.id
                result = await self._monitor_target(config, target)
                execution.record_result(result)
                execution.progress = (index + 1) / len(targets) * 100
                if result.status != TargetStatus.SUCCESS:
                    execution.log(
                        "warn",
                        f"{result.target_name}: {result.status.value}",
                        source=target.id,
                        at=self._clock(),
                    )

                self._feed_trend_monitors(result)

                history = self._store.metric_history.entries(history_key(config.id, target.id))
                raised = self.alerts.evaluate(config, result, history)
                if raised:
                    execution.record_alerts(raised)
                    await self.alerts.dispatch(config, raised)

            await self.alerts.escalate_due(config, self._clock())
        except asyncio.CancelledError:
            execution.finish(MonitoringExecutionStatus.CANCELLED, self._clock())
            execution.log("warn", "Monitoring tick cancelled", at=self._clock())
            log.info("monitoring_tick_cancelled", completed_targets=len(execution.results))
            raise
        except Exception as exc:  # noqa: BLE001
            execution.error = str(exc)
            execution.finish(MonitoringExecutionStatus.FAILED, self._clock())
            execution.log("error", f"Monitoring tick failed: {exc}", at=self._clock())
            log.error("monitoring_tick_error", error=str(exc))
            return execution

        execution.finish(MonitoringExecutionStatus.COMPLETED, self._clock())
        log.info(
            "monitoring_tick_completed",
            successful=execution.summary.successful_targets,
            warnings=execution.summary.warning_targets,
            failed=execution.summary.failed_targets,
            alerts=execution.summary.total_alerts,
        )
        return execution

    async def _monitor_target(
        self, config: MonitoringConfiguration, target: MonitoringTarget
    ) -> MonitoringResult:
        timestamp = self._clock()
        start = time.monotonic()
        result = MonitoringResult(
            target_id=target.id,
            target_name=target.display_name,
            status=TargetStatus.SUCCESS,
            timestamp=timestamp,
        )

        collector = self._collectors.get(target.type)
        fault: MonitoringIssue | None = None
        if collector is None:
            fault = self._fault_issue(
                Severity.ERROR, f"No collector registered for target type {target.type}", timestamp
            )
        else:
            try:
                async with asyncio.timeout(target.timeout_seconds):
                    output = await collector(target)
                result.metrics = extract_metrics(output.metrics)
                result.data = dict(output.raw)
            except TimeoutError:
                fault = self._fault_issue(
                    Severity.CRITICAL,
                    f"Collector timed out after {target.timeout_seconds}s",
                    timestamp,
                )
            except Exception as exc:  # noqa: BLE001
                fault = self._fault_issue(Severity.ERROR, f"Collector failed: {exc}", timestamp)
        result.duration_seconds = time.monotonic() - start

        if fault is not None:
            logger.warning(
                "monitoring_collector_failed",
                config_id=config.id,
                target_id=target.id,
                error=fault.message,
            )
            result.issues.append(fault)
            result.status = TargetStatus.ERROR
            return result

        key = history_key(config.id, target.id)
        self._store.metric_history.append(key, timestamp, result.metrics)

        for metric, value in result.metrics.items():
            band = config.thresholds.get(metric)
            if band is not None:
                severity = band.breach(value)
                if severity is not None:
                    bound = band.critical if severity == Severity.CRITICAL else band.warning
                    result.issues.append(
                        MonitoringIssue(
                            type="threshold_breach",
                            severity=severity,
                            message=(
                                f"{metric} {value:g} is {band.direction} the "
                                f"{severity.value} threshold {bound:g}"
                            ),
                            details={"metric": metric, "value": value, "threshold": bound},
                            first_seen=timestamp,
                            last_seen=timestamp,
                        )
                    )

            series = self._store.metric_history.values(key, metric)
            if len(series) >= 2:
                higher_is_better = band.higher_is_better if band is not None else True
                result.trends[metric] = analyze_trend(series, higher_is_better=higher_is_better)

        if result.issues:
            worst = max((i.severity for i in result.issues), key=SEVERITY_ORDER.__getitem__)
            result.status = _STATUS_FOR_SEVERITY[worst]
        return result

    @staticmethod
    def _fault_issue(severity: Severity, message: str, at: datetime) -> MonitoringIssue:
        return MonitoringIssue(
            type="monitoring_error",
            severity=severity,
            message=message,
            first_seen=at,
            last_seen=at,
        )

    # ------------------------------------------------------------------
    # Trend monitors
    # ------------------------------------------------------------------

    def add_trend_monitor(
        self,
        metric: str,
        time_window_seconds: float,
        *,
        higher_is_better: bool = True,
        thresholds: TrendThresholds | None = None,
    ) -> TrendMonitor:
        monitor = TrendMonitor(
            metric=metric,
            time_window_seconds=time_window_seconds,
            higher_is_better=higher_is_better,
            thresholds=thresholds or TrendThresholds(),
        )
        self._store.trend_monitors.put(monitor.id, monitor)
        logger.info("trend_monitor_added", monitor_id=monitor.id, metric=metric)
        return monitor

    def get_trend_monitor(self, monitor_id: str) -> TrendMonitor | None:
        return self._store.trend_monitors.get(monitor_id)

    def list_trend_monitors(self) -> list[TrendMonitor]:
        return self._store.trend_monitors.values()

    def _feed_trend_monitors(self, result: MonitoringResult) -> None:
        for metric, value in result.metrics.items():
            for monitor in self._store.trend_monitors.filter(lambda m: m.metric == metric):
                monitor.add_sample(result.timestamp, value)
                for alert in monitor.alerts:
                    logger.info(
                        "trend_alert",
                        monitor_id=monitor.id,
                        metric=metric,
                        type=alert.type.value,
                        severity=alert.severity.value,
                    )

    def validation_trends(
        self,
        metrics: Iterable[str],
        start: datetime,
        end: datetime,
    ) -> dict[str, TrendAnalysisResult]:
        """Trend of finished validation executions started within [start, end]."""

        def in_range(e: ValidationExecution) -> bool:
            if e.status not in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED):
                return False
            return start <= e.started_at <= end

        executions = sorted(self._store.executions.filter(in_range), key=lambda e: e.started_at)
        trends: dict[str, TrendAnalysisResult] = {}
        for metric in metrics:
            extract = _EXECUTION_METRICS.get(metric)
            if extract is None:
                logger.warning("validation_trend_unknown_metric", metric=metric)
                trends[metric] = TrendAnalysisResult()
                continue
            values = [v for v in (extract(e) for e in executions) if v is not None]
            trends[metric] = analyze_trend(values, higher_is_better=metric != "issue_count")
        return trends

    # ------------------------------------------------------------------
    # Status & executions
    # ------------------------------------------------------------------

    def status(self, config_id: str) -> dict[str, Any]:
        self.get_configuration(config_id)
        running = self.is_running(config_id)
        last = self._last_execution.get(config_id)
        nxt = self._next_execution.get(config_id) if running else None
        open_alerts = len(self.alerts.list_alerts(config_id=config_id, status=AlertStatus.OPEN))
        return {
            "config_id": config_id,
            "active": running,
            "state": (MonitoringState.RUNNING if running else MonitoringState.STOPPED).value,
            "last_execution": last.isoformat() if last else None,
            "next_execution": nxt.isoformat() if nxt else None,
            "open_alerts": open_alerts,
        }

    def get_execution(self, execution_id: str) -> MonitoringExecution:
        execution = self._store.monitoring_executions.get(execution_id)
        if execution is None:
            raise ExecutionNotFoundError(f"Unknown monitoring execution {execution_id!r}")
        return execution

    def list_executions(self, config_id: str | None = None) -> list[MonitoringExecution]:
        executions = self._store.monitoring_executions.filter(
            lambda e: config_id is None or e.configuration_id == config_id
        )
        return sorted(executions, key=lambda e: e.started_at)

    def apply_retention(self, config_id: str, now: datetime | None = None) -> dict[str, int]:
        """Prune records of *config_id* that outlived its RetentionPolicy."""
        config = self.get_configuration(config_id)
        policy = config.retention
        now = now or self._clock()

        reports_cutoff = now - timedelta(days=policy.reports_days)
        reports = self._store.monitoring_executions.prune(
            lambda e: e.configuration_id == config_id
            and e.status != MonitoringExecutionStatus.RUNNING
            and e.started_at < reports_cutoff
        )

        logs_cutoff = now - timedelta(days=policy.logs_days)
        logs = 0
        for execution in self.list_executions(config_id):
            kept = [entry for entry in execution.logs if entry.timestamp >= logs_cutoff]
            logs += len(execution.logs) - len(kept)
            execution.logs = kept

        alerts_cutoff = now - timedelta(days=policy.alerts_days)
        alerts = self._store.alerts.prune(
            lambda a: a.configuration_id == config_id
            and a.status == AlertStatus.RESOLVED
            and a.resolved_at is not None
            and a.resolved_at < alerts_cutoff
        )

        metrics = self._store.metric_history.prune_before(
            now - timedelta(days=policy.metrics_days), prefix=f"{config_id}:"
        )

        pruned = {"reports": reports, "logs": logs, "alerts": alerts, "metrics": metrics}
        logger.info("monitoring_retention_applied", config_id=config_id, **pruned)
        return pruned
