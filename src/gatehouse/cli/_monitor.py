"""gatehouse monitor — run monitoring configurations."""

from __future__ import annotations

import asyncio
import json

import click
from rich.console import Console
from rich.table import Table

from gatehouse.channels.email_channel import EmailChannel
from gatehouse.channels.registry import ChannelRegistry, get_default_channel_registry
from gatehouse.cli._common import fail, load_cli_config
from gatehouse.core.config import GatehouseConfig
from gatehouse.core.constants import ExitCode
from gatehouse.core.monitoring.collectors import get_default_collectors
from gatehouse.core.monitoring.defaults import default_monitoring_configuration
from gatehouse.core.monitoring.models import (
    MonitoringConfiguration,
    MonitoringExecution,
    TargetStatus,
)
from gatehouse.core.monitoring.service import MonitoringService
from gatehouse.core.store.registry import EngineStore

_STATUS_STYLE = {
    TargetStatus.SUCCESS: "green",
    TargetStatus.WARNING: "yellow",
    TargetStatus.ERROR: "red",
    TargetStatus.CRITICAL: "bold red",
}


def build_channels(config: GatehouseConfig) -> ChannelRegistry:
    email = config.channels.email
    email_channel = None
    if email.enabled:
        email_channel = EmailChannel(
            smtp_host=email.smtp_host,
            smtp_port=email.smtp_port,
            sender=email.sender,
            username=email.username,
            password=email.password.get_secret_value() if email.password else None,
            starttls=email.starttls,
        )
    return get_default_channel_registry(email=email_channel)


def cmd_monitor(
    ctx: click.Context,
    config_ids: tuple[str, ...],
    ticks: int,
    pause: float,
    as_json: bool,
    console: Console,
) -> None:
    config = load_cli_config(ctx)
    configs = config.monitoring or [default_monitoring_configuration()]
    if config_ids:
        known = {c.id for c in configs}
        unknown = sorted(set(config_ids) - known)
        if unknown:
            fail(
                f"Unknown monitoring configuration(s): {', '.join(unknown)}",
                ExitCode.CONFIG_ERROR,
            )
        configs = [c for c in configs if c.id in config_ids]

    channels = build_channels(config)
    try:
        asyncio.run(_run(configs, channels, ticks, pause, as_json, console))
    except KeyboardInterrupt:
        console.print("[dim]Monitoring stopped.[/dim]")


async def _run(
    configs: list[MonitoringConfiguration],
    channels: ChannelRegistry,
    ticks: int,
    pause: float,
    as_json: bool,
    console: Console,
) -> None:
    store = EngineStore()
    collectors = get_default_collectors(store)
    service = MonitoringService(store, collectors, channels)
    for c in configs:
        service.register(c)
    try:
        if ticks:
            for n in range(ticks):
                if n and pause:
                    await asyncio.sleep(pause)
                for c in configs:
                    execution = await service.tick(c.id)
                    _report(execution, as_json, console)
        else:
            for c in configs:
                await service.start(c.id)
                console.print(
                    f"Monitoring [bold]{c.id}[/bold] every {c.interval_seconds:g}s "
                    f"({len(c.targets)} targets). Press Ctrl-C to stop."
                )
            await asyncio.Event().wait()
    finally:
        await service.stop_all()
        await channels.close()
        await collectors.aclose()


def _report(execution: MonitoringExecution, as_json: bool, console: Console) -> None:
    if as_json:
        s = execution.summary
        click.echo(
            json.dumps(
                {
                    "id": execution.id,
                    "configuration_id": execution.configuration_id,
                    "status": execution.status.value,
                    "targets": {
                        r.target_id: {"status": r.status.value, "metrics": r.metrics}
                        for r in execution.results
                    },
                    "alerts": [a.to_dict() for a in execution.alerts],
                    "availability": s.availability,
                    "reliability": s.reliability,
                }
            )
        )
        return

    table = Table(title=f"{execution.configuration_id} · {execution.status.value}")
    table.add_column("Target")
    table.add_column("Status")
    table.add_column("Metrics")
    table.add_column("Issues")
    for r in execution.results:
        style = _STATUS_STYLE[r.status]
        metrics = ", ".join(f"{k}={v:g}" for k, v in r.metrics.items()) or "-"
        issues = "; ".join(i.message for i in r.issues) or "-"
        table.add_row(r.target_name, f"[{style}]{r.status.value}[/{style}]", metrics, issues)
    console.print(table)
    for alert in execution.alerts:
        console.print(f"  [yellow]alert[/yellow] [{alert.severity.value}] {alert.message}")
