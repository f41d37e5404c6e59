"""gatehouse regress / trend — compare metric snapshots and analyse series."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.table import Table

from gatehouse.cli._common import fail, load_cli_config, read_json
from gatehouse.core.constants import ExitCode
from gatehouse.core.regression.detector import (
    RegressionSeverity,
    detect_regressions,
    is_number,
)
from gatehouse.core.regression.trend import TrendDirection, analyze_trend

_SEVERITY_RANK = {
    RegressionSeverity.MEDIUM: 1,
    RegressionSeverity.HIGH: 2,
    RegressionSeverity.CRITICAL: 3,
}

_SEVERITY_STYLE = {
    RegressionSeverity.MEDIUM: "yellow",
    RegressionSeverity.HIGH: "red",
    RegressionSeverity.CRITICAL: "bold red",
}


def cmd_regress(
    ctx: click.Context,
    baseline_path: str,
    current_path: str,
    fail_on: str,
    as_json: bool,
    console: Console,
) -> None:
    config = load_cli_config(ctx)
    baseline = read_json(baseline_path)
    current = read_json(current_path)
    if not isinstance(baseline, dict) or not isinstance(current, dict):
        fail("Baseline and current must both be JSON objects of metric → number")

    regressions = detect_regressions(baseline, current, config.regression)

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in regressions], indent=2))
    elif not regressions:
        console.print("[green]No regressions above the reporting threshold.[/green]")
    else:
        table = Table(title="Metric changes")
        table.add_column("Metric")
        table.add_column("Baseline", justify="right")
        table.add_column("Current", justify="right")
        table.add_column("Change", justify="right")
        table.add_column("Severity")
        for r in regressions:
            style = _SEVERITY_STYLE[r.severity]
            table.add_row(
                r.metric,
                f"{r.baseline:g}",
                f"{r.current:g}",
                f"{r.change_percent:+.2f}%",
                f"[{style}]{r.severity.value}[/{style}]",
            )
        console.print(table)

    floor = _SEVERITY_RANK[RegressionSeverity(fail_on)]
    if any(_SEVERITY_RANK[r.severity] >= floor for r in regressions):
        raise SystemExit(ExitCode.VALIDATION_FAILED)


def cmd_trend(
    values_path: str,
    lower_is_better: bool,
    slope_threshold: float,
    as_json: bool,
    console: Console,
) -> None:
    raw = read_json(values_path)
    if isinstance(raw, dict):
        raw = raw.get("values")
    if not isinstance(raw, list) or not all(is_number(v) for v in raw):
        fail("Expected a JSON list of numbers (or {\"values\": [...]})")

    result = analyze_trend(
        raw, higher_is_better=not lower_is_better, slope_threshold=slope_threshold
    )
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    colour = {
        TrendDirection.IMPROVING: "green",
        TrendDirection.STABLE: "cyan",
        TrendDirection.DEGRADING: "red",
    }[result.trend]
    console.print(f"Trend:       [{colour}]{result.trend.value}[/{colour}]")
    console.print(f"Slope:       {result.slope:.4f} per sample")
    console.print(f"Correlation: {result.correlation:.3f}")
    console.print(f"Volatility:  {result.volatility:.3f}")
    p = result.prediction
    console.print(f"Next value:  {p.next_value:.2f} ({p.lower:.2f} – {p.upper:.2f})")
    for a in result.anomalies:
        console.print(
            f"  [yellow]anomaly[/yellow] #{a.index}: {a.value:g} "
            f"(expected {a.expected:.2f}, {a.kind}, {a.severity})"
        )
