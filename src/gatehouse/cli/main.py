"""
Gatehouse CLI entry point.

Commands:
  gatehouse plan FEATURES          — rank features and lay out integration phases
  gatehouse validate FEATURES      — run a validation pipeline over features
  gatehouse regress BASE CURRENT   — compare two metric snapshots
  gatehouse trend VALUES           — analyse a metric series
  gatehouse monitor                — run monitoring configurations
  gatehouse init [PATH]            — write a starter config file
  gatehouse version                — show version information
"""

from __future__ import annotations

import os

import click
from rich.console import Console

from gatehouse import __version__

console = Console()


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group(
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(__version__, "--version", "-V", message="gatehouse %(version)s")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Config file (default: $GATEHOUSE_CONFIG or the platform config dir).",
)
@click.option(
    "--log-level",
    default="WARNING",
    envvar="GATEHOUSE_LOG_LEVEL",
    hidden=True,
    help="Log level for structured logging.",
)
@click.option("--log-json", is_flag=True, default=False, hidden=True, help="Emit JSON log lines.")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, log_level: str, log_json: bool) -> None:
    """Gatehouse — feature integration planning, validation and monitoring."""
    from gatehouse.core.logging import configure_logging

    json_output = log_json or os.environ.get("GATEHOUSE_LOG_FORMAT", "").lower() == "json"
    configure_logging(level=log_level, json_output=json_output)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ---------------------------------------------------------------------------
# plan / validate
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("features_path", metavar="FEATURES_JSON", type=click.Path(exists=True))
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["table", "json", "csv"]),
    default="table",
    show_default=True,
)
@click.pass_context
def plan(ctx: click.Context, features_path: str, fmt: str) -> None:
    """Rank features and group them into integration phases."""
    from gatehouse.cli._plan import cmd_plan

    cmd_plan(ctx, features_path, fmt, console=console)


@cli.command()
@click.argument("features_path", metavar="FEATURES_JSON", type=click.Path(exists=True))
@click.option("--pipeline", "pipeline_id", default=None, help="Pipeline id (default from config).")
@click.option(
    "--feature", "feature_ids", multiple=True, help="Only validate this feature (repeatable)."
)
@click.option("--json", "as_json", is_flag=True, default=False)
@click.pass_context
def validate(
    ctx: click.Context,
    features_path: str,
    pipeline_id: str | None,
    feature_ids: tuple[str, ...],
    as_json: bool,
) -> None:
    """Run a validation pipeline over every feature, in integration order."""
    from gatehouse.cli._validate import cmd_validate

    cmd_validate(ctx, features_path, pipeline_id, feature_ids, as_json, console=console)


# ---------------------------------------------------------------------------
# regress / trend
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("baseline_path", metavar="BASELINE_JSON", type=click.Path(exists=True))
@click.argument("current_path", metavar="CURRENT_JSON", type=click.Path(exists=True))
@click.option(
    "--fail-on",
    type=click.Choice(["medium", "high", "critical"]),
    default="critical",
    show_default=True,
    help="Lowest severity that makes the command exit non-zero.",
)
@click.option("--json", "as_json", is_flag=True, default=False)
@click.pass_context
def regress(
    ctx: click.Context, baseline_path: str, current_path: str, fail_on: str, as_json: bool
) -> None:
    """Compare two metric snapshots and report regressions."""
    from gatehouse.cli._regress import cmd_regress

    cmd_regress(ctx, baseline_path, current_path, fail_on, as_json, console=console)


@cli.command()
@click.argument("values_path", metavar="VALUES_JSON", type=click.Path(exists=True))
@click.option("--lower-is-better", is_flag=True, default=False, help="E.g. latency, error rate.")
@click.option("--slope-threshold", default=0.1, show_default=True, type=float)
@click.option("--json", "as_json", is_flag=True, default=False)
def trend(values_path: str, lower_is_better: bool, slope_threshold: float, as_json: bool) -> None:
    """Analyse the trend of a metric series (oldest value first)."""
    from gatehouse.cli._regress import cmd_trend

    cmd_trend(values_path, lower_is_better, slope_threshold, as_json, console=console)


# ---------------------------------------------------------------------------
# monitor
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--id", "config_ids", multiple=True, help="Monitoring configuration id (repeatable)."
)
@click.option(
    "--ticks",
    default=0,
    show_default=True,
    type=click.IntRange(min=0),
    help="Run this many passes and exit; 0 runs on the configured interval until Ctrl-C.",
)
@click.option("--pause", default=0.0, type=float, help="Seconds between passes with --ticks.")
@click.option("--json", "as_json", is_flag=True, default=False)
@click.pass_context
def monitor(
    ctx: click.Context, config_ids: tuple[str, ...], ticks: int, pause: float, as_json: bool
) -> None:
    """Poll monitoring targets, evaluate thresholds and raise alerts."""
    from gatehouse.cli._monitor import cmd_monitor

    cmd_monitor(ctx, config_ids, ticks, pause, as_json, console=console)


# ---------------------------------------------------------------------------
# init / version
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("path", required=False, type=click.Path(dir_okay=False))
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing file.")
def init(path: str | None, force: bool) -> None:
    """Write a starter config file."""
    from gatehouse.cli._init import cmd_init

    cmd_init(path, force, console=console)


@cli.command()
@click.option("--json", "as_json", is_flag=True, default=False)
def version(as_json: bool) -> None:
    """Show version information."""
    from gatehouse.cli._version import cmd_version

    cmd_version(as_json, console=console)


if __name__ == "__main__":
    cli()
