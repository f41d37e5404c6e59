"""gatehouse validate — run a validation pipeline over features."""

from __future__ import annotations

import asyncio
import json

import click
from rich.console import Console
from rich.table import Table

from gatehouse.cli._common import fail, load_cli_config, load_features
from gatehouse.core.constants import ExitCode
from gatehouse.core.exceptions import PipelineNotFoundError
from gatehouse.core.planning.scheduler import build_plan
from gatehouse.core.validation.models import ValidationExecution
from gatehouse.core.validation.runner import PipelineRunner


def cmd_validate(
    ctx: click.Context,
    features_path: str,
    pipeline_id: str | None,
    feature_ids: tuple[str, ...],
    as_json: bool,
    console: Console,
) -> None:
    config = load_cli_config(ctx)
    features, contexts = load_features(features_path)

    # Validate in integration order so prerequisites are checked first
    plan = build_plan(features, config.scoring)
    ordered = [pf.feature for pf in plan.features]
    if feature_ids:
        unknown = set(feature_ids) - {f.id for f in ordered}
        if unknown:
            fail(f"Unknown feature id(s): {', '.join(sorted(unknown))}")
        ordered = [f for f in ordered if f.id in feature_ids]

    runner = PipelineRunner()
    for pipeline in config.validation.pipelines:
        runner.register_pipeline(pipeline)
    pipeline_id = pipeline_id or config.validation.default_pipeline

    try:
        executions = asyncio.run(runner.validate_features(ordered, pipeline_id, contexts))
    except PipelineNotFoundError as exc:
        fail(str(exc), ExitCode.CONFIG_ERROR)

    if as_json:
        click.echo(json.dumps([e.to_dict() for e in executions], indent=2))
    else:
        _render(executions, console)

    if not all(e.passed for e in executions):
        raise SystemExit(ExitCode.VALIDATION_FAILED)


def _render(executions: list[ValidationExecution], console: Console) -> None:
    table = Table(title="Validation results")
    table.add_column("Feature")
    table.add_column("Status")
    table.add_column("Score", justify="right")
    table.add_column("Passed")
    table.add_column("Issues", justify="right")
    for execution in executions:
        table.add_row(
            execution.feature_id,
            execution.status.value,
            str(execution.overall_score),
            "[green]yes[/green]" if execution.passed else "[red]no[/red]",
            str(len(execution.issues)),
        )
    console.print(table)

    for execution in executions:
        for rec in execution.recommendations:
            console.print(f"  [dim]{execution.feature_id}:[/dim] {rec}")
