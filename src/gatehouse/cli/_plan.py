"""gatehouse plan — rank features and lay out integration phases."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from gatehouse.cli._common import load_cli_config, load_features
from gatehouse.core.planning.matrix import create_priority_matrix, export_matrix
from gatehouse.core.planning.models import PriorityMatrix


def cmd_plan(ctx: click.Context, features_path: str, fmt: str, console: Console) -> None:
    config = load_cli_config(ctx)
    features, _ = load_features(features_path)
    matrix = create_priority_matrix(features, config.scoring)

    if fmt in ("json", "csv"):
        click.echo(export_matrix(matrix, fmt), nl=fmt == "json")
        return
    _render(matrix, console)


def _render(matrix: PriorityMatrix, console: Console) -> None:
    table = Table(title="Feature priorities", show_lines=False)
    table.add_column("Rank", justify="right")
    table.add_column("Feature")
    table.add_column("Score", justify="right")
    table.add_column("Effort")
    table.add_column("Risk")
    table.add_column("Seq", justify="right")
    table.add_column("Blocked by")
    for pf in matrix.features:
        table.add_row(
            str(pf.rank),
            pf.feature.title,
            f"{pf.score.total:.2f}",
            pf.feature.effort.value,
            pf.feature.risk_level.value,
            str(pf.integration_sequence),
            ", ".join(pf.blocked_by) or "-",
        )
    console.print(table)

    phases = Table(title="Integration phases")
    phases.add_column("Phase")
    phases.add_column("Features")
    phases.add_column("Hours", justify="right")
    phases.add_column("Risk")
    phases.add_column("After")
    for phase in matrix.phases:
        phases.add_row(
            phase.name,
            ", ".join(phase.features),
            f"{phase.estimated_duration:g}",
            phase.risk_level.value,
            ", ".join(phase.prerequisites) or "-",
        )
    console.print(phases)

    console.print(
        f"[bold]{matrix.total_features}[/bold] features: "
        f"[green]{matrix.high_priority} high[/green], "
        f"[yellow]{matrix.medium_priority} medium[/yellow], "
        f"{matrix.low_priority} low"
    )
    if matrix.critical_path:
        console.print(f"Critical path: {' → '.join(matrix.critical_path)}")
