"""Helpers shared by the CLI commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, NoReturn

import click
from rich.console import Console
from rich.markup import escape

from gatehouse.core.constants import ExitCode
from gatehouse.core.exceptions import ConfigError, FeatureValidationError

if TYPE_CHECKING:
    from gatehouse.core.config import GatehouseConfig

err_console = Console(stderr=True)


def fail(message: str, code: ExitCode = ExitCode.ERROR) -> NoReturn:
    err_console.print(f"[red]Error:[/red] {escape(message)}", soft_wrap=True)
    raise SystemExit(code)


def read_json(path: str) -> Any:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        fail(f"Cannot read {path}: {exc}")
    except json.JSONDecodeError as exc:
        fail(f"{path} is not valid JSON: {exc}")


def load_cli_config(ctx: click.Context) -> GatehouseConfig:
    """The GatehouseConfig for this invocation; defaults when no file exists."""
    from gatehouse.core.config import load_config, load_config_or_default

    path = (ctx.obj or {}).get("config_path")
    try:
        # An explicit --config must exist; otherwise fall back to defaults
        return load_config(path) if path else load_config_or_default()
    except ConfigError as exc:
        fail(str(exc), ExitCode.CONFIG_ERROR)


def load_features(path: str) -> tuple[list[Any], dict[str, Any]]:
    """
    Read features (and optional per-feature integration contexts) from JSON.

    Accepts either a list of feature objects or
    ``{"features": [...], "contexts": {"<feature id>": {...}}}``.
    """
    from gatehouse.core.planning.models import parse_features
    from gatehouse.core.validation.checks import IntegrationContext

    raw = read_json(path)
    contexts_raw: dict[str, Any] = {}
    if isinstance(raw, dict):
        contexts_raw = raw.get("contexts") or {}
        raw = raw.get("features")
    if not isinstance(raw, list):
        fail(f"{path} must contain a list of features")

    try:
        features = parse_features(raw)
    except FeatureValidationError as exc:
        fail(str(exc))

    try:
        contexts = {
            fid: IntegrationContext.model_validate(ctx) for fid, ctx in contexts_raw.items()
        }
    except ValueError as exc:
        fail(f"Invalid integration context in {path}: {exc}")
    return features, contexts
