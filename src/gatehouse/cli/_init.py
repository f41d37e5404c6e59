"""gatehouse init — write a starter configuration file."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from gatehouse.cli._common import fail
from gatehouse.core.config import _config_file_path, default_config_data, save_config
from gatehouse.core.constants import ExitCode
from gatehouse.core.exceptions import ConfigError


def cmd_init(path: str | None, force: bool, console: Console) -> None:
    cfg_path = Path(path) if path else _config_file_path()
    if cfg_path.exists() and not force:
        fail(f"{cfg_path} already exists (use --force to overwrite)", ExitCode.CONFIG_ERROR)
    try:
        written = save_config(default_config_data(), cfg_path)
    except ConfigError as exc:
        fail(str(exc), ExitCode.CONFIG_ERROR)
    console.print(f"[green]Wrote[/green] {written}")
