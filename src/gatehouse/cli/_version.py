"""Version information CLI command."""

from __future__ import annotations

import json
import platform
import sys

import click
from rich.console import Console

from gatehouse import __version__


def cmd_version(as_json: bool, console: Console) -> None:
    from gatehouse.core.constants import CONFIG_FILENAME, _default_data_dir

    info = {
        "gatehouse": __version__,
        "python": platform.python_version(),
        "platform": sys.platform,
        "config_path": str(_default_data_dir() / CONFIG_FILENAME),
    }
    if as_json:
        click.echo(json.dumps(info, indent=2))
        return
    console.print(f"gatehouse [bold]{__version__}[/bold]")
    console.print(f"  Python   {info['python']} ({info['platform']})")
    console.print(f"  Config   {info['config_path']}")
