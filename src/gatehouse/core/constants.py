"""Gatehouse constants: filesystem layout, defaults, and exit codes."""

from __future__ import annotations

import os
import sys
from enum import IntEnum
from pathlib import Path

# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------


class ExitCode(IntEnum):
    SUCCESS = 0
    ERROR = 1
    CONFIG_ERROR = 2
    VALIDATION_FAILED = 3


# ---------------------------------------------------------------------------
# Platform-specific config directory
# ---------------------------------------------------------------------------


def _default_data_dir() -> Path:
    """
    Return the platform-appropriate Gatehouse data directory.

    macOS : ~/Library/Application Support/gatehouse
    Linux : ~/.config/gatehouse
    Other : ~/.gatehouse
    """
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "gatehouse"
    if sys.platform.startswith("linux"):
        xdg = Path(os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config")))
        return xdg / "gatehouse"
    return Path.home() / ".gatehouse"


CONFIG_FILENAME = "config.toml"

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_PIPELINE_ID = "comprehensive"
DEFAULT_MONITORING_INTERVAL_SECONDS = 300.0
DEFAULT_COLLECTOR_TIMEOUT_SECONDS = 30.0

# Validation pass mark applied to the rounded mean validator score
PASSING_SCORE = 80

# Relative regression baselines are built from recent history
HISTORY_BASELINE_WINDOW = 10
HISTORY_MIN_SAMPLES = 5

# Bounded per-target metric history kept by the monitoring loop
METRIC_HISTORY_LIMIT = 100
