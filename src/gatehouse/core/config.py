"""Gatehouse configuration: Pydantic model, load, and save."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from gatehouse.core.constants import CONFIG_FILENAME, DEFAULT_PIPELINE_ID, _default_data_dir
from gatehouse.core.exceptions import ConfigError, ConfigNotFoundError
from gatehouse.core.monitoring.models import MonitoringConfiguration
from gatehouse.core.planning.models import PrioritizationCriteria
from gatehouse.core.regression.detector import RegressionThresholds
from gatehouse.core.validation.models import ValidationPipeline

CURRENT_CONFIG_VERSION = 1


def gatehouse_dir() -> Path:
    """
    Return the Gatehouse data directory, creating it if needed.

    macOS : ~/Library/Application Support/gatehouse
    Linux : ~/.config/gatehouse  (or $XDG_CONFIG_HOME/gatehouse)
    Other : ~/.gatehouse
    """
    d = _default_data_dir()
    d.mkdir(mode=0o700, parents=True, exist_ok=True)
    return d


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "text"  # "text" | "json"

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in ("text", "json"):
            raise ValueError("Log format must be 'text' or 'json'")
        return v


class ValidationConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    default_pipeline: str = DEFAULT_PIPELINE_ID
    # Registered alongside the built-in pipelines; same id replaces a built-in
    pipelines: list[ValidationPipeline] = Field(default_factory=list)


class EmailConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    smtp_host: str = ""  # empty → email channel disabled
    smtp_port: int = 587
    sender: str = "gatehouse@localhost"
    username: str | None = None
    password: SecretStr | None = None
    starttls: bool = True

    @field_validator("smtp_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError("smtp_port must be between 1 and 65535")
        return v

    @property
    def enabled(self) -> bool:
        return bool(self.smtp_host)


class ChannelsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailConfig = Field(default_factory=EmailConfig)


class GatehouseConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    config_version: int = CURRENT_CONFIG_VERSION
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    scoring: PrioritizationCriteria = Field(default_factory=PrioritizationCriteria)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    regression: RegressionThresholds = Field(default_factory=RegressionThresholds)
    monitoring: list[MonitoringConfiguration] = Field(default_factory=list)
    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)

    @model_validator(mode="after")
    def unique_monitoring_ids(self) -> GatehouseConfig:
        ids = [m.id for m in self.monitoring]
        dupes = sorted({i for i in ids if ids.count(i) > 1})
        if dupes:
            raise ValueError(f"Duplicate monitoring configuration ids: {dupes}")
        return self


# ---------------------------------------------------------------------------
# Load / save
# ---------------------------------------------------------------------------


def _config_file_path() -> Path:
    if env_path := os.environ.get("GATEHOUSE_CONFIG"):
        return Path(env_path)
    return gatehouse_dir() / CONFIG_FILENAME


def load_config(path: Path | str | None = None) -> GatehouseConfig:
    """
    Load GatehouseConfig from TOML file, overlaid with environment variables.

    Priority (highest to lowest):
      1. Environment variables (GATEHOUSE_*)
      2. Config file ($GATEHOUSE_CONFIG or platform data dir / config.toml)
    """
    import tomllib

    cfg_path = Path(path) if path is not None else _config_file_path()

    if not cfg_path.exists():
        raise ConfigNotFoundError(
            f"Gatehouse is not configured. Run 'gatehouse init' first.\n"
            f"(Config file not found: {cfg_path})"
        )

    try:
        with open(cfg_path, "rb") as f:
            data = tomllib.load(f)
    except Exception as exc:
        raise ConfigError(f"Cannot read config file {cfg_path}: {exc}") from exc

    _apply_env_overrides(data)

    try:
        return GatehouseConfig.model_validate(data)
    except Exception as exc:
        raise ConfigError(f"Invalid config at {cfg_path}: {exc}") from exc


def load_config_or_default(path: Path | str | None = None) -> GatehouseConfig:
    """Like load_config, but a missing file yields the defaults (env overrides applied)."""
    try:
        return load_config(path)
    except ConfigNotFoundError:
        data: dict[str, Any] = {}
        _apply_env_overrides(data)
        try:
            return GatehouseConfig.model_validate(data)
        except Exception as exc:
            raise ConfigError(f"Invalid environment configuration: {exc}") from exc


def _apply_env_overrides(data: dict[str, Any]) -> None:
    """Overlay GATEHOUSE_* environment variables onto parsed TOML."""
    if level := os.environ.get("GATEHOUSE_LOG_LEVEL"):
        data.setdefault("logging", {})["level"] = level
    if fmt := os.environ.get("GATEHOUSE_LOG_FORMAT"):
        data.setdefault("logging", {})["format"] = fmt
    if pipeline := os.environ.get("GATEHOUSE_DEFAULT_PIPELINE"):
        data.setdefault("validation", {})["default_pipeline"] = pipeline
    if smtp_password := os.environ.get("GATEHOUSE_SMTP_PASSWORD"):
        data.setdefault("channels", {}).setdefault("email", {})["password"] = smtp_password


def save_config(config_data: dict[str, Any], path: Path | str | None = None) -> Path:
    """Write config dict to TOML file with secure permissions (0600)."""
    import tomli_w

    cfg_path = Path(path) if path is not None else _config_file_path()
    cfg_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    config_data.setdefault("config_version", CURRENT_CONFIG_VERSION)

    # Write atomically
    tmp_path = cfg_path.with_suffix(".tmp")
    try:
        with open(tmp_path, "wb") as f:
            tomli_w.dump(config_data, f)
        tmp_path.rename(cfg_path)
    except Exception as exc:
        tmp_path.unlink(missing_ok=True)
        raise ConfigError(f"Cannot write config to {cfg_path}: {exc}") from exc

    cfg_path.chmod(0o600)
    return cfg_path


def default_config_data() -> dict[str, Any]:
    """Starter config written by ``gatehouse init``: defaults plus the built-in monitor."""
    from gatehouse.core.monitoring.defaults import default_monitoring_configuration

    data = GatehouseConfig(monitoring=[default_monitoring_configuration()]).model_dump(
        mode="json", exclude_none=True
    )
    return data
