"""Gatehouse exception hierarchy."""

from __future__ import annotations


class GatehouseError(Exception):
    """Base exception for all Gatehouse errors."""


class ConfigError(GatehouseError):
    """Raised when the configuration is invalid or cannot be read."""


class ConfigNotFoundError(ConfigError):
    """Raised when the configuration file does not exist."""


class FeatureValidationError(GatehouseError):
    """Raised when a feature record is malformed (e.g. missing numeric fields)."""


class UnsupportedFormatError(GatehouseError):
    """Raised when an export format is not supported."""


class PipelineNotFoundError(GatehouseError):
    """Raised when a validation pipeline id is not registered."""


class ExecutionNotFoundError(GatehouseError):
    """Raised when a validation execution id is unknown."""


class ConfigurationNotFoundError(GatehouseError):
    """Raised when a monitoring configuration id is unknown."""


class AlertNotFoundError(GatehouseError):
    """Raised when an alert id is unknown."""


class AlertStateError(GatehouseError):
    """Raised when an alert lifecycle transition is not allowed."""


class ValidatorFault(GatehouseError):
    """
    Raised by a validator check when it cannot produce a result.

    ``category`` is matched against a pipeline's retryable error categories
    (e.g. "timeout", "network", "temporary").
    """

    def __init__(self, message: str, category: str = "internal") -> None:
        super().__init__(message)
        self.category = category


class ChannelError(GatehouseError):
    """Raised when a notification channel fails."""


class ChannelUnavailableError(ChannelError):
    """Raised when a channel's circuit breaker is open."""


class CollectorError(GatehouseError):
    """Raised when a monitoring target cannot be collected."""
