"""
AlertChannel — abstract interface for alert notification channels.

Concrete implementations:
  LogChannel      — structured log line (always available)
  WebhookChannel  — JSON POST via httpx
  SlackChannel    — Slack incoming webhook via httpx
  EmailChannel    — SMTP via smtplib in a worker thread

A channel delivers one Alert for one AlertAction.  Delivery failures are
raised to the caller (the AlertManager), which logs them and leaves the
alert state untouched.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

import structlog

from gatehouse.core.exceptions import ChannelUnavailableError
from gatehouse.core.monitoring.models import Alert, AlertAction, AlertActionType

logger = structlog.get_logger()


class ChannelCircuitBreaker:
    """
    Lightweight circuit breaker for channel send operations.

    After *threshold* consecutive failures the circuit opens and
    ``is_open`` returns True.  The circuit auto-closes after
    *recovery_seconds* so the next send attempt is allowed through
    (half-open); a failure there reopens it for another window.
    """

    def __init__(self, threshold: int = 3, recovery_seconds: float = 30.0) -> None:
        self.threshold = threshold
        self.recovery_seconds = recovery_seconds
        self._failures = 0
        self._opened_at: float | None = None

    @property
    def failures(self) -> int:
        return self._failures

    @property
    def is_open(self) -> bool:
        if self._failures < self.threshold:
            return False
        if (
            self._opened_at is not None
            and (time.monotonic() - self._opened_at) >= self.recovery_seconds
        ):
            return False
        return True

    def record_success(self) -> None:
        self._failures = 0
        self._opened_at = None

    def record_failure(self) -> None:
        self._failures += 1
        if self._failures < self.threshold:
            return
        # A failed half-open attempt starts a fresh recovery window
        reopened = self._opened_at is not None
        self._opened_at = time.monotonic()
        logger.warning(
            "circuit_breaker_reopened" if reopened else "circuit_breaker_opened",
            failures=self._failures,
            threshold=self.threshold,
            recovery_seconds=self.recovery_seconds,
        )

    def reset(self) -> None:
        self._failures = 0
        self._opened_at = None


def format_alert(alert: Alert) -> str:
    """Plain-text rendering shared by channels that send prose."""
    lines = [
        f"[{alert.severity.value.upper()}] {alert.title}",
        alert.message,
        f"Alert: {alert.id}  Status: {alert.status.value}",
    ]
    if alert.escalation_level:
        lines.append(f"Escalation level: {alert.escalation_level}")
    return "\n".join(lines)


class AlertChannel(ABC):
    """
    Abstract alert channel.

    Includes a ``circuit_breaker`` consulted by ``guarded_send``.  After 3
    consecutive send failures the breaker opens for 30 s.
    """

    #: The AlertActionType this channel handles
    action_type: AlertActionType

    #: Short identifier used in logs
    channel_name: str = ""

    @property
    def circuit_breaker(self) -> ChannelCircuitBreaker:
        """Per-instance circuit breaker (lazy-initialised)."""
        cb = getattr(self, "_circuit_breaker", None)
        if cb is None:
            cb = ChannelCircuitBreaker()
            self._circuit_breaker = cb
        return cb

    @abstractmethod
    async def send(
        self,
        alert: Alert,
        action: AlertAction,
        recipients: Sequence[str] = (),
    ) -> None:
        """
        Deliver *alert* according to *action*.configuration.

        *recipients* is non-empty for escalation dispatches; channels that
        address people (email, Slack mentions) add them to the delivery.
        """

    async def close(self) -> None:
        """Release any network resources held by the channel."""

    # ------------------------------------------------------------------
    # Circuit-breaker guarded send
    # ------------------------------------------------------------------

    async def guarded_send(
        self,
        alert: Alert,
        action: AlertAction,
        recipients: Sequence[str] = (),
    ) -> None:
        """Send through the circuit breaker.

        If the circuit is open, raises ``ChannelUnavailableError``.
        On failure, records the failure and re-raises.
        """
        cb = self.circuit_breaker
        if cb.is_open:
            logger.warning(
                "circuit_breaker_rejected",
                channel=self.channel_name,
                failures=cb.failures,
            )
            raise ChannelUnavailableError(
                f"Circuit breaker open for {self.channel_name} "
                f"({cb.failures} consecutive failures)"
            )
        try:
            await self.send(alert, action, recipients)
            cb.record_success()
        except Exception:
            cb.record_failure()
            raise

    def healthcheck(self) -> dict[str, Any]:
        cb = self.circuit_breaker
        return {
            "status": "degraded" if cb.is_open else "ok",
            "channel": self.channel_name,
            "circuit_breaker": {
                "open": cb.is_open,
                "failures": cb.failures,
                "threshold": cb.threshold,
            },
        }
