"""Unit tests for the ChannelCircuitBreaker."""

from __future__ import annotations

import time
from collections.abc import Sequence

import pytest

from gatehouse.channels.base import AlertChannel, ChannelCircuitBreaker
from gatehouse.core.exceptions import ChannelUnavailableError
from gatehouse.core.monitoring.models import (
    Alert,
    AlertAction,
    AlertActionType,
    AlertRuleType,
    Severity,
)


class TestCircuitBreaker:
    def test_starts_closed(self) -> None:
        cb = ChannelCircuitBreaker()
        assert not cb.is_open

    def test_stays_closed_below_threshold(self) -> None:
        cb = ChannelCircuitBreaker(threshold=3)
        cb.record_failure()
        cb.record_failure()
        assert not cb.is_open

    def test_opens_at_threshold(self) -> None:
        cb = ChannelCircuitBreaker(threshold=3)
        cb.record_failure()
        cb.record_failure()
        cb.record_failure()
        assert cb.is_open
        assert cb.failures == 3

    def test_success_resets(self) -> None:
        cb = ChannelCircuitBreaker(threshold=2)
        cb.record_failure()
        cb.record_failure()
        assert cb.is_open
        cb.record_success()
        assert not cb.is_open

    def test_auto_closes_after_recovery_window(self) -> None:
        cb = ChannelCircuitBreaker(threshold=1, recovery_seconds=0.05)
        cb.record_failure()
        assert cb.is_open
        time.sleep(0.06)
        assert not cb.is_open  # half-open

    def test_failed_half_open_attempt_reopens(self, monkeypatch: pytest.MonkeyPatch) -> None:
        now = [1000.0]
        monkeypatch.setattr(time, "monotonic", lambda: now[0])
        cb = ChannelCircuitBreaker(threshold=2, recovery_seconds=30.0)
        cb.record_failure()
        cb.record_failure()
        assert cb.is_open
        now[0] += 31.0
        assert not cb.is_open
        cb.record_failure()
        assert cb.is_open
        now[0] += 29.0
        assert cb.is_open
        now[0] += 2.0
        assert not cb.is_open

    def test_reset_clears_state(self) -> None:
        cb = ChannelCircuitBreaker(threshold=1)
        cb.record_failure()
        assert cb.is_open
        cb.reset()
        assert not cb.is_open


class _FlakyChannel(AlertChannel):
    action_type = AlertActionType.WEBHOOK
    channel_name = "flaky"

    def __init__(self) -> None:
        self.fail = True
        self.calls = 0

    async def send(
        self, alert: Alert, action: AlertAction, recipients: Sequence[str] = ()
    ) -> None:
        self.calls += 1
        if self.fail:
            raise RuntimeError("endpoint down")


def _alert() -> Alert:
    return Alert(
        configuration_id="cfg",
        rule_id="rule",
        type=AlertRuleType.THRESHOLD,
        severity=Severity.ERROR,
        title="Endpoint down",
        message="Availability 0",
        source="api",
    )


class TestGuardedSend:
    def test_channel_has_lazy_circuit_breaker(self) -> None:
        channel = _FlakyChannel()
        cb = channel.circuit_breaker
        assert isinstance(cb, ChannelCircuitBreaker)
        assert channel.circuit_breaker is cb

    @pytest.mark.asyncio
    async def test_failures_open_the_circuit(self) -> None:
        channel = _FlakyChannel()
        action = AlertAction(type=AlertActionType.WEBHOOK)
        for _ in range(3):
            with pytest.raises(RuntimeError):
                await channel.guarded_send(_alert(), action)

        with pytest.raises(ChannelUnavailableError):
            await channel.guarded_send(_alert(), action)
        assert channel.calls == 3
        assert channel.healthcheck()["status"] == "degraded"

    @pytest.mark.asyncio
    async def test_success_keeps_circuit_closed(self) -> None:
        channel = _FlakyChannel()
        action = AlertAction(type=AlertActionType.WEBHOOK)
        with pytest.raises(RuntimeError):
            await channel.guarded_send(_alert(), action)
        channel.fail = False
        await channel.guarded_send(_alert(), action)
        health = channel.healthcheck()
        assert health["status"] == "ok"
        assert health["circuit_breaker"]["failures"] == 0
