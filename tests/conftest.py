"""Shared fixtures: a controllable clock and an in-memory alert channel."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

import pytest

from gatehouse.channels.base import AlertChannel
from gatehouse.channels.registry import ChannelRegistry
from gatehouse.core.monitoring.models import Alert, AlertAction, AlertActionType

START = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


class RecordingChannel(AlertChannel):
    """Collects every delivery; optionally fails each send."""

    channel_name = "recording"

    def __init__(self, action_type: AlertActionType, fail: bool = False) -> None:
        self.action_type = action_type
        self.fail = fail
        self.sent: list[tuple[Alert, AlertAction, tuple[str, ...]]] = []

    async def send(
        self,
        alert: Alert,
        action: AlertAction,
        recipients: Sequence[str] = (),
    ) -> None:
        if self.fail:
            raise RuntimeError("delivery failed")
        self.sent.append((alert, action, tuple(recipients)))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def log_channel() -> RecordingChannel:
    return RecordingChannel(AlertActionType.LOG)


@pytest.fixture
def channels(log_channel: RecordingChannel) -> ChannelRegistry:
    registry = ChannelRegistry()
    registry.register(log_channel)
    return registry


@pytest.fixture
def make_channel():
    """Factory for extra RecordingChannels (e.g. a failing webhook)."""
    return RecordingChannel
