"""
Channel registry — maps AlertActionType to the channel that delivers it.

Action types without a registered channel (sms, ticket, rollback by
default) are skipped with a warning by the AlertManager.
"""

from __future__ import annotations

from typing import Any

import httpx

from gatehouse.channels.base import AlertChannel
from gatehouse.channels.email_channel import EmailChannel
from gatehouse.channels.log_channel import LogChannel
from gatehouse.channels.slack import SlackChannel
from gatehouse.channels.webhook import WebhookChannel
from gatehouse.core.monitoring.models import AlertActionType


class ChannelRegistry:
    def __init__(self) -> None:
        self._channels: dict[AlertActionType, AlertChannel] = {}

    def register(self, channel: AlertChannel) -> None:
        self._channels[channel.action_type] = channel

    def get(self, action_type: AlertActionType) -> AlertChannel | None:
        return self._channels.get(action_type)

    def action_types(self) -> list[AlertActionType]:
        return list(self._channels)

    def healthcheck(self) -> list[dict[str, Any]]:
        return [ch.healthcheck() for ch in self._channels.values()]

    async def close(self) -> None:
        for channel in self._channels.values():
            await channel.close()

    def __contains__(self, action_type: Any) -> bool:
        return action_type in self._channels


def get_default_channel_registry(
    client: httpx.AsyncClient | None = None,
    email: EmailChannel | None = None,
) -> ChannelRegistry:
    """Registry with log, webhook and Slack channels, plus email when given."""
    registry = ChannelRegistry()
    registry.register(LogChannel())
    registry.register(WebhookChannel(client))
    registry.register(SlackChannel(client))
    if email is not None:
        registry.register(email)
    return registry
