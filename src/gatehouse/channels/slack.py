"""
SlackChannel — posts alerts to a Slack incoming webhook.

The webhook URL comes from ``action.configuration["webhook_url"]``.
Escalation recipients are rendered as mentions (``<@U123>``) ahead of the
alert text.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog

from gatehouse.channels.base import format_alert
from gatehouse.channels.webhook import HttpChannel
from gatehouse.core.exceptions import ChannelError
from gatehouse.core.monitoring.models import Alert, AlertAction, AlertActionType, Severity

logger = structlog.get_logger()

_SEVERITY_EMOJI = {
    Severity.INFO: ":information_source:",
    Severity.WARNING: ":warning:",
    Severity.ERROR: ":x:",
    Severity.CRITICAL: ":rotating_light:",
}


class SlackChannel(HttpChannel):
    action_type = AlertActionType.SLACK
    channel_name = "slack"

    @staticmethod
    def build_payload(alert: Alert, recipients: Sequence[str] = ()) -> dict[str, Any]:
        """Block Kit payload with a plain-text fallback."""
        text = format_alert(alert)
        if recipients:
            text = " ".join(f"<@{r}>" for r in recipients) + "\n" + text
        emoji = _SEVERITY_EMOJI[alert.severity]
        return {
            "text": text,
            "blocks": [
                {
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": f"{emoji} *{alert.title}*"},
                },
                {
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": alert.message},
                },
                {
                    "type": "context",
                    "elements": [
                        {
                            "type": "mrkdwn",
                            "text": f"`{alert.id}` · {alert.severity.value} · {alert.source}",
                        }
                    ],
                },
            ],
        }

    async def send(
        self,
        alert: Alert,
        action: AlertAction,
        recipients: Sequence[str] = (),
    ) -> None:
        url = action.configuration.get("webhook_url")
        if not url:
            raise ChannelError("slack action has no 'webhook_url' configured")
        payload = self.build_payload(alert, recipients)
        channel = action.configuration.get("channel")
        if channel:
            payload["channel"] = channel
        await self._post(url, payload)
        logger.debug("slack_delivered", alert_id=alert.id)
