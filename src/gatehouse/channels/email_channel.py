"""
EmailChannel — sends alerts over SMTP.

smtplib is blocking, so delivery runs in a worker thread.  SMTP settings
come from the channel constructor; per-action ``to`` addresses and any
escalation recipients are merged into one message.
"""

from __future__ import annotations

import asyncio
import smtplib
import ssl
from collections.abc import Sequence
from email.message import EmailMessage

import structlog

from gatehouse.channels.base import AlertChannel, format_alert
from gatehouse.core.exceptions import ChannelError
from gatehouse.core.monitoring.models import Alert, AlertAction, AlertActionType

logger = structlog.get_logger()


class EmailChannel(AlertChannel):
    action_type = AlertActionType.EMAIL
    channel_name = "email"

    def __init__(
        self,
        smtp_host: str = "localhost",
        smtp_port: int = 587,
        sender: str = "gatehouse@localhost",
        username: str | None = None,
        password: str | None = None,
        starttls: bool = True,
        timeout: float = 15.0,
    ) -> None:
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.sender = sender
        self.username = username
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    def build_message(self, alert: Alert, to: Sequence[str]) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = f"[gatehouse] [{alert.severity.value}] {alert.title}"
        msg["From"] = self.sender
        msg["To"] = ", ".join(to)
        msg.set_content(format_alert(alert))
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
            if self.starttls:
                server.starttls(context=ssl.create_default_context())
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(msg)

    async def send(
        self,
        alert: Alert,
        action: AlertAction,
        recipients: Sequence[str] = (),
    ) -> None:
        configured = action.configuration.get("to", [])
        if isinstance(configured, str):
            configured = [configured]
        to = list(dict.fromkeys([*configured, *recipients]))
        if not to:
            raise ChannelError("email action has no recipients")
        msg = self.build_message(alert, to)
        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise ChannelError(f"SMTP delivery to {self.smtp_host} failed: {exc}") from exc
        logger.debug("email_delivered", alert_id=alert.id, recipients=len(to))
