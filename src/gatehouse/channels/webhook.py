"""
WebhookChannel — POSTs the alert as JSON to ``action.configuration["url"]``.

Optional configuration keys: ``headers`` (dict), ``timeout`` (seconds).
A non-2xx response is a delivery failure.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx
import structlog

from gatehouse.channels.base import AlertChannel
from gatehouse.core.exceptions import ChannelError
from gatehouse.core.monitoring.models import Alert, AlertAction, AlertActionType

logger = structlog.get_logger()

_DEFAULT_TIMEOUT = 10.0


class HttpChannel(AlertChannel):
    """Shared httpx client handling for HTTP-based channels."""

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=_DEFAULT_TIMEOUT)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _post(self, url: str, payload: dict[str, Any], **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._get_client().post(url, json=payload, **kwargs)
        except httpx.HTTPError as exc:
            raise ChannelError(f"{self.channel_name} request to {url} failed: {exc}") from exc
        if resp.status_code >= 400:
            raise ChannelError(
                f"{self.channel_name} request to {url} returned HTTP {resp.status_code}"
            )
        return resp


class WebhookChannel(HttpChannel):
    action_type = AlertActionType.WEBHOOK
    channel_name = "webhook"

    async def send(
        self,
        alert: Alert,
        action: AlertAction,
        recipients: Sequence[str] = (),
    ) -> None:
        url = action.configuration.get("url")
        if not url:
            raise ChannelError("webhook action has no 'url' configured")
        payload = alert.to_dict()
        if recipients:
            payload["recipients"] = list(recipients)
        await self._post(
            url,
            payload,
            headers=action.configuration.get("headers") or None,
            timeout=action.configuration.get("timeout", _DEFAULT_TIMEOUT),
        )
        logger.debug("webhook_delivered", alert_id=alert.id, url=url)
