"""Webhook notifier - posts Discord/Slack-style embeds via httpx."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx

from restake_keeper.errors import NotificationError

log = logging.getLogger(__name__)

NOTIFY_TITLE = "Restake Keeper"
COLOR_SUCCESS = 0x00FF00
COLOR_ERROR = 0xFF0000


def build_payload(message: str, is_error: bool = False) -> dict:
    """Build the webhook JSON body for a status message."""
    return {
        "embeds": [
            {
                "title": NOTIFY_TITLE,
                "description": message,
                "color": COLOR_ERROR if is_error else COLOR_SUCCESS,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        ]
    }


class WebhookNotifier:
    """Best-effort status reporting. ``notify`` never raises."""

    def __init__(
        self,
        webhook_url: str | None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._webhook_url = webhook_url
        self._timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self._webhook_url)

    async def notify(self, message: str, is_error: bool = False) -> None:
        if not self._webhook_url:
            return
        try:
            await self._post(build_payload(message, is_error))
        except NotificationError as exc:
            log.error("Failed to send notification: %s", exc)

    async def _post(self, payload: dict) -> None:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport,
            ) as client:
                resp = await client.post(self._webhook_url, json=payload)
                resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise NotificationError(f"webhook HTTP {exc.response.status_code}") from exc
        except Exception as exc:
            raise NotificationError(f"webhook delivery failed: {exc}") from exc
