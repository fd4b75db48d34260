"""Discord webhook notification adapter.

Sends live signals as rich embeds and scheduled reports as a single embed.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Optional

import httpx

from signal_router.adapters.notification_formatting import (
    DEFAULT_ICON_URL,
    build_report_embed,
    build_signal_embeds,
)
from signal_router.core.errors import NotificationFailure
from signal_router.core.models import Message, Report


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DiscordWebhookNotifier:
    """Notifier adapter posting to Discord webhook URLs."""

    def __init__(
        self,
        username: str = "Signal Router",
        avatar_url: str = DEFAULT_ICON_URL,
        report_username: str = "Market Reporter",
        report_avatar_url: str = DEFAULT_ICON_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._username = username
        self._avatar_url = avatar_url
        self._report_username = report_username
        self._report_avatar_url = report_avatar_url
        self._timeout = timeout
        self._transport = transport
        self._clock = clock

    async def _post(self, webhook_url: str, payload: dict[str, Any]) -> None:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(webhook_url, json=payload)
        except httpx.HTTPError as exc:
            # The webhook URL is a secret; keep it out of the error text.
            raise NotificationFailure(f"Discord webhook request failed: {type(exc).__name__}") from exc
        if response.is_error:
            raise NotificationFailure(f"Discord webhook error {response.status_code}: {response.text[:200]}")

    async def send_signal(self, message: Message, target: str) -> None:
        await self._post(
            target,
            {
                "username": self._username,
                "avatar_url": self._avatar_url,
                "embeds": build_signal_embeds(message, self._clock()),
            },
        )

    async def send_report(self, report: Report, target: str) -> None:
        await self._post(
            target,
            {
                "username": self._report_username,
                "avatar_url": self._report_avatar_url,
                "embeds": [build_report_embed(report)],
            },
        )
