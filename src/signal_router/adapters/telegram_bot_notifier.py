"""Telegram Bot API notification adapter.

Uses the Bot API so signals can be routed to any chat the bot is a member of.
Messages with an image are sent as a photo with the signal as its caption.
"""

from __future__ import annotations

from typing import Optional

import httpx

from signal_router.adapters.notification_formatting import find_image_url, format_telegram_signal
from signal_router.core.errors import NotificationFailure
from signal_router.core.models import Message


class TelegramBotNotifier:
    """Notifier adapter that sends signals via the Telegram Bot API."""

    def __init__(
        self,
        bot_token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._bot_token = bot_token
        self._timeout = timeout
        self._transport = transport

    def _endpoint(self, method: str) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._bot_token}/{method}"

    def build_request(self, message: Message, chat_id: str) -> tuple[str, dict]:
        """Return the Bot API method and JSON body for one signal."""

        image_url = find_image_url(message)
        payload = {
            "chat_id": chat_id,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        if image_url:
            payload["photo"] = image_url
            payload["caption"] = format_telegram_signal(message, caption=True)
            return "sendPhoto", payload
        payload["text"] = format_telegram_signal(message)
        return "sendMessage", payload

    async def send_signal(self, message: Message, target: str) -> None:
        """Send the formatted signal to the chat id ``target``."""

        method, payload = self.build_request(message, target)
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._endpoint(method), json=payload)
        except httpx.HTTPError as exc:
            raise NotificationFailure(f"Bot API request failed: {type(exc).__name__}") from exc
        if response.is_error:
            raise NotificationFailure(f"Bot API error {response.status_code}: {response.text[:200]}")
