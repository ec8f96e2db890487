"""Telegram Bot API delivery for operator alerts."""

import html
import logging
from typing import Any

import httpx

from reality_radar.config import get_settings
from reality_radar.notifications.base import Notifier

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


class TelegramNotifier(Notifier):
    """Send alerts to one chat with HTML formatting.

    Listing titles and street names are free text from the portals, so the
    body is escaped and only the title is rendered bold.
    """

    # Bot API hard limit is 4096 characters after entity parsing.
    max_message_chars = 4000

    def __init__(self, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        settings = get_settings()
        self._token = settings.telegram_bot_token
        self._chat_id = settings.telegram_chat_id
        self._timeout = httpx.Timeout(10.0)
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._token and self._chat_id)

    def render(self, message: str, title: str | None = None) -> str:
        body = html.escape(message, quote=False)
        if title:
            return f"<b>{html.escape(title, quote=False)}</b>\n\n{body}"
        return body

    async def send(
        self, message: str, *, title: str | None = None, **kwargs: Any
    ) -> bool:
        if not self.configured:
            logger.warning(f"Telegram not configured, dropping alert: {title or message[:60]}")
            return False

        payload = {
            "chat_id": self._chat_id,
            "text": self.render(message, title),
            "parse_mode": "HTML",
            "disable_web_page_preview": kwargs.get("disable_preview", True),
        }

        try:
            async with httpx.AsyncClient(
                base_url=f"{TELEGRAM_API_URL}/bot{self._token}",
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.post("/sendMessage", json=payload)
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Telegram HTTP error {e.response.status_code} for alert {title!r}")
            return False
        except httpx.HTTPError as e:
            logger.error(f"Telegram delivery failed for alert {title!r}: {e}")
            return False

        if not result.get("ok"):
            logger.error(f"Telegram rejected alert {title!r}: {result.get('description')}")
            return False
        logger.info(f"Telegram alert delivered: {title or 'untitled'}")
        return True
