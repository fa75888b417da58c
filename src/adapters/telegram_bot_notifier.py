"""Telegram Bot API panel notifier.

Mirrors every outbound message into an operator chat through a bot, so the
team can follow automated replies without opening the panel.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Callable, Optional
import urllib.error
import urllib.request

from adapters.notification_formatting import format_notification
from core.models import OutboundEvent

LOGGER = logging.getLogger(__name__)


class TelegramBotNotifier:
    """PanelNotifierPort adapter that posts events via the Telegram Bot API."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        snippet_chars: int,
        name_lookup: Optional[Callable[[str], Optional[str]]] = None,
    ) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._snippet_chars = snippet_chars
        self._name_lookup = name_lookup

    def _endpoint(self) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._bot_token}/sendMessage"

    async def publish(self, event: OutboundEvent) -> None:
        """Send the formatted event via the Bot API."""

        display_name = self._name_lookup(event.conversation_id) if self._name_lookup else None
        message = format_notification(event, self._snippet_chars, mode="html", display_name=display_name)
        payload = {
            "chat_id": self._chat_id,
            "text": message,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        await asyncio.to_thread(self._post, payload)

    def _post(self, payload: dict) -> None:
        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(self._endpoint(), data=data, method="POST")
        request.add_header("Content-Type", "application/json")
        try:
            with urllib.request.urlopen(request, timeout=10):
                pass
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            raise RuntimeError(f"Bot API error {e.code}: {body}") from e
