"""Telethon client construction for the responder and the login command."""

from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from telethon import TelegramClient

import settings

LOGGER = logging.getLogger(__name__)

DEFAULT_SESSION_NAME = "telecrm"


def _api_credentials() -> tuple[int, str]:
    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")
    try:
        return int(api_id), api_hash
    except ValueError as exc:
        raise RuntimeError("API_ID must be numeric") from exc


def session_path(session_name: Optional[str] = None) -> str:
    """Where the .session file lives; bare names go under the data directory."""

    name = session_name or os.getenv("SESSION_NAME") or DEFAULT_SESSION_NAME
    if os.path.isabs(name) or os.path.dirname(name):
        return name
    os.makedirs(settings.DATA_DIR, exist_ok=True)
    return os.path.join(settings.DATA_DIR, name)


def build_client(session_name: Optional[str] = None) -> TelegramClient:
    """Create a client with reconnects enabled.

    The dispatcher polls ``is_connected()`` before each send, so Telethon's own
    reconnect loop is what brings the transport back after a drop.
    """

    load_dotenv()
    api_id, api_hash = _api_credentials()
    path = session_path(session_name)
    LOGGER.info("Initializing Telegram client (session %s)", path)
    return TelegramClient(
        path,
        api_id,
        api_hash,
        connection_retries=settings.DISPATCH_RETRIES,
        auto_reconnect=True,
    )
