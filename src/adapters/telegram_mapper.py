"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the core pipeline.
"""

from __future__ import annotations

from typing import Any, Optional

from telethon.tl.custom import Message
from telethon.tl.types import User

from core.models import HistoryEntry, InboundMessage


def display_name_for(entity: Any, fallback: Optional[str] = None) -> str:
    """Best human-readable label for a chat, channel or user entity."""

    title = getattr(entity, "title", None)
    if title:
        return str(title)
    first = getattr(entity, "first_name", None)
    last = getattr(entity, "last_name", None)
    if first or last:
        return " ".join(part for part in [first, last] if part)
    username = getattr(entity, "username", None)
    if username:
        return f"@{username}"
    entity_id = getattr(entity, "id", None)
    return fallback or str(entity_id or "unknown")


def is_known_contact(sender: Any) -> bool:
    """A sender is known when it is a user saved in the account's contacts.

    Anything that is not a user (channels posting in groups, anonymous
    admins) is treated as known so the bot never greets it.
    """

    if sender is None:
        return False
    if not isinstance(sender, User):
        return True
    return bool(getattr(sender, "contact", False) or getattr(sender, "is_self", False))


async def build_inbound(message: Message) -> InboundMessage:
    """Build a core InboundMessage from a Telethon Message."""

    conversation_id = str(message.chat_id)
    chat = await message.get_chat()
    sender = await message.get_sender()

    return InboundMessage(
        conversation_id=conversation_id,
        display_name=display_name_for(chat, fallback=conversation_id),
        is_group=bool(getattr(message, "is_group", False)),
        message_id=str(message.id) if message.id is not None else None,
        body=message.raw_text or "",
        has_media=message.media is not None,
        timestamp=message.date,
        from_me=bool(message.out),
        sender_known=is_known_contact(sender),
    )


def history_entry_from(message: Message) -> HistoryEntry:
    """Map a fetched Telethon message into a history entry."""

    return HistoryEntry(
        id=str(message.id),
        body=message.raw_text or None,
        timestamp=message.date,
        from_me=bool(message.out),
        media_ref="media" if message.media is not None else None,
    )
