"""Telethon transport adapter.

Implements the core TransportPort on top of a logged-in TelegramClient.
Conversation ids are chat ids rendered as text; usernames ("@name") are
accepted too.
"""

from __future__ import annotations

import io
from typing import Any, List, Union

from telethon import TelegramClient
from telethon.tl.functions.messages import SetTypingRequest
from telethon.tl.types import SendMessageCancelAction, SendMessageTypingAction

from adapters.telegram_mapper import history_entry_from
from core.models import AudioPayload, ConnectionState, HistoryEntry


def peer_from_conversation_id(conversation_id: str) -> Union[int, str]:
    """Telethon wants ints for numeric ids and strings for usernames."""

    try:
        return int(conversation_id)
    except ValueError:
        return conversation_id


class TelegramTransport:
    """Thin TelegramClient wrapper that satisfies the TransportPort contract."""

    def __init__(self, client: TelegramClient) -> None:
        self._client = client

    async def get_state(self) -> ConnectionState:
        if self._client.is_connected():
            return ConnectionState.CONNECTED
        return ConnectionState.NOT_CONNECTED

    async def resolve_conversation(self, conversation_id: str) -> Any:
        return await self._client.get_input_entity(peer_from_conversation_id(conversation_id))

    async def send_text(self, conversation_id: str, text: str) -> Any:
        return await self._client.send_message(peer_from_conversation_id(conversation_id), text)

    async def send_audio(self, conversation_id: str, payload: AudioPayload, as_voice: bool) -> Any:
        # Telethon picks the upload name (and therefore the mime type) from .name.
        handle = io.BytesIO(payload.data)
        handle.name = payload.filename
        return await self._client.send_file(
            peer_from_conversation_id(conversation_id),
            handle,
            voice_note=as_voice,
        )

    async def set_typing(self, conversation_id: str) -> None:
        await self._set_action(conversation_id, SendMessageTypingAction())

    async def clear_typing(self, conversation_id: str) -> None:
        await self._set_action(conversation_id, SendMessageCancelAction())

    async def fetch_history(self, conversation_id: str, limit: int) -> List[HistoryEntry]:
        peer = peer_from_conversation_id(conversation_id)
        entries: List[HistoryEntry] = []
        async for message in self._client.iter_messages(peer, limit=limit):
            entries.append(history_entry_from(message))
        return entries

    async def _set_action(self, conversation_id: str, action: Any) -> None:
        peer = await self._client.get_input_entity(peer_from_conversation_id(conversation_id))
        await self._client(SetTypingRequest(peer=peer, action=action))
