"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for the messaging transport, flag-set
storage and panel notifications so that the core can be reused with
different backends.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Protocol

from core.models import AudioPayload, ConnectionState, HistoryEntry, OutboundEvent


class TransportPort(Protocol):
    """Messaging client operations required by the core."""

    async def get_state(self) -> ConnectionState:
        ...

    async def resolve_conversation(self, conversation_id: str) -> Any:
        ...

    async def send_text(self, conversation_id: str, text: str) -> Any:
        ...

    async def send_audio(self, conversation_id: str, payload: AudioPayload, as_voice: bool) -> Any:
        ...

    async def set_typing(self, conversation_id: str) -> None:
        ...

    async def clear_typing(self, conversation_id: str) -> None:
        ...

    async def fetch_history(self, conversation_id: str, limit: int) -> List[HistoryEntry]:
        """Most recent messages of a conversation, in any order."""
        ...


class FlagStorePort(Protocol):
    """Durable storage for named sets of conversation ids."""

    def load(self, name: str) -> set[str]:
        ...

    def save(self, name: str, items: Iterable[str]) -> None:
        ...


class PanelNotifierPort(Protocol):
    """Live-view hook invoked whenever the bot or an operator sends something."""

    async def publish(self, event: OutboundEvent) -> None:
        ...


class MediaFetcherPort(Protocol):
    """Fetch a remote audio payload."""

    async def fetch(self, url: str) -> AudioPayload:
        ...
