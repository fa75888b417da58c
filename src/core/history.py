"""In-memory conversation registry with bounded per-conversation history."""

from __future__ import annotations

from collections import deque
from datetime import datetime, timezone
import time
from typing import Container, Deque, Iterable, Optional

from core.models import Conversation, HistoryEntry, InboundMessage

DEFAULT_HISTORY_LIMIT = 200


def _now() -> datetime:
    return datetime.now(timezone.utc)


def synthesize_message_id(prefix: str) -> str:
    """Local id for messages the transport has not numbered (yet)."""

    return f"{prefix}-{time.time_ns() // 1_000_000}"


class ConversationStore:
    """Conversation metadata plus a FIFO-capped message history per conversation."""

    def __init__(self, history_limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self._history_limit = history_limit
        self._conversations: dict[str, Conversation] = {}
        self._messages: dict[str, Deque[HistoryEntry]] = {}

    def __contains__(self, conversation_id: str) -> bool:
        return conversation_id in self._conversations

    def get(self, conversation_id: str) -> Optional[Conversation]:
        return self._conversations.get(conversation_id)

    def ensure(self, conversation_id: str, display_name: str = "", is_group: bool = False) -> bool:
        """Register a conversation on first sight. Returns True if it was new.

        The group flag never changes once observed; the display name is
        refreshed whenever a non-empty one is supplied.
        """

        existing = self._conversations.get(conversation_id)
        if existing is None:
            self._conversations[conversation_id] = Conversation(
                id=conversation_id,
                display_name=display_name or conversation_id,
                is_group=is_group,
            )
            return True
        if display_name:
            existing.display_name = display_name
        return False

    def push(self, conversation_id: str, entry: HistoryEntry) -> None:
        history = self._messages.get(conversation_id)
        if history is None:
            history = deque(maxlen=self._history_limit)
            self._messages[conversation_id] = history
        history.append(entry)

    def record_inbound(self, message: InboundMessage) -> HistoryEntry:
        entry = HistoryEntry(
            id=message.message_id or synthesize_message_id("local"),
            body=message.body or None,
            timestamp=message.timestamp or _now(),
            from_me=message.from_me,
            media_ref="media" if message.has_media else None,
        )
        self.push(message.conversation_id, entry)
        return entry

    def record_outbound(
        self,
        conversation_id: str,
        body: str,
        media_ref: Optional[str] = None,
        prefix: str = "bot",
    ) -> HistoryEntry:
        self.ensure(conversation_id)
        entry = HistoryEntry(
            id=synthesize_message_id(prefix),
            body=body,
            timestamp=_now(),
            from_me=True,
            media_ref=media_ref,
        )
        self.push(conversation_id, entry)
        return entry

    def history(self, conversation_id: str) -> list[HistoryEntry]:
        return list(self._messages.get(conversation_id, ()))

    def backfill(self, conversation_id: str, entries: Iterable[HistoryEntry]) -> list[HistoryEntry]:
        """Merge fetched messages into the history, ordered by timestamp.

        Entries already present (same id) are kept as they are.
        """

        existing = self.history(conversation_id)
        seen = {entry.id for entry in existing}
        merged = existing + [entry for entry in entries if entry.id not in seen]
        merged.sort(key=lambda entry: entry.timestamp)
        self._messages[conversation_id] = deque(merged, maxlen=self._history_limit)
        return list(self._messages[conversation_id])

    def forget(self, conversation_id: str) -> None:
        self._conversations.pop(conversation_id, None)
        self._messages.pop(conversation_id, None)

    def visible(self, hidden: Container[str]) -> list[Conversation]:
        return [conv for conv in self._conversations.values() if conv.id not in hidden]

    def find_by_name(self, name: str) -> Optional[str]:
        """Resolve a conversation id from a display-name fragment.

        A single substring hit wins, otherwise an exact (case-insensitive)
        name, otherwise an id containing the fragment.
        """

        needle = name.strip().lower()
        if not needle:
            return None
        hits = [c for c in self._conversations.values() if needle in c.display_name.lower()]
        if len(hits) == 1:
            return hits[0].id
        for conv in hits:
            if conv.display_name.lower() == needle:
                return conv.id
        if not hits:
            for conv in self._conversations.values():
                if needle in conv.id.lower():
                    return conv.id
        return None
