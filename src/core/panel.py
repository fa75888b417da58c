"""Administration surface used by the operator panel and the CLI.

Operator-initiated sends surface dispatcher errors to the caller, unlike the
auto-reply path which only logs them.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from core.auto_reply import AutoReplyState
from core.flag_sets import FlagSets
from core.history import ConversationStore
from core.models import Conversation, HistoryEntry
from core.outbound import OutboundService
from core.ports import TransportPort

LOGGER = logging.getLogger(__name__)

HISTORY_FETCH_LIMIT = 50


class PanelService:
    def __init__(
        self,
        state: AutoReplyState,
        flags: FlagSets,
        store: ConversationStore,
        outbound: Optional[OutboundService] = None,
        transport: Optional[TransportPort] = None,
    ) -> None:
        self._state = state
        self._flags = flags
        self._store = store
        self._outbound = outbound
        self._transport = transport

    # Auto-reply configuration

    def configure_auto_reply(self, rules: Any, welcome: Any = None, enabled: bool = True) -> dict[str, Any]:
        count = self._state.configure(rules, welcome, enabled)
        LOGGER.info("Auto-reply configured: %s rules, enabled=%s", count, enabled)
        return self._state.status()

    def disable_auto_reply(self) -> dict[str, Any]:
        self._state.disable()
        LOGGER.info("Auto-reply disabled")
        return self._state.status()

    def auto_reply_status(self) -> dict[str, Any]:
        return self._state.status()

    # Overrides and visibility

    def mark_unknown(self, conversation_id: str) -> None:
        self._flags.unknown_override.add(conversation_id)

    def unmark_unknown(self, conversation_id: str) -> None:
        self._flags.unknown_override.discard(conversation_id)

    def list_overrides(self) -> list[str]:
        return list(self._flags.unknown_override)

    def flag_counts(self) -> dict[str, int]:
        return {
            "triggered_once": len(self._flags.triggered_once),
            "hidden": len(self._flags.hidden),
            "unknown_override": len(self._flags.unknown_override),
        }

    def hide_conversation(self, conversation_id: str) -> None:
        self._flags.hidden.add(conversation_id)

    def forget_conversation(self, conversation_id: str) -> None:
        """Hide a conversation and reset it so the bot greets it again.

        The id is also marked unknown, so the next inbound message from it is
        eligible even if the peer is a saved contact.
        """

        self._flags.hidden.add(conversation_id)
        self._flags.triggered_once.discard(conversation_id)
        self._flags.unknown_override.add(conversation_id)
        self._store.forget(conversation_id)
        LOGGER.info("Forgot conversation %s", conversation_id)

    def resolve_id(self, conversation_id: Optional[str] = None, name: Optional[str] = None) -> Optional[str]:
        if conversation_id:
            return conversation_id
        if name:
            return self._store.find_by_name(name)
        return None

    # Read side

    def visible_conversations(self) -> list[Conversation]:
        return self._store.visible(self._flags.hidden)

    async def history(self, conversation_id: str, limit: int = HISTORY_FETCH_LIMIT) -> list[HistoryEntry]:
        """Conversation history, oldest first.

        Conversations known only from the startup preload have nothing in
        memory yet; their recent messages are fetched from the transport once.
        Fetch errors propagate to the operator.
        """

        entries = self._store.history(conversation_id)
        if not entries and self._transport is not None:
            fetched = await self._transport.fetch_history(conversation_id, limit)
            LOGGER.info("Fetched %s messages for %s", len(fetched), conversation_id)
            entries = self._store.backfill(conversation_id, fetched)
        return sorted(entries, key=lambda entry: entry.timestamp)

    # Operator sends

    async def send_direct(self, conversation_id: str, text: str) -> HistoryEntry:
        if not conversation_id or not text:
            raise ValueError("conversation id and text are required")
        return await self._require_outbound().send_text(conversation_id, text, origin="local")

    async def send_to_contact(self, conversation_id: str, text: str) -> HistoryEntry:
        """Start a conversation on the operator's initiative.

        The contact is marked unknown so the auto-reply still applies when
        they answer.
        """

        entry = await self.send_direct(conversation_id, text)
        self._flags.unknown_override.add(conversation_id)
        return entry

    def _require_outbound(self) -> OutboundService:
        if self._outbound is None:
            raise RuntimeError("panel has no outbound transport attached")
        return self._outbound
