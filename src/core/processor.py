"""Core inbound message pipeline.

This module is integration-agnostic. It only relies on the conversation
store, the flag sets and the auto-reply engine, enabling other transports
without changes here.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.auto_reply import AutoReplyEngine, ReplyOutcome
from core.flag_sets import FlagSets
from core.history import ConversationStore
from core.models import InboundMessage

LOGGER = logging.getLogger(__name__)


class MessageProcessor:
    """Orchestrates un-hiding, history, and the auto-reply engine."""

    def __init__(
        self,
        store: ConversationStore,
        flags: FlagSets,
        engine: AutoReplyEngine,
    ) -> None:
        self._store = store
        self._flags = flags
        self._engine = engine

    async def handle(self, message: InboundMessage) -> Optional[ReplyOutcome]:
        """Process one inbound message. Never raises to the transport handler."""

        try:
            return await self._handle(message)
        except Exception:
            LOGGER.exception("Error while processing message for %s", message.conversation_id)
            return None

    async def _handle(self, message: InboundMessage) -> ReplyOutcome:
        conversation_id = message.conversation_id

        # A new message brings a hidden conversation back into the panel.
        if conversation_id in self._flags.hidden:
            self._flags.hidden.discard(conversation_id)
            LOGGER.info("Conversation %s is visible again", conversation_id)

        if self._store.ensure(conversation_id, message.display_name, message.is_group):
            LOGGER.info("New conversation %s (%s)", conversation_id, message.display_name)
        self._store.record_inbound(message)

        return await self._engine.handle(message)
