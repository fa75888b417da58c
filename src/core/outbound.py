"""Outbound sends: dispatch, record in history, notify the panel."""

from __future__ import annotations

import logging

from core.dispatcher import OutboundDispatcher
from core.history import ConversationStore
from core.models import AudioPayload, HistoryEntry, OutboundEvent
from core.ports import PanelNotifierPort, TransportPort

LOGGER = logging.getLogger(__name__)


class OutboundService:
    """Every outbound message goes through here, whoever initiated it.

    Dispatcher errors propagate; deciding whether to swallow them is up to
    the caller (bot paths log, operator paths surface them).
    """

    def __init__(
        self,
        dispatcher: OutboundDispatcher,
        transport: TransportPort,
        store: ConversationStore,
        notifier: PanelNotifierPort,
    ) -> None:
        self._dispatcher = dispatcher
        self._transport = transport
        self._store = store
        self._notifier = notifier

    async def send_text(self, conversation_id: str, text: str, origin: str = "bot") -> HistoryEntry:
        await self._dispatcher.send(
            conversation_id,
            lambda: self._transport.send_text(conversation_id, text),
        )
        entry = self._store.record_outbound(conversation_id, text, prefix=origin)
        await self._publish(conversation_id, entry)
        return entry

    async def send_audio(
        self,
        conversation_id: str,
        payload: AudioPayload,
        as_voice: bool,
        origin: str = "bot",
    ) -> HistoryEntry:
        await self._dispatcher.send(
            conversation_id,
            lambda: self._transport.send_audio(conversation_id, payload, as_voice),
        )
        label = "[Voice note]" if as_voice else "[Audio]"
        entry = self._store.record_outbound(
            conversation_id, label, media_ref=payload.filename, prefix=origin
        )
        await self._publish(conversation_id, entry)
        return entry

    async def _publish(self, conversation_id: str, entry: HistoryEntry) -> None:
        event = OutboundEvent(
            conversation_id=conversation_id,
            body=entry.body or "",
            timestamp=entry.timestamp,
            from_me=True,
            media_ref=entry.media_ref,
        )
        try:
            await self._notifier.publish(event)
        except Exception:
            # Delivery already happened; notifier errors stay here.
            LOGGER.exception("Panel notification failed for %s", conversation_id)
