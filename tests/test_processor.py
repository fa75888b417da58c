from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Iterable, Optional

from core.auto_reply import AutoReplyState, ReplyOutcome
from core.flag_sets import FlagSets
from core.history import ConversationStore
from core.models import InboundMessage
from core.panel import PanelService
from core.processor import MessageProcessor


class MemoryFlagStore:
    def __init__(self) -> None:
        self.saved: dict[str, list[str]] = {}

    def load(self, name: str) -> set[str]:
        return set(self.saved.get(name, []))

    def save(self, name: str, items: Iterable[str]) -> None:
        self.saved[name] = list(items)


class RecordingEngine:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.seen: list[InboundMessage] = []
        self._error = error

    async def handle(self, message: InboundMessage) -> ReplyOutcome:
        self.seen.append(message)
        if self._error is not None:
            raise self._error
        return ReplyOutcome(eligible=False)


def _inbound(conversation_id: str, text: str = "hello", has_media: bool = False) -> InboundMessage:
    return InboundMessage(
        conversation_id=conversation_id,
        display_name=f"Peer {conversation_id}",
        is_group=False,
        message_id=None,
        body=text,
        has_media=has_media,
        timestamp=None,
        from_me=False,
        sender_known=False,
    )


def _setup(engine: RecordingEngine):
    flags = FlagSets(MemoryFlagStore())
    flags.load()
    store = ConversationStore()
    processor = MessageProcessor(store, flags, engine)
    panel = PanelService(AutoReplyState(), flags, store)
    return flags, store, processor, panel


def test_hidden_conversation_reappears_on_new_message() -> None:
    flags, store, processor, panel = _setup(RecordingEngine())
    asyncio.run(processor.handle(_inbound("1")))
    asyncio.run(processor.handle(_inbound("2")))

    panel.hide_conversation("2")
    assert [c.id for c in panel.visible_conversations()] == ["1"]

    asyncio.run(processor.handle(_inbound("2", "I'm back")))

    assert "2" not in flags.hidden
    assert [c.id for c in panel.visible_conversations()] == ["1", "2"]


def test_inbound_is_recorded_with_local_id_and_clock() -> None:
    _, store, processor, _ = _setup(RecordingEngine())
    before = datetime.now(timezone.utc)

    asyncio.run(processor.handle(_inbound("7", text="", has_media=True)))

    [entry] = store.history("7")
    assert entry.id.startswith("local-")
    assert entry.timestamp >= before
    assert entry.body is None
    assert entry.media_ref is not None
    assert store.get("7").display_name == "Peer 7"


def test_engine_errors_do_not_escape() -> None:
    engine = RecordingEngine(error=RuntimeError("boom"))
    _, store, processor, _ = _setup(engine)

    assert asyncio.run(processor.handle(_inbound("9"))) is None
    assert len(engine.seen) == 1
    assert len(store.history("9")) == 1
