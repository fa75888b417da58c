from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import pytest

from core.auto_reply import AutoReplyState
from core.config import DispatchConfig
from core.dispatcher import OutboundDispatcher
from core.errors import RuleConfigError, SendFailed
from core.flag_sets import FlagSets
from core.history import ConversationStore
from core.models import AudioPayload, ConnectionState, HistoryEntry, OutboundEvent
from core.outbound import OutboundService
from core.panel import PanelService

FAST = DispatchConfig(
    retries=0,
    backoff_ms=0,
    ready_tries=1,
    ready_delay_ms=0,
    materialize_tries=1,
    materialize_delay_ms=0,
)


class MemoryFlagStore:
    def __init__(self) -> None:
        self.saved: dict[str, list[str]] = {}

    def load(self, name: str) -> set[str]:
        return set(self.saved.get(name, []))

    def save(self, name: str, items: Iterable[str]) -> None:
        self.saved[name] = list(items)


class FakeTransport:
    def __init__(self, error: str = "", remote: Optional[list[HistoryEntry]] = None) -> None:
        self.error = error
        self.sent: list[tuple[str, str]] = []
        self.remote = remote or []
        self.fetches: list[tuple[str, int]] = []

    async def get_state(self) -> ConnectionState:
        return ConnectionState.CONNECTED

    async def resolve_conversation(self, conversation_id: str):
        return conversation_id

    async def send_text(self, conversation_id: str, text: str) -> None:
        if self.error:
            raise RuntimeError(self.error)
        self.sent.append((conversation_id, text))

    async def send_audio(self, conversation_id: str, payload: AudioPayload, as_voice: bool) -> None:
        raise NotImplementedError

    async def set_typing(self, conversation_id: str) -> None:
        return None

    async def clear_typing(self, conversation_id: str) -> None:
        return None

    async def fetch_history(self, conversation_id: str, limit: int) -> list[HistoryEntry]:
        self.fetches.append((conversation_id, limit))
        return list(self.remote)


class NullNotifier:
    async def publish(self, event: OutboundEvent) -> None:
        return None


def _panel(transport: Optional[FakeTransport] = None):
    store_backend = MemoryFlagStore()
    flags = FlagSets(store_backend)
    flags.load()
    store = ConversationStore()
    outbound = None
    if transport is not None:
        outbound = OutboundService(OutboundDispatcher(transport, FAST), transport, store, NullNotifier())
    panel = PanelService(AutoReplyState(), flags, store, outbound, transport)
    return panel, flags, store, store_backend


def test_send_direct_records_local_message() -> None:
    transport = FakeTransport()
    panel, _, store, _ = _panel(transport)

    entry = asyncio.run(panel.send_direct("10", "hello there"))

    assert transport.sent == [("10", "hello there")]
    assert entry.id.startswith("local-")
    assert store.history("10") == [entry]


def test_send_direct_surfaces_dispatch_errors() -> None:
    panel, _, store, _ = _panel(FakeTransport(error="USER_IS_BLOCKED"))

    with pytest.raises(SendFailed) as excinfo:
        asyncio.run(panel.send_direct("10", "hello"))

    assert "USER_IS_BLOCKED" in str(excinfo.value)
    assert store.history("10") == []


def test_send_direct_requires_id_and_text() -> None:
    panel, _, _, _ = _panel(FakeTransport())

    with pytest.raises(ValueError):
        asyncio.run(panel.send_direct("10", ""))


def test_send_to_contact_marks_override() -> None:
    panel, flags, _, backend = _panel(FakeTransport())

    asyncio.run(panel.send_to_contact("10", "hi, it's the shop"))

    assert "10" in flags.unknown_override
    assert backend.saved["unknown_overrides"] == ["10"]


def test_failed_send_to_contact_leaves_override_alone() -> None:
    panel, flags, _, _ = _panel(FakeTransport(error="PEER_ID_INVALID"))

    with pytest.raises(SendFailed):
        asyncio.run(panel.send_to_contact("10", "hi"))

    assert "10" not in flags.unknown_override


def test_panel_without_transport_refuses_sends() -> None:
    panel, _, _, _ = _panel()

    with pytest.raises(RuntimeError):
        asyncio.run(panel.send_direct("10", "hi"))


def test_forget_conversation_resets_everything() -> None:
    panel, flags, store, backend = _panel()
    store.ensure("10", "Ana")
    store.record_outbound("10", "hello")
    flags.triggered_once.add("10")

    panel.forget_conversation("10")

    assert "10" in flags.hidden
    assert "10" not in flags.triggered_once
    assert "10" in flags.unknown_override
    assert "10" not in store
    assert store.history("10") == []
    assert backend.saved["hidden_chats"] == ["10"]
    assert backend.saved["bot_triggers"] == []


def test_mark_and_unmark_unknown() -> None:
    panel, _, _, _ = _panel()

    panel.mark_unknown("b")
    panel.mark_unknown("a")
    assert panel.list_overrides() == ["a", "b"]

    panel.unmark_unknown("a")
    assert panel.list_overrides() == ["b"]
    assert panel.flag_counts() == {"triggered_once": 0, "hidden": 0, "unknown_override": 1}


def test_invalid_configuration_keeps_previous_rules() -> None:
    panel, _, _, _ = _panel()
    panel.configure_auto_reply([{"match": "price", "reply": "10 USD"}], welcome="  Hi!  ")

    with pytest.raises(RuleConfigError):
        panel.configure_auto_reply([{"match": "x", "reply": 5}])

    assert panel.auto_reply_status() == {"enabled": True, "rules": 1, "welcome": "Hi!"}


def test_disable_keeps_rules() -> None:
    panel, _, _, _ = _panel()
    panel.configure_auto_reply([{"match": "price", "reply": "10 USD"}])

    status = panel.disable_auto_reply()

    assert status == {"enabled": False, "rules": 1, "welcome": None}


def test_resolve_id_prefers_explicit_id() -> None:
    panel, _, store, _ = _panel()
    store.ensure("10", "Ana Silva")
    store.ensure("11", "Bruno")

    assert panel.resolve_id(conversation_id="99", name="Ana") == "99"
    assert panel.resolve_id(name="bruno") == "11"
    assert panel.resolve_id() is None


def _remote(message_id: str, minutes: int, from_me: bool = False) -> HistoryEntry:
    return HistoryEntry(
        id=message_id,
        body=f"message {message_id}",
        timestamp=datetime(2024, 5, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes),
        from_me=from_me,
    )


def test_empty_history_is_fetched_from_transport_once() -> None:
    # Telethon yields newest first.
    transport = FakeTransport(remote=[_remote("3", 2, from_me=True), _remote("2", 1), _remote("1", 0)])
    panel, _, store, _ = _panel(transport)
    store.ensure("10", "Ana")

    entries = asyncio.run(panel.history("10"))
    again = asyncio.run(panel.history("10"))

    assert [entry.id for entry in entries] == ["1", "2", "3"]
    assert again == entries
    assert transport.fetches == [("10", 50)]
    assert [entry.id for entry in store.history("10")] == ["1", "2", "3"]


def test_history_in_memory_is_not_refetched() -> None:
    transport = FakeTransport(remote=[_remote("1", 0)])
    panel, _, store, _ = _panel(transport)
    store.record_outbound("10", "hello")

    entries = asyncio.run(panel.history("10"))

    assert [entry.body for entry in entries] == ["hello"]
    assert transport.fetches == []


def test_history_without_transport_stays_empty() -> None:
    panel, _, _, _ = _panel()

    assert asyncio.run(panel.history("10")) == []
