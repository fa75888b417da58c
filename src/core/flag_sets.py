"""Persistent sets of conversation ids.

Each set is written out in full after every change. The file is the shared
state: the running responder and the offline CLI both edit it, so every read
and mutation starts from what is on disk. After a failed write the in-memory
set stays authoritative until a later write succeeds.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from core.errors import ErrorKind, Failure
from core.ports import FlagStorePort

LOGGER = logging.getLogger(__name__)

TRIGGERED_ONCE = "bot_triggers"
HIDDEN = "hidden_chats"
UNKNOWN_OVERRIDE = "unknown_overrides"


class PersistentFlagSet:
    def __init__(self, name: str, store: FlagStorePort) -> None:
        self.name = name
        self._store = store
        self._items: set[str] = set()
        self.last_failure: Optional[Failure] = None

    def load(self) -> set[str]:
        """Replace the in-memory set with the stored one (empty on any error)."""

        try:
            self._items = set(self._store.load(self.name))
        except Exception as exc:
            LOGGER.warning("Could not load %s, starting empty: %s", self.name, exc)
            self._items = set()
        return set(self._items)

    def refresh(self) -> None:
        """Pick up changes another process wrote since our last read."""

        if self.last_failure is not None:
            return
        try:
            self._items = set(self._store.load(self.name))
        except Exception as exc:
            LOGGER.warning("Could not re-read %s, keeping memory: %s", self.name, exc)

    def flush(self) -> Optional[Failure]:
        try:
            self._store.save(self.name, sorted(self._items))
        except Exception as exc:
            LOGGER.error("Could not persist %s: %s", self.name, exc)
            self.last_failure = Failure(kind=ErrorKind.PERSISTENCE, detail=f"{self.name}: {exc}")
            return self.last_failure
        self.last_failure = None
        return None

    def add(self, item: str) -> Optional[Failure]:
        self.refresh()
        self._items.add(item)
        return self.flush()

    def discard(self, item: str) -> Optional[Failure]:
        self.refresh()
        self._items.discard(item)
        return self.flush()

    def __contains__(self, item: object) -> bool:
        self.refresh()
        return item in self._items

    def __iter__(self) -> Iterator[str]:
        self.refresh()
        return iter(sorted(self._items))

    def __len__(self) -> int:
        return len(self._items)


class FlagSets:
    """The three durable sets the auto-reply gate and the panel rely on."""

    def __init__(self, store: FlagStorePort) -> None:
        self.triggered_once = PersistentFlagSet(TRIGGERED_ONCE, store)
        self.hidden = PersistentFlagSet(HIDDEN, store)
        self.unknown_override = PersistentFlagSet(UNKNOWN_OVERRIDE, store)

    def load(self) -> None:
        for flag_set in (self.triggered_once, self.hidden, self.unknown_override):
            flag_set.load()
            LOGGER.info("Loaded %s entries from %s", len(flag_set), flag_set.name)
