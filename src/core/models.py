"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class ConnectionState(str, Enum):
    CONNECTED = "connected"
    NOT_CONNECTED = "not_connected"
    OTHER = "other"


@dataclass
class Conversation:
    """A single addressable peer (user or group)."""

    id: str
    display_name: str
    is_group: bool = False


@dataclass(frozen=True)
class HistoryEntry:
    """One message in a conversation's bounded history."""

    id: str
    body: Optional[str]
    timestamp: datetime
    from_me: bool
    media_ref: Optional[str] = None


@dataclass(frozen=True)
class InboundMessage:
    """Minimal inbound message context used by the core processing pipeline."""

    conversation_id: str
    display_name: str
    is_group: bool
    message_id: Optional[str]
    body: str
    has_media: bool
    timestamp: Optional[datetime]
    from_me: bool
    sender_known: bool


@dataclass(frozen=True)
class AudioPayload:
    """Resolved audio bytes ready to hand to the transport."""

    data: bytes
    filename: str
    mimetype: str


@dataclass(frozen=True)
class OutboundEvent:
    """Payload handed to the panel notification hook."""

    conversation_id: str
    body: str
    timestamp: datetime
    from_me: bool = True
    media_ref: Optional[str] = None
