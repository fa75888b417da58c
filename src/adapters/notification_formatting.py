"""Shared notification formatting helpers.

Keeping formatting here prevents drift between adapters and keeps messages
consistent regardless of delivery channel.
"""

from __future__ import annotations

import html
from typing import Optional

from core.models import OutboundEvent


def format_conversation_label(conversation_id: str, display_name: Optional[str]) -> str:
    """Return a human-friendly conversation label."""

    if not display_name or display_name == conversation_id:
        return conversation_id
    return f"{display_name} ({conversation_id})"


def _snippet(event: OutboundEvent, snippet_chars: int) -> str:
    body = event.body or ""
    if event.media_ref and not body:
        body = f"[{event.media_ref}]"
    return body[:snippet_chars].strip()


def format_event_line(
    event: OutboundEvent,
    snippet_chars: int,
    display_name: Optional[str] = None,
) -> str:
    """One-line summary used by the logging notifier."""

    label = format_conversation_label(event.conversation_id, display_name)
    direction = "->" if event.from_me else "<-"
    return f"{direction} {label}: {_snippet(event, snippet_chars)}"


def _format_html(event: OutboundEvent, snippet_chars: int, display_name: Optional[str]) -> str:
    """Create the HTML body used by the Bot API adapter."""

    timestamp = html.escape(event.timestamp.astimezone().strftime("%H:%M:%S %d-%m-%Y").strip())
    label = html.escape(format_conversation_label(event.conversation_id, display_name))
    excerpt = html.escape(_snippet(event, snippet_chars))

    parts = [
        f"[{timestamp}]",
        f"<b>To:</b> {label}",
        "──────────────",
        "",
        excerpt,
    ]
    if event.media_ref:
        parts.extend(["", f"<b>Attachment:</b> {html.escape(event.media_ref)}"])
    parts.append("──────────────")
    return "\n".join(parts)


def format_notification(
    event: OutboundEvent,
    snippet_chars: int,
    mode: str,
    display_name: Optional[str] = None,
) -> str:
    """Return the notification formatted for the requested mode."""

    if mode == "plain":
        return format_event_line(event, snippet_chars, display_name)
    if mode == "html":
        return _format_html(event, snippet_chars, display_name)
    raise ValueError(f"Unsupported notification format: {mode}")
