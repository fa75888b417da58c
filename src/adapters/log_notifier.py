"""Logging panel notifier.

Default PanelNotifierPort: writes each outbound event to the application log.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from adapters.notification_formatting import format_event_line
from core.models import OutboundEvent

LOGGER = logging.getLogger(__name__)


class LoggingPanelNotifier:
    def __init__(
        self,
        snippet_chars: int,
        name_lookup: Optional[Callable[[str], Optional[str]]] = None,
    ) -> None:
        self._snippet_chars = snippet_chars
        self._name_lookup = name_lookup

    async def publish(self, event: OutboundEvent) -> None:
        display_name = self._name_lookup(event.conversation_id) if self._name_lookup else None
        LOGGER.info("%s", format_event_line(event, self._snippet_chars, display_name))
