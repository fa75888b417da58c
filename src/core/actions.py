"""Sequential execution of post-reply actions.

Every action is best-effort: a failure is logged, recorded in the returned
outcomes and the next action still runs.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import Any, Awaitable, Callable, Iterable, List, Optional

from core.errors import ErrorKind, Failure
from core.media import MediaResolver
from core.outbound import OutboundService
from core.ports import TransportPort
from core.rules_engine import Action, AudioAction, DelayAction, TextAction, TypingAction

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionOutcome:
    action: Action
    failure: Optional[Failure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class ActionRunner:
    def __init__(
        self,
        outbound: OutboundService,
        transport: TransportPort,
        media: MediaResolver,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._outbound = outbound
        self._transport = transport
        self._media = media
        self._sleep = sleep

    async def run(self, conversation_id: str, actions: Iterable[Action]) -> List[ActionOutcome]:
        outcomes: List[ActionOutcome] = []
        for action in actions:
            try:
                failure = await self._run_one(conversation_id, action)
            except Exception as exc:
                failure = Failure.from_exception(exc)
                LOGGER.error(
                    "Action %s failed for %s: %s",
                    type(action).__name__,
                    conversation_id,
                    failure.detail,
                )
            outcomes.append(ActionOutcome(action=action, failure=failure))
        return outcomes

    async def _run_one(self, conversation_id: str, action: Action) -> Optional[Failure]:
        if isinstance(action, DelayAction):
            await self._sleep(action.ms / 1000)
        elif isinstance(action, TypingAction):
            return await self._typing(conversation_id, action.ms)
        elif isinstance(action, TextAction):
            await self._outbound.send_text(conversation_id, action.text)
        elif isinstance(action, AudioAction):
            payload = await self._media.resolve(action.file, action.url)
            await self._outbound.send_audio(conversation_id, payload, action.as_voice)
        else:
            raise TypeError(f"unsupported action: {action!r}")
        return None

    async def _typing(self, conversation_id: str, ms: int) -> Optional[Failure]:
        try:
            await self._transport.set_typing(conversation_id)
            await self._sleep(ms / 1000)
            await self._transport.clear_typing(conversation_id)
        except Exception as exc:
            # Presence is cosmetic: recorded, never escalated.
            LOGGER.debug("Typing indicator failed for %s: %s", conversation_id, exc)
            return Failure(kind=ErrorKind.ACTION, detail=f"typing: {exc}")
        return None


def failed_kinds(outcomes: Iterable[ActionOutcome]) -> List[ErrorKind]:
    return [outcome.failure.kind for outcome in outcomes if outcome.failure is not None]
