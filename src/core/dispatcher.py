"""Serialized outbound delivery with readiness checks and bounded retry.

The transport is a single shared session: two overlapping calls can corrupt
its state, so every send in the process goes through one FIFO lock. Each
queued send waits for the transport to be connected, gives the target
conversation a chance to materialize, and retries transient failures.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from core.config import DispatchConfig
from core.errors import SendFailed, TransportNotReady
from core.models import ConnectionState
from core.ports import TransportPort

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

SendOperation = Callable[[], Awaitable[T]]


def is_retryable(error: BaseException, patterns: tuple[str, ...]) -> bool:
    """Return True if the error text matches a known transient failure."""

    message = str(error).lower()
    return any(pattern in message for pattern in patterns)


class OutboundDispatcher:
    """One logical send queue for the whole process."""

    def __init__(
        self,
        transport: TransportPort,
        config: DispatchConfig,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._config = config
        self._sleep = sleep
        self._lock = asyncio.Lock()

    async def send(self, conversation_id: str, operation: SendOperation) -> Any:
        """Queue one transport call and return its result.

        Raises TransportNotReady if the transport never connects, SendFailed
        when the call keeps failing (chained to the last transport error).
        """

        async with self._lock:
            return await self._send_with_retry(conversation_id, operation)

    async def wait_for_ready(self) -> None:
        for _ in range(self._config.ready_tries):
            try:
                if await self._transport.get_state() == ConnectionState.CONNECTED:
                    return
            except Exception as exc:
                LOGGER.debug("State probe failed: %s", exc)
            await self._sleep(self._config.ready_delay_ms / 1000)
        raise TransportNotReady(
            f"transport not connected after {self._config.ready_tries} checks"
        )

    async def wait_for_conversation(self, conversation_id: str) -> bool:
        """Poll until the transport can resolve the conversation.

        Timing out is not fatal: some transports only materialize a chat on send.
        """

        for _ in range(self._config.materialize_tries):
            try:
                if await self._transport.resolve_conversation(conversation_id):
                    return True
            except Exception as exc:
                LOGGER.debug("Conversation %s not resolvable yet: %s", conversation_id, exc)
            await self._sleep(self._config.materialize_delay_ms / 1000)
        LOGGER.info("Conversation %s not materialized, sending anyway", conversation_id)
        return False

    async def _send_with_retry(self, conversation_id: str, operation: SendOperation) -> Any:
        attempts = 0
        while True:
            attempts += 1
            await self.wait_for_ready()
            await self.wait_for_conversation(conversation_id)
            try:
                return await operation()
            except Exception as exc:
                retryable = is_retryable(exc, self._config.retryable_patterns)
                if retryable and attempts <= self._config.retries:
                    LOGGER.warning(
                        "Send to %s failed (attempt %s/%s), retrying: %s",
                        conversation_id,
                        attempts,
                        self._config.retries + 1,
                        exc,
                    )
                    await self._sleep(self._config.backoff_ms / 1000)
                    continue
                LOGGER.error(
                    "Send to %s failed after %s attempt(s): %s", conversation_id, attempts, exc
                )
                raise SendFailed(str(exc), retryable=False, attempts=attempts) from exc
