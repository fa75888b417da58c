"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_RETRYABLE_PATTERNS = (
    "evaluation failed",
    "execution context was destroyed",
    "not connected",
    "reload",
    "disconnected",
)


@dataclass(frozen=True)
class DispatchConfig:
    """Queue and retry budget for outbound sends."""

    retries: int = 5
    backoff_ms: int = 700
    ready_tries: int = 40
    ready_delay_ms: int = 250
    materialize_tries: int = 10
    materialize_delay_ms: int = 300
    retryable_patterns: tuple[str, ...] = field(default=DEFAULT_RETRYABLE_PATTERNS)


@dataclass(frozen=True)
class AutoReplyPolicy:
    """Whether the single auto-reply opportunity is spent in edge cases.

    - consume_trigger_without_reply: nothing matched and no welcome text set
    - consume_trigger_on_failure: the reply could not be delivered
    """

    consume_trigger_without_reply: bool = True
    consume_trigger_on_failure: bool = True

