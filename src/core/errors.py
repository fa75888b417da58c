"""Error taxonomy for the core.

Exceptions are raised across the dispatcher boundary. Places that swallow
errors on purpose return a ``Failure`` instead so callers and tests can see
what kind of failure was recorded.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    TRANSPORT_NOT_READY = "transport_not_ready"
    SEND_FAILED = "send_failed"
    RULE_EVALUATION = "rule_evaluation"
    MEDIA_RESOLUTION = "media_resolution"
    PERSISTENCE = "persistence"
    ACTION = "action"


class TelecrmError(Exception):
    """Base class for errors raised by the core."""

    kind: ErrorKind = ErrorKind.ACTION


class TransportNotReady(TelecrmError):
    """The transport never reported a connected state within the polling budget."""

    kind = ErrorKind.TRANSPORT_NOT_READY


class SendFailed(TelecrmError):
    """A transport send failed for good."""

    kind = ErrorKind.SEND_FAILED

    def __init__(self, message: str, *, retryable: bool, attempts: int) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.attempts = attempts


class RuleEvaluationError(TelecrmError):
    kind = ErrorKind.RULE_EVALUATION


class MediaResolutionError(TelecrmError):
    kind = ErrorKind.MEDIA_RESOLUTION


class PersistenceError(TelecrmError):
    kind = ErrorKind.PERSISTENCE


class RuleConfigError(ValueError):
    """Raised when an auto-reply configuration payload is malformed."""


@dataclass(frozen=True)
class Failure:
    """A contained failure recorded at a soft-fail boundary."""

    kind: ErrorKind
    detail: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> "Failure":
        kind = exc.kind if isinstance(exc, TelecrmError) else ErrorKind.ACTION
        return cls(kind=kind, detail=str(exc) or exc.__class__.__name__)
