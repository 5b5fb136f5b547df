"""
Tagged error types for the acquisition pipeline.

Every error carries its ``ErrorKind`` from the point where it is raised, so
callers dispatch on ``error.kind`` and never on message text.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Tuple

if TYPE_CHECKING:
    from .models import ExtractionAttempt, ExtractionFailure


class ErrorKind(str, Enum):
    # Validation-time, fatal
    INVALID_INPUT = "InvalidInput"
    MALFORMED_URL = "MalformedUrl"
    BLOCKED_HOST = "BlockedHost"
    # Per-strategy, recoverable
    TIMEOUT = "Timeout"
    NETWORK_ERROR = "NetworkError"
    HTTP_STATUS_ERROR = "HttpStatusError"
    EMPTY_RESPONSE = "EmptyResponse"
    VALIDATION_FAILED = "ValidationFailed"
    # Terminal
    ALL_STRATEGIES_EXHAUSTED = "AllStrategiesExhausted"

    @property
    def is_fatal(self) -> bool:
        return self in _FATAL_KINDS

    @property
    def is_retryable(self) -> bool:
        return self in _RETRYABLE_KINDS


_FATAL_KINDS = frozenset({ErrorKind.INVALID_INPUT, ErrorKind.MALFORMED_URL, ErrorKind.BLOCKED_HOST})
_RETRYABLE_KINDS = frozenset({ErrorKind.TIMEOUT, ErrorKind.NETWORK_ERROR, ErrorKind.HTTP_STATUS_ERROR})


class AcquisitionError(Exception):
    """Base class for all acquisition pipeline errors."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def attempts(self) -> Tuple["ExtractionAttempt", ...]:
        return ()


class UrlValidationError(AcquisitionError):
    """Raised before any network access when the input URL is rejected."""


class StrategyError(AcquisitionError):
    """Raised by a strategy when it cannot produce image bytes."""

    def __init__(self, kind: ErrorKind, message: str, *, status: int | None = None) -> None:
        super().__init__(kind, message)
        self.status = status


class ExtractionExhaustedError(AcquisitionError):
    """Raised when every configured strategy failed."""

    def __init__(self, failure: "ExtractionFailure") -> None:
        super().__init__(ErrorKind.ALL_STRATEGIES_EXHAUSTED, failure.aggregate_message)
        self.failure = failure

    @property
    def attempts(self) -> Tuple["ExtractionAttempt", ...]:
        return self.failure.attempts

    @property
    def suggestions(self) -> Tuple[str, ...]:
        return self.failure.suggestions
