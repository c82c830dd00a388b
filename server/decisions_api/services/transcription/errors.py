"""Error taxonomy and message-based classification for transcription failures.

Provider errors only reach us as free-text messages, so classification is a
case-insensitive substring match evaluated in a fixed order. The first rule
that matches wins; keep the table below as the single place to adjust it.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Codes exposed to route handlers and, through them, to API clients."""

    TRANSCRIPTION_ERROR = "TRANSCRIPTION_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    AUTH_ERROR = "AUTH_ERROR"
    INVALID_REQUEST_ERROR = "INVALID_REQUEST_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"

    def __str__(self) -> str:
        return self.value


class TranscriptionError(Exception):
    """Structured, terminal transcription failure."""

    def __init__(self, message: str, code: ErrorCode | str, retryable: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.code = ErrorCode(code)
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code.value, "message": self.message, "retryable": self.retryable}

    def __repr__(self) -> str:
        return f"TranscriptionError(code={self.code.value!r}, retryable={self.retryable}, message={self.message!r})"


@dataclass(frozen=True, slots=True)
class ClassifiedError:
    code: ErrorCode
    retryable: bool


_AUTH_PATTERNS = ("401", "unauthorized")
_BAD_REQUEST_PATTERNS = ("400", "bad request")
_TIMEOUT_PATTERNS = ("timeout",)
_NETWORK_PATTERNS = (
    "network",
    "econnreset",
    "econnrefused",
    "enotfound",
    "connection reset",
    "connection refused",
    "connecterror",
)
_RATE_LIMIT_PATTERNS = ("429", "rate limit")
_SERVER_PATTERNS = ("500", "502", "503", "504", "server error")


def _matches(message: str, patterns: tuple[str, ...]) -> bool:
    return any(pattern in message for pattern in patterns)


def classify_message(message: str) -> ClassifiedError:
    """Map a raw error message to an error code and retryable flag."""

    lowered = (message or "").lower()
    bad_request = _matches(lowered, _BAD_REQUEST_PATTERNS)

    if _matches(lowered, _AUTH_PATTERNS) and not bad_request:
        return ClassifiedError(ErrorCode.AUTH_ERROR, False)
    if bad_request:
        return ClassifiedError(ErrorCode.INVALID_REQUEST_ERROR, False)
    if _matches(lowered, _TIMEOUT_PATTERNS):
        return ClassifiedError(ErrorCode.TIMEOUT_ERROR, True)
    if _matches(lowered, _NETWORK_PATTERNS):
        return ClassifiedError(ErrorCode.NETWORK_ERROR, True)
    if _matches(lowered, _RATE_LIMIT_PATTERNS):
        return ClassifiedError(ErrorCode.RATE_LIMIT_ERROR, True)
    if _matches(lowered, _SERVER_PATTERNS):
        return ClassifiedError(ErrorCode.SERVER_ERROR, True)
    return ClassifiedError(ErrorCode.UNKNOWN_ERROR, False)


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__


def classify_error(error: BaseException) -> ClassifiedError:
    """Classify an exception; structured errors keep their own classification."""

    if isinstance(error, TranscriptionError):
        return ClassifiedError(error.code, error.retryable)
    return classify_message(_describe(error))


def to_transcription_error(error: BaseException) -> TranscriptionError:
    """Wrap ``error`` as a ``TranscriptionError`` carrying its classification."""

    if isinstance(error, TranscriptionError):
        return error
    classified = classify_error(error)
    message = _describe(error)
    return TranscriptionError(message, classified.code, classified.retryable)
