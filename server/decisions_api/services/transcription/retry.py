"""Bounded retries with exponential backoff for transcription attempts."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from .errors import classify_error, to_transcription_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


def backoff_delay_ms(attempt: int, base_delay_ms: int) -> int:
    """Delay before the attempt following ``attempt`` (1-indexed)."""

    return base_delay_ms * 2 ** (attempt - 1)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int,
    base_delay_ms: int,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds, fails terminally, or attempts run out.

    ``max_retries`` caps the total number of attempts, so ``3`` means at most
    three calls. Only the terminal failure is raised, always as a
    ``TranscriptionError``; intermediate failures are logged and retried after
    ``base_delay_ms * 2 ** (attempt - 1)`` milliseconds. ``sleep`` receives
    seconds, like ``asyncio.sleep``, and only suspends the calling task.
    """

    attempts_allowed = max(1, max_retries)
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as exc:
            classified = classify_error(exc)
            if not classified.retryable or attempt >= attempts_allowed:
                error = to_transcription_error(exc)
                logger.error(
                    "Transcription failed on attempt %d/%d (%s, retryable=%s): %s",
                    attempt,
                    attempts_allowed,
                    error.code.value,
                    error.retryable,
                    error.message,
                )
                if error is exc:
                    raise
                raise error from exc

            delay_ms = backoff_delay_ms(attempt, base_delay_ms)
            logger.warning(
                "Transcription attempt %d/%d failed with %s; retrying in %d ms: %s",
                attempt,
                attempts_allowed,
                classified.code.value,
                delay_ms,
                exc,
            )
            await sleep(delay_ms / 1000)
