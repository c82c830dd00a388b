"""AssemblyAI-backed transcription service.

Each call submits the audio URL to AssemblyAI, waits for the job through the
client's polling loop and maps the transcript onto ``TranscriptionResult``.
Transient failures are retried with exponential backoff; see ``retry.py`` and
``errors.py`` for the policy.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from decisions_api.lib.assemblyai import AssemblyAIClient

from .errors import ErrorCode, TranscriptionError
from .retry import Sleep, retry_with_backoff
from .types import (
    WORD_OVERLAP_TOLERANCE_MS,
    TranscriptionResult,
    TranscriptionWord,
    mean_confidence,
    normalize_whitespace,
)

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE_CODE = "it"
DEFAULT_POLLING_TIMEOUT_MS = 300_000
DEFAULT_POLLING_INTERVAL_MS = 3_000
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BASE_DELAY_MS = 1_000


def map_word(raw: dict[str, Any]) -> TranscriptionWord:
    """Convert an AssemblyAI word payload into a ``TranscriptionWord``."""

    start = max(0, int(raw.get("start") or 0))
    end = int(raw.get("end") or 0)
    confidence = float(raw.get("confidence") or 0.0)
    return TranscriptionWord(
        text=str(raw.get("text") or ""),
        start=start,
        # Zero-length words occasionally come back; keep the start < end invariant.
        end=end if end > start else start + 1,
        confidence=min(1.0, max(0.0, confidence)),
    )


def map_transcript(transcript: dict[str, Any]) -> TranscriptionResult:
    """Map a completed AssemblyAI transcript payload to a ``TranscriptionResult``."""

    mapped = sorted(
        (map_word(word) for word in (transcript.get("words") or []) if word is not None),
        key=lambda word: (word.start, word.end),
    )
    words: list[TranscriptionWord] = []
    for word in mapped:
        floor = words[-1].end - WORD_OVERLAP_TOLERANCE_MS if words else 0
        if word.start < floor:
            # Overlapping provider timings are pushed forward so the result stays in time order.
            word = TranscriptionWord(
                text=word.text,
                start=floor,
                end=max(word.end, floor + 1),
                confidence=word.confidence,
            )
        words.append(word)
    return TranscriptionResult(
        text=normalize_whitespace(transcript.get("text") or ""),
        confidence=mean_confidence(words),
        words=words,
    )


class AssemblyAITranscriptionService:
    """Real transcription backend; raises ``TranscriptionError`` on terminal failure."""

    def __init__(
        self,
        api_key: str,
        *,
        language_code: str = DEFAULT_LANGUAGE_CODE,
        polling_timeout_ms: int = DEFAULT_POLLING_TIMEOUT_MS,
        polling_interval_ms: int = DEFAULT_POLLING_INTERVAL_MS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay_ms: int = DEFAULT_RETRY_BASE_DELAY_MS,
        base_url: Optional[str] = None,
        client: Optional[AssemblyAIClient] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client or AssemblyAIClient(api_key, base_url=base_url)
        self.language_code = language_code
        self.polling_timeout_ms = polling_timeout_ms
        self.polling_interval_ms = polling_interval_ms
        self.max_retries = max_retries
        self.retry_base_delay_ms = retry_base_delay_ms
        self._sleep = sleep

    async def transcribe(self, audio_url: str) -> TranscriptionResult:
        return await retry_with_backoff(
            lambda: self._transcribe_attempt(audio_url),
            max_retries=self.max_retries,
            base_delay_ms=self.retry_base_delay_ms,
            sleep=self._sleep,
        )

    async def _transcribe_attempt(self, audio_url: str) -> TranscriptionResult:
        transcript = await self._client.transcribe(
            {"audio_url": audio_url, "language_code": self.language_code},
            polling_interval_ms=self.polling_interval_ms,
            polling_timeout_ms=self.polling_timeout_ms,
        )

        if transcript.get("status") == "error":
            raise TranscriptionError(
                transcript.get("error") or "Transcription failed with unknown error",
                ErrorCode.TRANSCRIPTION_ERROR,
                retryable=False,
            )

        result = map_transcript(transcript)
        logger.info(
            "Transcribed %s: %d words, confidence=%.3f",
            audio_url,
            len(result.words),
            result.confidence,
        )
        return result
