"""Mock transcription backend for development and tests."""
from __future__ import annotations

import asyncio
import random
from typing import Optional

from .types import TranscriptionResult, TranscriptionWord, mean_confidence, normalize_whitespace

DEFAULT_MOCK_TEXT = """Sto valutando se cambiare lavoro o restare nella mia posizione attuale.
Da un lato, il nuovo lavoro offre uno stipendio più alto e opportunità di crescita,
ma dovrei trasferirmi in un'altra città. Dall'altro lato, qui ho stabilità e sono vicino alla famiglia.
Mi sento un po' ansioso riguardo a questa decisione perché entrambe le opzioni hanno vantaggi e svantaggi significativi."""

# Simulated word durations (ms) and confidence range.
_WORD_DURATION_MS = (250.0, 450.0)
_WORD_CONFIDENCE = (0.85, 1.0)


def generate_mock_words(text: str, rng: random.Random) -> list[TranscriptionWord]:
    """Split ``text`` into words with back-to-back timings and plausible confidences."""

    words: list[TranscriptionWord] = []
    current = 0.0
    for token in text.split():
        start = current
        current += rng.uniform(*_WORD_DURATION_MS)
        words.append(
            TranscriptionWord(
                text=token,
                start=round(start),
                end=round(current),
                confidence=rng.uniform(*_WORD_CONFIDENCE),
            )
        )
    return words


class MockTranscriptionService:
    """Returns the configured text after a simulated delay; never touches the network."""

    def __init__(
        self,
        *,
        delay_ms: Optional[float] = None,
        mock_text: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._rng = rng or random.Random()
        self.delay_ms = delay_ms if delay_ms is not None else self._rng.uniform(2000, 3000)
        self.mock_text = mock_text if mock_text is not None else DEFAULT_MOCK_TEXT

    async def transcribe(self, audio_url: str) -> TranscriptionResult:
        # audio_url is ignored on purpose: same configuration, same text.
        if self.delay_ms > 0:
            # The loop may fire a timer up to one clock tick early; sleep off the remainder.
            loop = asyncio.get_running_loop()
            deadline = loop.time() + self.delay_ms / 1000
            while loop.time() < deadline:
                await asyncio.sleep(deadline - loop.time())

        text = normalize_whitespace(self.mock_text)
        words = generate_mock_words(text, self._rng)
        return TranscriptionResult(text=text, confidence=mean_confidence(words), words=words)
