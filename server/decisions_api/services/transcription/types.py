"""Data shapes shared by every transcription backend."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Protocol, runtime_checkable

DEFAULT_CONFIDENCE = 0.95
# Consecutive words may overlap by at most this many milliseconds.
WORD_OVERLAP_TOLERANCE_MS = 1

_WHITESPACE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs (newlines included) into single spaces and trim."""

    return _WHITESPACE.sub(" ", text or "").strip()


def _check_confidence(value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"confidence must be within [0, 1]; got {value}")


@dataclass(frozen=True, slots=True)
class TranscriptionWord:
    """A single recognized token; times are milliseconds from the audio start."""

    text: str
    start: int
    end: int
    confidence: float

    def __post_init__(self) -> None:
        if self.start < 0 or self.end <= self.start:
            raise ValueError(f"word timing must satisfy 0 <= start < end; got {self.start}..{self.end}")
        _check_confidence(self.confidence)


@dataclass(frozen=True, slots=True)
class TranscriptionResult:
    """Outcome of a single ``transcribe`` call."""

    text: str
    confidence: float
    words: tuple[TranscriptionWord, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        _check_confidence(self.confidence)
        # Accept any iterable of words but keep the stored value immutable.
        object.__setattr__(self, "words", tuple(self.words))
        for prev, curr in zip(self.words, self.words[1:]):
            if curr.start < prev.end - WORD_OVERLAP_TOLERANCE_MS:
                raise ValueError(
                    f"words must be in time order; {curr.text!r} starts at {curr.start} before {prev.text!r} ends at {prev.end}"
                )


def mean_confidence(words: Iterable[TranscriptionWord], fallback: float = DEFAULT_CONFIDENCE) -> float:
    """Average the word confidences, or return ``fallback`` when there are none."""

    scores = [word.confidence for word in words]
    if not scores:
        return fallback
    return min(1.0, max(0.0, sum(scores) / len(scores)))


@runtime_checkable
class TranscriptionService(Protocol):
    """Capability implemented by every transcription backend."""

    async def transcribe(self, audio_url: str) -> TranscriptionResult:
        """Transcribe the audio reachable at ``audio_url``."""
        ...
