"""Transcription services.

``MockTranscriptionService`` is used under ``APP_ENV=test`` or when
``ASSEMBLYAI_API_KEY`` is unset; otherwise ``AssemblyAITranscriptionService``.
"""
from __future__ import annotations

from .assemblyai import AssemblyAITranscriptionService
from .errors import ErrorCode, TranscriptionError, classify_error
from .mock import DEFAULT_MOCK_TEXT, MockTranscriptionService
from .selector import (
    BackendKind,
    TranscriptionServiceRegistry,
    get_transcription_service,
    select_backend,
)
from .types import TranscriptionResult, TranscriptionService, TranscriptionWord

__all__ = [
    "AssemblyAITranscriptionService",
    "BackendKind",
    "DEFAULT_MOCK_TEXT",
    "ErrorCode",
    "MockTranscriptionService",
    "TranscriptionError",
    "TranscriptionResult",
    "TranscriptionService",
    "TranscriptionServiceRegistry",
    "TranscriptionWord",
    "classify_error",
    "get_transcription_service",
    "select_backend",
]
