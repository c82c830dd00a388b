"""Backend selection and the process-local transcription service cache."""
from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Optional

from fastapi import Request

from decisions_api.config import Settings, get_settings

from .assemblyai import DEFAULT_LANGUAGE_CODE, AssemblyAITranscriptionService
from .mock import MockTranscriptionService
from .types import TranscriptionService

logger = logging.getLogger(__name__)


class BackendKind(str, Enum):
    MOCK = "mock"
    ASSEMBLYAI = "assemblyai"

    def __str__(self) -> str:
        return self.value


def select_backend(settings: Settings) -> BackendKind:
    """Pick the backend for ``settings``; tests and unconfigured hosts get the mock."""

    if settings.is_test:
        return BackendKind.MOCK
    if not settings.is_transcription_configured():
        return BackendKind.MOCK
    return BackendKind.ASSEMBLYAI


def build_transcription_service(settings: Settings) -> TranscriptionService:
    kind = select_backend(settings)
    logger.info("Using %s transcription backend (APP_ENV=%s)", kind, settings.app_env)
    if kind is BackendKind.MOCK:
        return MockTranscriptionService()
    return AssemblyAITranscriptionService(
        settings.assemblyai_api_key or "",
        language_code=DEFAULT_LANGUAGE_CODE,
        polling_timeout_ms=settings.transcription_polling_timeout_ms,
        polling_interval_ms=settings.transcription_polling_interval_ms,
        max_retries=settings.transcription_max_retries,
        retry_base_delay_ms=settings.transcription_retry_base_delay_ms,
        base_url=settings.assemblyai_base_url,
    )


class TranscriptionServiceRegistry:
    """Caches one transcription backend until explicitly reset.

    The application creates a registry at start-up and stores it on
    ``app.state``; route handlers reach it through ``get_transcription_service``.
    The selection policy only runs when the cache is empty.
    """

    def __init__(
        self,
        settings_factory: Callable[[], Settings] = get_settings,
        builder: Callable[[Settings], TranscriptionService] = build_transcription_service,
    ) -> None:
        self._settings_factory = settings_factory
        self._builder = builder
        self._service: Optional[TranscriptionService] = None
        self._lock = threading.Lock()

    def get_transcription_service(self) -> TranscriptionService:
        service = self._service
        if service is not None:
            return service
        with self._lock:
            if self._service is None:
                self._service = self._builder(self._settings_factory())
            return self._service

    def reset_transcription_service(self) -> None:
        """Drop the cached backend; intended for test isolation."""

        with self._lock:
            self._service = None


def get_transcription_service(request: Request) -> TranscriptionService:
    """FastAPI dependency resolving the backend from the application's registry."""

    registry: TranscriptionServiceRegistry = request.app.state.transcription_registry
    return registry.get_transcription_service()
