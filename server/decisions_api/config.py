"""Configuration helpers for the decisions API."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

APP_ENVIRONMENTS = ("development", "production", "test")


def _env(name: str, default: Optional[str] = None):
    return field(default_factory=lambda: os.getenv(name, default))


def _env_int(name: str, default: int):
    return field(default_factory=lambda: int(os.getenv(name) or default))


@dataclass
class Settings:
    """Centralized environment-driven configuration.

    Values are read when the instance is created, so a fresh ``Settings()``
    always reflects the current process environment. Use ``get_settings`` for
    the shared, cached copy.
    """

    app_env: str = _env("APP_ENV", "development")
    host: str = _env("HOST", "0.0.0.0")
    port: int = _env_int("PORT", 3001)
    log_level: str = _env("LOG_LEVEL", "INFO")
    cors_origin: Optional[str] = _env("CORS_ORIGIN")

    supabase_url: Optional[str] = _env("SUPABASE_URL")
    supabase_service_role_key: Optional[str] = _env("SUPABASE_SERVICE_ROLE_KEY")

    # AssemblyAI; the mock transcription backend is used when the key is unset.
    assemblyai_api_key: Optional[str] = _env("ASSEMBLYAI_API_KEY")
    assemblyai_base_url: str = _env("ASSEMBLYAI_BASE_URL", "https://api.assemblyai.com")
    transcription_polling_timeout_ms: int = _env_int("TRANSCRIPTION_POLLING_TIMEOUT_MS", 300_000)
    transcription_polling_interval_ms: int = _env_int("TRANSCRIPTION_POLLING_INTERVAL_MS", 3_000)
    transcription_max_retries: int = _env_int("TRANSCRIPTION_MAX_RETRIES", 3)
    transcription_retry_base_delay_ms: int = _env_int("TRANSCRIPTION_RETRY_BASE_DELAY_MS", 1_000)

    def __post_init__(self) -> None:
        self.app_env = (self.app_env or "development").strip().lower()
        if self.app_env not in APP_ENVIRONMENTS:
            raise ValueError(
                f"APP_ENV must be one of {', '.join(APP_ENVIRONMENTS)}; got {self.app_env!r}"
            )
        self.log_level = (self.log_level or "INFO").upper()

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    def is_supabase_configured(self) -> bool:
        """Return whether the service-role Supabase client can be created."""

        return bool(self.supabase_url and self.supabase_service_role_key)

    def is_transcription_configured(self) -> bool:
        """Return whether a real AssemblyAI key is available."""

        return bool((self.assemblyai_api_key or "").strip())


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance to avoid repeated environment reads."""

    return Settings()
