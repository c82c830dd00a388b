"""Supabase auth and storage helpers used by the route layer."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TypeVar

from supabase import Client, create_client

from decisions_api.config import Settings, get_settings

logger = logging.getLogger(__name__)

AUDIO_BUCKET = "decision-audio"
SIGNED_URL_EXPIRES_IN = 3600

T = TypeVar("T")


@dataclass(slots=True)
class AuthenticatedUser:
    """Identity extracted from a verified Supabase access token."""

    id: str
    email: str = ""
    phone: Optional[str] = None
    role: Optional[str] = None
    app_metadata: dict[str, Any] = field(default_factory=dict)
    user_metadata: dict[str, Any] = field(default_factory=dict)


class InvalidTokenError(Exception):
    """Raised when a bearer token cannot be verified."""


class SupabaseGateway:
    """Lazily-created service-role client wrapped for use from async handlers.

    The server starts without Supabase credentials; the first call that needs
    the client fails with ``RuntimeError`` instead.
    """

    def __init__(self, settings: Optional[Settings] = None, bucket: str = AUDIO_BUCKET) -> None:
        self._settings = settings or get_settings()
        self._client: Client | None = None
        self.bucket = bucket

    @property
    def enabled(self) -> bool:
        """Return whether Supabase credentials are configured."""

        return self._settings.is_supabase_configured()

    def _ensure_client(self) -> Client:
        if not self.enabled:
            raise RuntimeError("Supabase credentials missing; set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY")
        if self._client is None:
            self._client = create_client(self._settings.supabase_url, self._settings.supabase_service_role_key)
        return self._client

    async def _execute(self, fn: Callable[[Client], T]) -> T:
        client = self._ensure_client()
        return await asyncio.to_thread(fn, client)

    async def verify_token(self, token: str) -> AuthenticatedUser:
        """Resolve a bearer token to the Supabase user it was issued for."""

        try:
            response = await self._execute(lambda client: client.auth.get_user(token))
        except RuntimeError:
            raise
        except Exception as exc:
            logger.debug("Supabase token verification failed: %s", exc)
            raise InvalidTokenError(str(exc)) from exc

        user = getattr(response, "user", None)
        if user is None or not getattr(user, "id", None):
            raise InvalidTokenError("Token did not resolve to a user")

        return AuthenticatedUser(
            id=str(user.id),
            email=getattr(user, "email", None) or "",
            phone=getattr(user, "phone", None) or None,
            role=getattr(user, "role", None),
            app_metadata=dict(getattr(user, "app_metadata", None) or {}),
            user_metadata=dict(getattr(user, "user_metadata", None) or {}),
        )

    async def upload(self, path: str, data: bytes, *, content_type: str) -> str:
        """Store ``data`` at ``path`` in the audio bucket and return the stored path."""

        result = await self._execute(
            lambda client: client.storage.from_(self.bucket).upload(
                path,
                data,
                {"content-type": content_type, "upsert": "false"},
            )
        )
        stored = getattr(result, "path", None)
        return stored if isinstance(stored, str) and stored else path

    def get_public_url(self, path: str) -> str:
        """Public URL for an object in the audio bucket; no network round-trip."""

        url = self._ensure_client().storage.from_(self.bucket).get_public_url(path)
        # Some supabase-py releases append an empty query string.
        return url.rstrip("?")

    async def create_signed_url(self, path: str, expires_in: int = SIGNED_URL_EXPIRES_IN) -> str:
        """Time-limited URL for a private object, valid for ``expires_in`` seconds."""

        result = await self._execute(
            lambda client: client.storage.from_(self.bucket).create_signed_url(path, expires_in)
        )
        # storage3 has spelled this key both ways across releases.
        signed = (result or {}).get("signedURL") or (result or {}).get("signedUrl")
        if not signed:
            raise RuntimeError(f"Supabase returned no signed URL for {path}")
        return signed
