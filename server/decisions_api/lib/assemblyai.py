"""Minimal async client for AssemblyAI's submit-and-poll transcript API."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.assemblyai.com"
TERMINAL_STATUSES = {"completed", "error"}


class AssemblyAIError(Exception):
    """Raised for any failed exchange with AssemblyAI.

    The message is what downstream classification reads, so it only ever holds
    a fixed description plus the HTTP status code and reason. Provider ids,
    response bodies and configured limits live on attributes instead.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        *,
        detail: Optional[str] = None,
        transcript_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail
        self.transcript_id = transcript_id


class AssemblyAIClient:
    """Submits transcription jobs and waits for them to reach a terminal status."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: Optional[str] = None,
        request_timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if not (api_key or "").strip():
            raise ValueError("ASSEMBLYAI_API_KEY missing; set it or use the mock transcription service")
        raw_base = (base_url or DEFAULT_BASE_URL).strip()
        if not raw_base.startswith(("http://", "https://")):
            raise ValueError("ASSEMBLYAI_BASE_URL must include http/https scheme")
        self._api_key = api_key.strip()
        self._base_url = raw_base.rstrip("/")
        self._request_timeout = request_timeout
        self._transport = transport
        self._sleep = sleep

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers={"authorization": self._api_key},
            timeout=self._request_timeout,
            transport=self._transport,
        )

    async def _request(self, client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            resp = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("AssemblyAI %s %s timed out: %r", method, url, exc)
            raise AssemblyAIError("AssemblyAI request timeout", detail=repr(exc)) from exc
        except httpx.TransportError as exc:
            logger.warning("AssemblyAI %s %s transport failure: %r", method, url, exc)
            raise AssemblyAIError("AssemblyAI network error", detail=repr(exc)) from exc

        if resp.is_error:
            detail = None
            try:
                body = resp.json()
                if isinstance(body, dict) and body.get("error"):
                    detail = str(body["error"])
            except ValueError:
                detail = resp.text[:200] or None
            logger.warning("AssemblyAI %s %s returned %s: %s", method, url, resp.status_code, detail)
            raise AssemblyAIError(
                f"AssemblyAI request failed with {resp.status_code} {resp.reason_phrase}",
                status_code=resp.status_code,
                detail=detail,
            )

        data = resp.json()
        if not isinstance(data, dict):
            raise AssemblyAIError("Unexpected AssemblyAI payload", detail=type(data).__name__)
        return data

    async def submit(self, client: httpx.AsyncClient, params: dict[str, Any]) -> dict[str, Any]:
        return await self._request(client, "POST", "/v2/transcript", json=params)

    async def get(self, client: httpx.AsyncClient, transcript_id: str) -> dict[str, Any]:
        return await self._request(client, "GET", f"/v2/transcript/{transcript_id}")

    async def transcribe(
        self,
        params: dict[str, Any],
        *,
        polling_interval_ms: int = 3_000,
        polling_timeout_ms: int = 300_000,
    ) -> dict[str, Any]:
        """Submit ``params`` and poll until the transcript is ``completed`` or ``error``.

        Returns the final transcript payload as a plain dictionary. Raises
        ``AssemblyAIError`` when the job does not finish within
        ``polling_timeout_ms``.
        """

        loop = asyncio.get_running_loop()
        deadline = loop.time() + polling_timeout_ms / 1000
        async with self._client() as client:
            transcript = await self.submit(client, params)
            transcript_id = transcript.get("id")
            logger.info("Submitted AssemblyAI transcript %s", transcript_id)

            while transcript.get("status") not in TERMINAL_STATUSES:
                if not transcript_id:
                    raise AssemblyAIError("AssemblyAI response missing transcript id", detail=repr(transcript))
                if loop.time() >= deadline:
                    logger.warning(
                        "AssemblyAI transcript %s still %s after %d ms",
                        transcript_id,
                        transcript.get("status"),
                        polling_timeout_ms,
                    )
                    raise AssemblyAIError("Polling timeout exceeded", transcript_id=transcript_id)
                await self._sleep(polling_interval_ms / 1000)
                transcript = await self.get(client, transcript_id)
                logger.debug("AssemblyAI transcript %s status=%s", transcript_id, transcript.get("status"))

        logger.info("AssemblyAI transcript %s finished with status %s", transcript_id, transcript.get("status"))
        return transcript
