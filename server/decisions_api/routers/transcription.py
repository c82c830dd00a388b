"""Transcription endpoint."""
from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import unquote, urlparse

from fastapi import APIRouter, Depends, HTTPException, status

from ..auth import get_current_user, get_supabase_gateway
from ..models import schemas
from ..services.supabase_gateway import AUDIO_BUCKET, AuthenticatedUser, SupabaseGateway
from ..services.transcription import TranscriptionError, TranscriptionService, get_transcription_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/transcription", tags=["transcription"])

_PUBLIC_OBJECT_PATH = re.compile(rf"/storage/v1/object/public/{re.escape(AUDIO_BUCKET)}/(.+)")


def path_belongs_to_user(path: str, user_id: str) -> bool:
    """Storage paths are ``{user_id}/{filename}``."""

    parts = path.split("/")
    return len(parts) >= 2 and parts[0] == user_id


def extract_storage_path(audio_url: str) -> Optional[str]:
    """Return the bucket path when ``audio_url`` points into our audio bucket."""

    try:
        parsed = urlparse(audio_url)
    except ValueError:
        return None
    match = _PUBLIC_OBJECT_PATH.search(parsed.path)
    return unquote(match.group(1)) if match else None


def _forbidden() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You do not have permission to access this audio file",
    )


@router.post("", response_model=schemas.TranscriptionResponse)
async def transcribe_audio(
    payload: schemas.TranscriptionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    gateway: SupabaseGateway = Depends(get_supabase_gateway),
    service: TranscriptionService = Depends(get_transcription_service),
) -> schemas.TranscriptionResponse:
    """Transcribe a stored recording (``audioPath``) or any reachable ``audioUrl``.

    Paths, and URLs pointing into our bucket, must live in the caller's own
    folder. Failures from the transcription backend surface as 502.
    """

    if payload.audio_path:
        if not path_belongs_to_user(payload.audio_path, user.id):
            raise _forbidden()
        try:
            audio_url = gateway.get_public_url(payload.audio_path)
        except RuntimeError as exc:
            logger.error("Cannot resolve audio path %s: %s", payload.audio_path, exc)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Storage is not configured",
            ) from exc
    elif payload.audio_url:
        storage_path = extract_storage_path(payload.audio_url)
        if storage_path is not None and not path_belongs_to_user(storage_path, user.id):
            raise _forbidden()
        audio_url = payload.audio_url
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either audioUrl or audioPath must be provided",
        )

    try:
        result = await service.transcribe(audio_url)
    except TranscriptionError as exc:
        logger.error("Transcription service error (%s): %s", exc.code.value, exc.message)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "message": f"Transcription service error: {exc.message}",
                "code": exc.code.value,
                "retryable": exc.retryable,
            },
        ) from exc
    except Exception as exc:
        logger.exception("Transcription service failed")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": f"Transcription service failed: {exc}"},
        ) from exc

    return schemas.TranscriptionResponse(text=result.text, confidence=result.confidence)
