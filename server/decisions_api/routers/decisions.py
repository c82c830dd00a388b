"""Voice decisions: store a recording and return its transcript in one call."""
from __future__ import annotations

import logging
import time
import uuid
from enum import Enum
from typing import Optional, Union

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import JSONResponse

from ..auth import get_current_user, get_supabase_gateway
from ..models import schemas
from ..services.supabase_gateway import SIGNED_URL_EXPIRES_IN, AuthenticatedUser, SupabaseGateway
from ..services.transcription import ErrorCode, TranscriptionError, TranscriptionService, get_transcription_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/decisions", tags=["decisions"])

MAX_FILE_SIZE = 50 * 1024 * 1024
ALLOWED_AUDIO_TYPES = (
    "audio/webm",
    "audio/wav",
    "audio/mpeg",
    "audio/mp3",
    "audio/mp4",
    "audio/ogg",
)


class VoiceErrorCode(str, Enum):
    MISSING_FILE = "MISSING_FILE"
    INVALID_FORMAT = "INVALID_FORMAT"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    TRANSCRIPTION_FAILED = "TRANSCRIPTION_FAILED"
    TIMEOUT = "TIMEOUT"


def _error(status_code: int, error: str, code: VoiceErrorCode, message: str) -> JSONResponse:
    body = schemas.VoiceErrorResponse(error=error, code=code.value, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


_ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": schemas.VoiceErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": schemas.VoiceErrorResponse},
    status.HTTP_504_GATEWAY_TIMEOUT: {"model": schemas.VoiceErrorResponse},
}


@router.post("/voice", response_model=schemas.VoiceResponse, responses=_ERROR_RESPONSES)
async def record_voice_decision(
    audio: Optional[UploadFile] = File(default=None),
    user: AuthenticatedUser = Depends(get_current_user),
    gateway: SupabaseGateway = Depends(get_supabase_gateway),
    service: TranscriptionService = Depends(get_transcription_service),
) -> Union[schemas.VoiceResponse, JSONResponse]:
    """Upload ``audio`` to ``{user_id}/{decision_id}/recording.webm`` and transcribe it.

    The transcription backend reads the recording through a signed URL that
    expires after an hour; the same URL is returned to the caller.
    """

    started = time.monotonic()
    if audio is None:
        logger.warning("Voice decision request without an audio file")
        return _error(
            status.HTTP_400_BAD_REQUEST,
            "Missing file",
            VoiceErrorCode.MISSING_FILE,
            "No audio file provided. Please upload an audio file.",
        )

    mime_type = (audio.content_type or "").lower()
    if mime_type not in ALLOWED_AUDIO_TYPES:
        logger.warning("Rejected voice decision with format %s", mime_type or "unknown")
        return _error(
            status.HTTP_400_BAD_REQUEST,
            "Invalid format",
            VoiceErrorCode.INVALID_FORMAT,
            f"Invalid audio format: {mime_type or 'unknown'}. Allowed formats: {', '.join(ALLOWED_AUDIO_TYPES)}",
        )

    try:
        data = await audio.read()
    finally:
        await audio.close()

    if len(data) > MAX_FILE_SIZE:
        logger.warning("Rejected voice decision of %d bytes", len(data))
        return _error(
            status.HTTP_400_BAD_REQUEST,
            "File too large",
            VoiceErrorCode.FILE_TOO_LARGE,
            f"File size ({round(len(data) / 1024 / 1024)}MB) exceeds the maximum allowed size of "
            f"{MAX_FILE_SIZE // (1024 * 1024)}MB.",
        )

    decision_id = str(uuid.uuid4())
    path = f"{user.id}/{decision_id}/recording.webm"
    try:
        stored_path = await gateway.upload(path, data, content_type=mime_type)
    except Exception:
        logger.exception("Failed to upload voice decision %s", decision_id)
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Upload failed",
            VoiceErrorCode.UPLOAD_FAILED,
            "Failed to upload audio file. Please try again.",
        )

    try:
        audio_url = await gateway.create_signed_url(stored_path, SIGNED_URL_EXPIRES_IN)
    except Exception:
        logger.exception("Failed to sign %s for decision %s", stored_path, decision_id)
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Upload failed",
            VoiceErrorCode.UPLOAD_FAILED,
            "Failed to generate access URL for transcription. Please try again.",
        )

    try:
        result = await service.transcribe(audio_url)
    except TranscriptionError as exc:
        logger.error("Transcription of decision %s failed (%s): %s", decision_id, exc.code.value, exc.message)
        if exc.code is ErrorCode.TIMEOUT_ERROR:
            return _error(
                status.HTTP_504_GATEWAY_TIMEOUT,
                "Transcription timed out",
                VoiceErrorCode.TIMEOUT,
                "Transcription took too long. Please try again.",
            )
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Transcription failed",
            VoiceErrorCode.TRANSCRIPTION_FAILED,
            exc.message if exc.code is ErrorCode.TRANSCRIPTION_ERROR else "Failed to transcribe audio. Please try again.",
        )
    except Exception:
        logger.exception("Transcription of decision %s failed", decision_id)
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Transcription failed",
            VoiceErrorCode.TRANSCRIPTION_FAILED,
            "Failed to transcribe audio. Please try again.",
        )

    logger.info(
        "Voice decision %s transcribed: %d chars in %.0f ms",
        decision_id,
        len(result.text),
        (time.monotonic() - started) * 1000,
    )
    return schemas.VoiceResponse(decision_id=decision_id, transcript=result.text, audio_url=audio_url)
