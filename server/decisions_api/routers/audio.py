"""Audio upload endpoint backed by Supabase Storage."""
from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from ..auth import get_current_user, get_supabase_gateway
from ..models import schemas
from ..services.supabase_gateway import AuthenticatedUser, SupabaseGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/audio", tags=["audio"])

MAX_FILE_SIZE = 10 * 1024 * 1024
_CHUNK_SIZE = 64 * 1024
MIME_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/mp4": "mp4",
    "audio/mpeg": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
}


def extension_for(mime_type: str) -> str:
    return MIME_EXTENSIONS.get(mime_type, "webm")


def _too_large() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        detail=f"File size exceeds maximum allowed ({MAX_FILE_SIZE // (1024 * 1024)}MB)",
    )


async def _read_limited(upload: UploadFile) -> bytes:
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await upload.read(_CHUNK_SIZE)
        if not chunk:
            break
        total += len(chunk)
        if total > MAX_FILE_SIZE:
            raise _too_large()
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/upload", response_model=schemas.AudioUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_audio(
    audio: Optional[UploadFile] = File(default=None),
    user: AuthenticatedUser = Depends(get_current_user),
    gateway: SupabaseGateway = Depends(get_supabase_gateway),
) -> schemas.AudioUploadResponse:
    """Store an uploaded recording under the caller's folder and return its public URL."""

    if audio is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No audio file provided")

    mime_type = (audio.content_type or "").lower()
    if not mime_type.startswith("audio/"):
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Invalid file type: {mime_type or 'unknown'}. Allowed types: {', '.join(MIME_EXTENSIONS)}",
        )

    try:
        data = await _read_limited(audio)
    finally:
        await audio.close()

    path = f"{user.id}/{uuid.uuid4()}.{extension_for(mime_type)}"
    try:
        stored_path = await gateway.upload(path, data, content_type=mime_type)
        url = gateway.get_public_url(stored_path)
    except Exception as exc:
        logger.exception("Error uploading %s to Supabase Storage", path)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to upload audio file to storage",
        ) from exc

    logger.info("Stored %d bytes of audio at %s", len(data), stored_path)
    return schemas.AudioUploadResponse(url=url, path=stored_path, size=len(data))
