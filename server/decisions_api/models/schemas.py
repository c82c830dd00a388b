"""Pydantic models describing request and response payloads."""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Liveness payload for load balancers and monitors."""

    status: str = "ok"
    timestamp: str
    uptime: float = Field(..., description="Seconds since the application started")


class UserInfoResponse(BaseModel):
    """The authenticated user as seen by the API."""

    id: str
    email: str
    phone: Optional[str] = None
    role: Optional[str] = None
    app_metadata: Dict[str, Any] = Field(default_factory=dict)
    user_metadata: Dict[str, Any] = Field(default_factory=dict)


class AudioUploadResponse(BaseModel):
    """Returned after an audio file lands in storage."""

    url: str = Field(..., description="Public URL of the stored audio")
    path: str = Field(..., description="Storage path, formatted as {user_id}/{filename}")
    size: int = Field(..., description="Size of the stored file in bytes")


class TranscriptionRequest(BaseModel):
    """Either a full audio URL or a storage path owned by the caller."""

    model_config = ConfigDict(populate_by_name=True)

    audio_url: Optional[str] = Field(default=None, alias="audioUrl")
    audio_path: Optional[str] = Field(default=None, alias="audioPath")


class TranscriptionResponse(BaseModel):
    """Transcript exposed to clients; word timings stay server-side."""

    text: str
    confidence: float = Field(..., ge=0.0, le=1.0)


class VoiceResponse(BaseModel):
    """A recorded decision, stored and transcribed in one request."""

    model_config = ConfigDict(populate_by_name=True)

    decision_id: str = Field(..., alias="decisionId")
    transcript: str
    audio_url: str = Field(..., alias="audioUrl", description="Signed URL of the stored recording")


class VoiceErrorResponse(BaseModel):
    error: str
    code: str
    message: str
