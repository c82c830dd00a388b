"""Liveness endpoint."""
from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from ..models import schemas

router = APIRouter(tags=["health"])


@router.get("/health", response_model=schemas.HealthResponse)
async def health(request: Request) -> schemas.HealthResponse:
    """Report that the process is up, with its uptime in seconds."""

    started_at = getattr(request.app.state, "started_at", time.monotonic())
    return schemas.HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime=time.monotonic() - started_at,
    )
