"""FastAPI application entrypoint for the decisions API."""
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .routers import audio, decisions, health, transcription, users
from .services.supabase_gateway import SupabaseGateway
from .services.transcription import TranscriptionServiceRegistry

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Instantiate and configure the FastAPI application."""

    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)

    @asynccontextmanager
    async def lifespan(application: FastAPI):
        logger.info("Decisions API starting (APP_ENV=%s)", settings.app_env)
        if not settings.is_supabase_configured():
            logger.warning("Supabase is not configured; authenticated routes will reject requests")
        yield
        application.state.transcription_registry.reset_transcription_service()
        logger.info("Decisions API stopped")

    application = FastAPI(
        title="Decisions API",
        description="Audio upload and transcription backend for the decisions app.",
        version="0.1.0",
        lifespan=lifespan,
    )
    # State is installed eagerly so tests can use the app without running the lifespan.
    application.state.settings = settings
    application.state.started_at = time.monotonic()
    application.state.supabase = SupabaseGateway(settings)
    application.state.transcription_registry = TranscriptionServiceRegistry(lambda: settings)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin] if settings.cors_origin else ["*"],
        allow_credentials=bool(settings.cors_origin),
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    application.include_router(health.router)
    application.include_router(users.router)
    application.include_router(audio.router)
    application.include_router(transcription.router)
    application.include_router(decisions.router)
    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=get_settings().host, port=get_settings().port)
