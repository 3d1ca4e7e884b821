"""Voiceprint - voice-matched reply drafting FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from voiceprint.api import ai, messages, voice
from voiceprint.config import get_settings
from voiceprint.core.context import VoiceContext
from voiceprint.core.exceptions import InvalidInputError
from voiceprint.services.database import async_session_maker, close_db, init_db
from voiceprint.services.profile_repository import ProfileRepository

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    app.state.context = VoiceContext(settings=settings)
    if settings.persist_profiles:
        await init_db()
        async with async_session_maker() as session:
            profile = await ProfileRepository(session).load_profile()
        if profile is not None:
            app.state.context.voice.restore(profile)
            logger.info(f"Restored voice profile for {profile.user_id} (version {profile.version})")

    yield

    # Shutdown
    if settings.persist_profiles:
        profile = app.state.context.voice.get_profile()
        if profile is not None:
            async with async_session_maker() as session:
                await ProfileRepository(session).save_profile(profile)
        await close_db()


app = FastAPI(
    title=settings.app_name,
    description="Learns how you write and drafts replies in your voice",
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": str(exc.detail)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc) or "Internal server error"})


# Include routers
app.include_router(ai.router, prefix="/api/v1/ai", tags=["AI"])
app.include_router(voice.router, prefix="/api/v1/voice", tags=["Voice"])
app.include_router(messages.router, prefix="/api/v1/messages", tags=["Messages"])


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/")
async def root() -> dict:
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "docs": "/docs",
        "health": "/health",
    }
