"""User voice learning API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from voiceprint.core.context import VoiceContext, get_voice_context
from voiceprint.schemas.message import ApiResponse, Channel
from voiceprint.schemas.voice import LearnVoiceRequest
from voiceprint.services.database import get_db
from voiceprint.services.profile_repository import ProfileRepository

logger = logging.getLogger(__name__)

router = APIRouter()

Context = Annotated[VoiceContext, Depends(get_voice_context)]


@router.post("/learn", response_model=ApiResponse)
async def learn_voice(
    request: LearnVoiceRequest,
    context: Context,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse:
    """Learn the user's voice from their sent messages on every connected channel."""
    profile = await context.voice.learn_user_voice(
        user_id=request.user_id,
        user_name=request.user_name,
        user_email=request.user_email,
        max_messages_per_channel=request.max_messages_per_channel,
    )
    if context.settings.persist_profiles:
        await ProfileRepository(db).save_profile(profile)

    message = None
    if not profile.is_ready:
        message = (
            f"Only {profile.messages_analyzed} sent messages found. "
            f"At least {context.settings.min_messages_for_profile} are needed for a reliable voice profile."
        )
    return ApiResponse(success=True, data=profile.model_dump(mode="json"), message=message)


@router.get("/profile", response_model=ApiResponse)
async def get_profile(context: Context) -> ApiResponse:
    profile = context.voice.get_profile()
    if profile is None:
        raise HTTPException(status_code=404, detail="No voice profile learned yet")
    return ApiResponse(success=True, data=profile.model_dump(mode="json"))


@router.get("/summary", response_model=ApiResponse)
async def get_summary(context: Context) -> ApiResponse:
    return ApiResponse(success=True, data=context.voice.get_voice_summary().model_dump(mode="json"))


@router.get("/style-prompt", response_model=ApiResponse)
async def get_style_prompt(context: Context, channel: Channel | None = None) -> ApiResponse:
    """Style instructions the drafting step would use for a channel."""
    prompt = context.voice.get_style_prompt(channel)
    if prompt is None:
        raise HTTPException(status_code=404, detail="Voice profile is not ready")
    return ApiResponse(success=True, data={"channel": channel, "prompt": prompt})


@router.delete("/profile", response_model=ApiResponse)
async def clear_profile(
    context: Context,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse:
    profile = context.voice.get_profile()
    context.voice.clear_profile()
    if profile is not None and context.settings.persist_profiles:
        await ProfileRepository(db).delete_profile(profile.user_id)
    return ApiResponse(success=True, message="Voice profile cleared")
