"""Drafting API endpoints: analysis, generation, config and style analysis."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query

from voiceprint.core.context import VoiceContext, get_voice_context
from voiceprint.schemas.message import (
    AnalyzeRequest,
    AnalyzeStyleRequest,
    ApiResponse,
    GenerateRequest,
    ResponseConfigUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()

Context = Annotated[VoiceContext, Depends(get_voice_context)]


@router.post("/analyze", response_model=ApiResponse)
async def analyze_message(
    request: AnalyzeRequest,
    context: Context,
    full: bool = Query(False, description="Use the generative-text service instead of heuristics"),
) -> ApiResponse:
    """Analyze a message's intent, sentiment, urgency and key points."""
    if request.message is None:
        raise HTTPException(status_code=400, detail="Message is required")

    if full:
        analysis = await context.engine.analyze_message(request.message)
    else:
        analysis = context.engine.quick_analyze(request.message)
    return ApiResponse(success=True, data=analysis.model_dump(mode="json"))


@router.post("/generate", response_model=ApiResponse)
async def generate_response(request: GenerateRequest, context: Context) -> ApiResponse:
    """Generate a reply draft, or regenerate one with feedback."""
    if request.message is None:
        raise HTTPException(status_code=400, detail="Message is required")

    if request.feedback:
        result = await context.engine.regenerate_with_feedback(request.message, request.feedback)
    else:
        result = await context.engine.generate_response(request.message)
    return ApiResponse(success=True, data=result.model_dump(mode="json"))


@router.get("/config", response_model=ApiResponse)
async def get_config(context: Context) -> ApiResponse:
    return ApiResponse(success=True, data=context.engine.get_config().model_dump(mode="json"))


@router.put("/config", response_model=ApiResponse)
async def update_config(updates: ResponseConfigUpdate, context: Context) -> ApiResponse:
    config = context.engine.update_config(updates)
    logger.info("Response config updated")
    return ApiResponse(success=True, data=config.model_dump(mode="json"))


@router.post("/analyze-style", response_model=ApiResponse)
async def analyze_style(request: AnalyzeStyleRequest, context: Context) -> ApiResponse:
    """Build per-contact style records from a batch of messages and keep them for drafting."""
    _, summary = await context.engine.analyze_style_batch(request.messages)
    return ApiResponse(success=True, data=summary.model_dump(mode="json"))
