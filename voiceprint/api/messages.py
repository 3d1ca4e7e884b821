"""Unified inbox API endpoints: listing, sync, drafting, review and sending."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query

from voiceprint.core.context import VoiceContext, get_voice_context
from voiceprint.schemas.message import (
    ApiResponse,
    Channel,
    DraftRequest,
    MessageStatus,
    MessageUpdateRequest,
    Priority,
    SendRequest,
)

router = APIRouter()

Context = Annotated[VoiceContext, Depends(get_voice_context)]


@router.get("", response_model=ApiResponse)
async def list_messages(
    context: Context,
    channel: Channel | None = None,
    status: MessageStatus | None = None,
    priority: Priority | None = None,
    search: str | None = None,
    limit: int | None = Query(None, gt=0),
) -> ApiResponse:
    """List inbox messages, newest first."""
    listing = context.inbox.list_messages(
        channel=channel, status=status, priority=priority, search=search, limit=limit
    )
    return ApiResponse(success=True, data=listing.model_dump(mode="json"))


@router.post("/sync", response_model=ApiResponse)
async def sync_messages(context: Context) -> ApiResponse:
    """Pull new messages from every connected channel."""
    report = await context.inbox.sync_channels()
    return ApiResponse(success=True, data=report.model_dump(mode="json"))


@router.post("/draft-all", response_model=ApiResponse)
async def draft_all(context: Context) -> ApiResponse:
    """Draft replies for every pending message."""
    report = await context.inbox.draft_all()
    return ApiResponse(success=True, data=report.model_dump(mode="json"))


@router.get("/{message_id}", response_model=ApiResponse)
async def get_message(message_id: str, context: Context) -> ApiResponse:
    message = context.inbox.get(message_id)
    if message is None:
        raise HTTPException(status_code=404, detail="Message not found")
    return ApiResponse(success=True, data=message.model_dump(mode="json"))


@router.post("/{message_id}/draft", response_model=ApiResponse)
async def draft_message(
    message_id: str,
    context: Context,
    request: DraftRequest | None = None,
) -> ApiResponse:
    """Draft a reply for one message, optionally steering it with feedback."""
    feedback = request.feedback if request else None
    result = await context.inbox.draft_message(message_id, feedback)
    if result is None:
        raise HTTPException(status_code=404, detail="Message not found")

    return ApiResponse(
        success=True,
        data={
            "message_id": message_id,
            "draft": result.draft_text,
            "confidence": result.confidence,
            "met_threshold": result.met_threshold,
            "analysis": result.analysis.model_dump(mode="json"),
            "reasoning": result.reasoning_trace,
        },
    )


@router.put("/{message_id}", response_model=ApiResponse)
async def update_message(message_id: str, request: MessageUpdateRequest, context: Context) -> ApiResponse:
    """Edit a message's status, draft or priority (approve, escalate, rewrite)."""
    message = context.inbox.update_message(
        message_id, status=request.status, ai_draft=request.ai_draft, priority=request.priority
    )
    if message is None:
        raise HTTPException(status_code=404, detail="Message not found")
    return ApiResponse(success=True, data=message.model_dump(mode="json"))


@router.post("/{message_id}/send", response_model=ApiResponse)
async def send_message(
    message_id: str,
    context: Context,
    request: SendRequest | None = None,
) -> ApiResponse:
    """Send the approved draft, or the given text, through the message's channel."""
    result = await context.inbox.send(message_id, request.draft if request else None)
    if result is None:
        raise HTTPException(status_code=404, detail="Message not found")

    return ApiResponse(
        success=result.sent,
        data={"message_id": result.message_id, "status": result.status.value},
        message="Response sent successfully" if result.sent else "Failed to send",
    )
