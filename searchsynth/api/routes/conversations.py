from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from searchsynth.agents.orchestrator import continue_conversation, require_conversation_id
from searchsynth.api.deps import get_context
from searchsynth.errors import MissingConversationIdError, StoreError
from searchsynth.models.schemas import (
    ContinueConversationRequest,
    ContinueConversationResponse,
    ConversationDetailResponse,
    ConversationResponse,
    MessageResponse,
)
from searchsynth.services import logger as log_service
from searchsynth.services.context import PipelineContext

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(ctx: PipelineContext = Depends(get_context)):
    """List conversations, most recently updated first."""
    try:
        return await ctx.store.list_conversations()
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/{conversation_id}", response_model=ConversationDetailResponse)
async def get_conversation(conversation_id: str, ctx: PipelineContext = Depends(get_context)):
    """Get a conversation with all its messages."""
    try:
        conversation = await ctx.store.get_conversation(conversation_id)
        if not conversation:
            raise HTTPException(status_code=404, detail="Conversation not found")
        messages = await ctx.store.get_messages(conversation_id)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return ConversationDetailResponse(
        conversation=ConversationResponse(**conversation),
        messages=[MessageResponse(**m) for m in messages],
    )


@router.post(
    "/{conversation_id}/messages",
    response_model=ContinueConversationResponse,
    response_model_by_alias=True,
)
async def add_message(
    conversation_id: str,
    request: ContinueConversationRequest,
    ctx: PipelineContext = Depends(get_context),
):
    """Answer a follow-up message within an existing conversation."""
    try:
        conversation_id = require_conversation_id(conversation_id)
    except MissingConversationIdError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        conversation = await ctx.store.get_conversation(conversation_id)
    except StoreError as e:
        log_service.log_db_operation(
            "select", "conversations", "error", details=f"conversation={conversation_id}", error=str(e)
        )
        conversation = {"id": conversation_id}
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")

    result = await continue_conversation(conversation_id, request, ctx=ctx)
    return ContinueConversationResponse(**result.to_dict())
