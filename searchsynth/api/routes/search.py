from __future__ import annotations

from uuid import uuid4

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from searchsynth.agents.orchestrator import SearchOrchestrator
from searchsynth.api.deps import get_context
from searchsynth.models.domain import Message
from searchsynth.models.schemas import SearchRequest
from searchsynth.services import logger as log_service
from searchsynth.services import streaming
from searchsynth.services.context import PipelineContext

router = APIRouter(prefix="/api/search", tags=["search"])


async def _start_conversation(ctx: PipelineContext, query: str) -> str:
    try:
        conversation = await ctx.store.create_conversation(query)
        conversation_id = str(conversation["id"])
    except Exception as e:
        conversation_id = str(uuid4())
        log_service.log_db_operation(
            "insert", "conversations", "error", details=f"fallback id={conversation_id}", error=str(e)
        )
        return conversation_id

    try:
        await ctx.store.add_message(
            Message(conversation_id=conversation_id, role="user", content=query)
        )
    except Exception as e:
        log_service.log_db_operation(
            "insert", "messages", "error", details="user message", error=str(e)
        )
    return conversation_id


@router.post("")
async def search(request: SearchRequest, ctx: PipelineContext = Depends(get_context)):
    """Run a search and stream progress events."""
    query = request.query.strip() or request.query
    conversation_id = await _start_conversation(ctx, query)

    async def event_generator():
        log_service.log_event(
            event_type="search_started",
            message="Search started",
            conversation_id=conversation_id,
            query=query[:100],
        )
        orchestrator = SearchOrchestrator(ctx, conversation_id)
        try:
            async for event in orchestrator.search(query):
                yield event.to_message()
        except Exception as e:
            log_service.log_event(
                event_type="stream_error",
                message="Unhandled error in search stream",
                error=str(e),
                conversation_id=conversation_id,
            )
            error_event = streaming.error("Search stream failed unexpectedly.")
            yield error_event.to_message()

    return EventSourceResponse(event_generator())
