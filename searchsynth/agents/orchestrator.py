from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator

from searchsynth.agents.classifier import analyze
from searchsynth.agents.decomposer import decompose_query
from searchsynth.agents.synthesizer import synthesize
from searchsynth.errors import MissingConversationIdError
from searchsynth.models.domain import (
    Citation,
    Message,
    SearchResult,
    VisualizationContext,
    VisualizationResult,
)
from searchsynth.models.events import SSEEvent
from searchsynth.models.schemas import ContinueConversationRequest
from searchsynth.services import logger as log_service
from searchsynth.services import streaming
from searchsynth.services.context import PipelineContext
from searchsynth.services.search_executor import aggregate, combine_hits, search_sub_query


async def save_results(
    ctx: PipelineContext, conversation_id: str, results: list[SearchResult]
) -> None:
    """Persist merged results; a store failure is logged and the pipeline goes on."""
    if not results:
        return
    try:
        await ctx.store.save_search_results(results)
    except Exception as e:
        log_service.log_db_operation(
            "insert",
            "search_results",
            "error",
            details=f"conversation={conversation_id}",
            error=str(e),
        )


class SearchOrchestrator:
    """Runs one top-level search and reports progress as SSE events.

    Flow:
      1. Decompose the query into sub-queries
      2. Fan out: one task per sub-query, reported in submission order
      3. Merge, persist results, classify and fetch visualization data
      4. Synthesize the cited answer and record the conversation summary
    """

    def __init__(self, ctx: PipelineContext, conversation_id: str):
        self.ctx = ctx
        self.conversation_id = conversation_id

    async def search(self, query: str) -> AsyncGenerator[SSEEvent, None]:
        opts = self.ctx.options
        started = time.time()
        tasks: list[asyncio.Task] = []

        try:
            yield streaming.processing(streaming.STEP_DECOMPOSITION)
            sub_queries = await decompose_query(
                query,
                generator=self.ctx.generator,
                max_sub_queries=opts.max_sub_queries,
            )
            log_service.log_search_step(
                self.conversation_id, "decomposition", "completed", {"sub_queries": sub_queries}
            )
            yield streaming.decomposition(sub_queries)

            yield streaming.processing(streaming.STEP_SEARCH)
            tasks = [
                asyncio.create_task(
                    search_sub_query(
                        sub_query,
                        search=self.ctx.search,
                        max_results=opts.results_per_call,
                        include_year_variant=opts.include_year_variant,
                    )
                )
                for sub_query in sub_queries
            ]

            all_hits = []
            total = len(tasks)
            for index, (sub_query, task) in enumerate(zip(sub_queries, tasks), start=1):
                hits = await task
                all_hits.extend(hits)
                partial = combine_hits(
                    hits,
                    query,
                    conversation_id=self.conversation_id,
                    high_quality_domains=opts.high_quality_domains,
                )
                log_service.log_search_step(
                    self.conversation_id,
                    "search",
                    "completed",
                    {"sub_query": sub_query, "results": len(partial), "current": index, "total": total},
                )
                yield streaming.search_progress(sub_query, partial, current=index, total=total)

            yield streaming.processing(streaming.STEP_ANALYSIS)
            results = combine_hits(
                all_hits,
                query,
                conversation_id=self.conversation_id,
                high_quality_domains=opts.high_quality_domains,
            )
            await self._save_results(results)

            classification, visualization = await analyze(
                query,
                "",
                [],
                generator=self.ctx.generator,
                fetchers=self.ctx.fetchers,
                threshold=opts.confidence_threshold,
                timeout=opts.fetcher_timeout,
                window=opts.recent_message_window,
            )
            synthesis = await synthesize(
                query=query,
                results=results,
                conversation_id=self.conversation_id,
                generator=self.ctx.generator,
                store=self.ctx.store,
                visualization=visualization,
                visualization_type=classification.intent.type,
                max_results=opts.synthesis_max_results,
                window=opts.recent_message_window,
            )
            await self._save_summary(synthesis.response)

            log_service.log_search_step(
                self.conversation_id,
                "analysis",
                "completed",
                {
                    "results": len(results),
                    "citations": len(synthesis.citations),
                    "decoded_as": synthesis.decoded_as,
                    "visualization": classification.intent.type.value,
                    "runtime_ms": int((time.time() - started) * 1000),
                },
            )
            yield streaming.complete(
                search_results=results,
                summary_text=synthesis.response,
                original_query=query,
                conversation_id=self.conversation_id,
                citations=synthesis.citations,
                visualization=synthesis.visualization,
                visualization_context=synthesis.visualization_context,
            )
        except Exception as e:
            log_service.log_event(
                event_type="search_error",
                message="Search pipeline failed",
                conversation_id=self.conversation_id,
                error=str(e),
            )
            yield streaming.error(f"Search failed: {e}")
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

    async def _save_results(self, results: list[SearchResult]) -> None:
        await save_results(self.ctx, self.conversation_id, results)

    async def _save_summary(self, summary: str) -> None:
        try:
            await self.ctx.store.update_conversation_summary(self.conversation_id, summary)
        except Exception as e:
            log_service.log_db_operation(
                "update",
                "conversations",
                "error",
                details=f"conversation={self.conversation_id}",
                error=str(e),
            )


@dataclass
class ContinuationResult:
    answer: str
    conversation_id: str
    citations: list[Citation] = field(default_factory=list)
    visualization: VisualizationResult | None = None
    visualization_context: VisualizationContext | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "answer": self.answer,
            "citations": [c.to_dict() for c in self.citations],
            "visualizationData": self.visualization.to_dict() if self.visualization else None,
            "visualizationContext": (
                self.visualization_context.to_dict() if self.visualization_context else None
            ),
            "conversationId": self.conversation_id,
        }


async def _load_history(
    ctx: PipelineContext, conversation_id: str, request: ContinueConversationRequest
) -> list[dict[str, Any]]:
    try:
        stored = await ctx.store.get_messages(conversation_id)
    except Exception as e:
        log_service.log_db_operation(
            "select", "messages", "error", details=f"conversation={conversation_id}", error=str(e)
        )
        stored = []
    if stored:
        return stored
    return [m.model_dump() for m in request.previous_messages]


async def _load_results(ctx: PipelineContext, conversation_id: str) -> list[SearchResult]:
    try:
        rows = await ctx.store.get_search_results(conversation_id)
    except Exception as e:
        log_service.log_db_operation(
            "select",
            "search_results",
            "error",
            details=f"conversation={conversation_id}",
            error=str(e),
        )
        return []
    return [SearchResult.from_row(row) for row in rows]


async def _load_summary(ctx: PipelineContext, conversation_id: str) -> str:
    try:
        conversation = await ctx.store.get_conversation(conversation_id)
    except Exception as e:
        log_service.log_db_operation(
            "select",
            "conversations",
            "error",
            details=f"conversation={conversation_id}",
            error=str(e),
        )
        return ""
    return (conversation or {}).get("summary") or ""


def require_conversation_id(conversation_id: str | None) -> str:
    if not conversation_id or not conversation_id.strip():
        raise MissingConversationIdError("conversation_id is required")
    return conversation_id.strip()


async def continue_conversation(
    conversation_id: str,
    request: ContinueConversationRequest,
    *,
    ctx: PipelineContext,
) -> ContinuationResult:
    """Answer a follow-up message using the conversation's stored context."""
    conversation_id = require_conversation_id(conversation_id)
    opts = ctx.options
    history = await _load_history(ctx, conversation_id, request)
    results = await _load_results(ctx, conversation_id)
    summary = request.summary.strip() or await _load_summary(ctx, conversation_id)

    # The new message is shown as the current query, not as history.
    recent = history[-opts.recent_message_window :] if opts.recent_message_window > 0 else []

    user_message = Message(conversation_id=conversation_id, role="user", content=request.message)
    try:
        await ctx.store.add_message(user_message)
    except Exception as e:
        log_service.log_db_operation(
            "insert", "messages", "error", details="user message", error=str(e)
        )

    classification, visualization = await analyze(
        request.message,
        summary,
        recent,
        generator=ctx.generator,
        fetchers=ctx.fetchers,
        threshold=opts.confidence_threshold,
        timeout=opts.fetcher_timeout,
        window=opts.recent_message_window,
    )

    if not results:
        log_service.log_event(
            event_type="continuation_search",
            message="No stored results; searching the enriched query",
            conversation_id=conversation_id,
            query=classification.enriched_query[:100],
        )
        results = await aggregate(
            [classification.enriched_query],
            classification.enriched_query,
            search=ctx.search,
            conversation_id=conversation_id,
            max_results=opts.results_per_call,
            include_year_variant=opts.include_year_variant,
            high_quality_domains=opts.high_quality_domains,
        )
        await save_results(ctx, conversation_id, results)

    synthesis = await synthesize(
        query=request.message,
        results=results,
        conversation_id=conversation_id,
        generator=ctx.generator,
        store=ctx.store,
        summary=summary,
        recent_messages=recent,
        visualization=visualization,
        visualization_type=classification.intent.type,
        max_results=opts.synthesis_max_results,
        window=opts.recent_message_window,
    )
    return ContinuationResult(
        answer=synthesis.response,
        conversation_id=conversation_id,
        citations=synthesis.citations,
        visualization=synthesis.visualization,
        visualization_context=synthesis.visualization_context,
    )
