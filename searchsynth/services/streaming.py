from __future__ import annotations

from typing import Any

from searchsynth.models.domain import (
    Citation,
    SearchResult,
    VisualizationContext,
    VisualizationResult,
)
from searchsynth.models.events import EventType, SSEEvent

STEP_DECOMPOSITION = "decomposition"
STEP_SEARCH = "search"
STEP_ANALYSIS = "analysis"


def processing(step: str) -> SSEEvent:
    return SSEEvent(event=EventType.PROCESSING, data={"step": step})


def decomposition(sub_queries: list[str]) -> SSEEvent:
    return SSEEvent(event=EventType.DECOMPOSITION, data={"subQueries": list(sub_queries)})


def search_progress(
    sub_query: str,
    partial_results: list[SearchResult],
    *,
    current: int,
    total: int,
) -> SSEEvent:
    return SSEEvent(
        event=EventType.SEARCH,
        data={
            "subQuery": sub_query,
            "partialResults": [r.to_dict() for r in partial_results],
            "progress": {"current": current, "total": total},
        },
    )


def complete(
    *,
    search_results: list[SearchResult],
    summary_text: str,
    original_query: str,
    conversation_id: str,
    citations: list[Citation] | None = None,
    visualization: VisualizationResult | None = None,
    visualization_context: VisualizationContext | None = None,
) -> SSEEvent:
    data: dict[str, Any] = {
        "searchResults": [r.to_dict() for r in search_results],
        "summaryText": summary_text,
        "originalQuery": original_query,
        "conversationId": conversation_id,
        "citations": [c.to_dict() for c in citations or []],
    }
    if visualization is not None:
        data["visualizationData"] = visualization.to_dict()
    if visualization_context is not None:
        data["visualizationContext"] = visualization_context.to_dict()
    return SSEEvent(event=EventType.COMPLETE, data=data)


def error(message: str, step: str | None = None) -> SSEEvent:
    data: dict[str, Any] = {"message": message}
    if step:
        data["step"] = step
    return SSEEvent(event=EventType.ERROR, data=data)
