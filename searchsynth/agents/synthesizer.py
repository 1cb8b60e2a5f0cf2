"""Cited answer synthesis.

Model output is decoded in two stages. ``decode_structured`` accepts only the
requested JSON document; when that fails ``decode_fallback`` treats the raw
text as the answer and recovers citations from its ``[n]`` markers. Both
produce the same shape, tagged by ``kind``.
"""
from __future__ import annotations

import json
import re
from collections.abc import Sequence
from typing import Any

from searchsynth.agents.classifier import format_conversation
from searchsynth.llm_client import TextGenerator
from searchsynth.models.domain import (
    Citation,
    FallbackSynthesis,
    Message,
    ParsedSynthesis,
    SearchResult,
    SynthesisOutcome,
    SynthesisResult,
    VisualizationContext,
    VisualizationResult,
    VisualizationType,
    utc_now_iso,
)
from searchsynth.services import logger as log_service
from searchsynth.services.llm_json import decode_json_object
from searchsynth.services.prompt_store import render_prompt
from searchsynth.services.store import ConversationStore

MAX_SYNTHESIS_RESULTS = 15
PLACEHOLDER_SOURCE = "Reference not found"
PLACEHOLDER_URL = "#"
FALLBACK_CONTEXT_DESCRIPTION = "Visualization relevant to your query"
GENERATION_FAILED_TEXT = (
    "I couldn't generate an answer right now. The sources found for your query are listed below."
)
_CITATION_MARKER_RE = re.compile(r"\[(\d+)\]")


def build_search_context(results: Sequence[SearchResult]) -> str:
    return "\n\n".join(
        f"[{index}] {result.source}: {result.title}\n{result.text}"
        for index, result in enumerate(results, start=1)
    )


def _visualization_type(value: Any, default: VisualizationType) -> VisualizationType:
    try:
        return VisualizationType(str(value).strip().lower())
    except ValueError:
        return default


def _decode_citation(item: Any) -> Citation | None:
    if not isinstance(item, dict):
        return None
    number = item.get("number")
    if isinstance(number, bool):
        return None
    if isinstance(number, str) and number.strip().isdigit():
        number = int(number.strip())
    if not isinstance(number, int):
        return None
    source = item.get("source")
    url = item.get("url")
    if not isinstance(source, str) or not isinstance(url, str):
        return None
    return Citation(number=number, source=source, url=url)


def decode_structured(
    raw: str, visualization_type: VisualizationType = VisualizationType.NONE
) -> ParsedSynthesis | None:
    payload = decode_json_object(raw)
    if payload is None:
        return None
    response = payload.get("response")
    if not isinstance(response, str) or not response.strip():
        return None

    citations: list[Citation] = []
    raw_citations = payload.get("citations")
    if isinstance(raw_citations, list):
        for item in raw_citations:
            citation = _decode_citation(item)
            if citation is not None:
                citations.append(citation)

    context = None
    raw_context = payload.get("visualizationContext")
    if isinstance(raw_context, dict) and isinstance(raw_context.get("description"), str):
        context = VisualizationContext(
            type=_visualization_type(raw_context.get("type"), visualization_type),
            description=raw_context["description"],
        )

    return ParsedSynthesis(response=response, citations=citations, visualization_context=context)


def decode_fallback(
    raw: str,
    results: Sequence[SearchResult],
    visualization_type: VisualizationType = VisualizationType.NONE,
) -> FallbackSynthesis:
    numbers = list(dict.fromkeys(int(n) for n in _CITATION_MARKER_RE.findall(raw or "")))
    citations: list[Citation] = []
    for number in numbers:
        index = number - 1
        if 0 <= index < len(results):
            result = results[index]
            citations.append(
                Citation(
                    number=number,
                    source=result.source or "Unknown Source",
                    url=result.url or PLACEHOLDER_URL,
                )
            )
        else:
            citations.append(Citation(number=number, source=PLACEHOLDER_SOURCE, url=PLACEHOLDER_URL))

    context = None
    if visualization_type != VisualizationType.NONE:
        context = VisualizationContext(type=visualization_type, description=FALLBACK_CONTEXT_DESCRIPTION)

    return FallbackSynthesis(response=raw or "", citations=citations, visualization_context=context)


def decode_synthesis(
    raw: str,
    results: Sequence[SearchResult],
    visualization_type: VisualizationType = VisualizationType.NONE,
) -> SynthesisOutcome:
    parsed = decode_structured(raw, visualization_type)
    if parsed is not None:
        return parsed
    log_service.log_event(
        event_type="synthesis_fallback",
        message="Synthesis output was not valid JSON; extracting citations from markers",
    )
    return decode_fallback(raw, results, visualization_type)


def filter_citations(citations: Sequence[Citation], available: int) -> list[Citation]:
    """Keep citations that point at one of the ``available`` results."""
    return [c for c in citations if 1 <= c.number <= available]


def build_prompt(
    *,
    query: str,
    results: Sequence[SearchResult],
    summary: str,
    conversation: str,
    visualization: VisualizationResult | None,
    visualization_type: VisualizationType,
) -> str:
    visualization_block = ""
    if visualization is not None and visualization.ok:
        visualization_block = f"VISUALIZATION DATA: {json.dumps(visualization.data)}"
    return render_prompt(
        "synthesis.prompt",
        query=query,
        summary=summary or "No summary available",
        conversation=conversation or "None",
        now=utc_now_iso(),
        result_count=len(results),
        search_context=build_search_context(results) or "No search results available.",
        visualization_block=visualization_block,
        visualization_type=visualization_type.value,
    )


async def synthesize(
    *,
    query: str,
    results: Sequence[SearchResult],
    conversation_id: str,
    generator: TextGenerator,
    store: ConversationStore,
    summary: str = "",
    recent_messages: Sequence[dict[str, Any]] = (),
    visualization: VisualizationResult | None = None,
    visualization_type: VisualizationType = VisualizationType.NONE,
    max_results: int = MAX_SYNTHESIS_RESULTS,
    window: int = 3,
) -> SynthesisResult:
    """Generate the cited answer and append it to the conversation."""
    considered = sorted(results, key=lambda r: r.score, reverse=True)[
        : max(min(max_results, MAX_SYNTHESIS_RESULTS), 0)
    ]
    prompt = build_prompt(
        query=query,
        results=considered,
        summary=summary,
        conversation=format_conversation(recent_messages, window),
        visualization=visualization,
        visualization_type=visualization_type,
    )

    try:
        raw = await generator.generate(prompt, caller="synthesizer")
        outcome = decode_synthesis(raw, considered, visualization_type)
    except Exception as e:
        log_service.log_event(
            event_type="synthesis_error",
            message="Synthesis generation failed",
            conversation_id=conversation_id,
            error=str(e),
        )
        outcome = FallbackSynthesis(
            response=GENERATION_FAILED_TEXT, citations=[], visualization_context=None
        )

    citations = filter_citations(outcome.citations, len(considered))
    attached = visualization if visualization is not None and visualization.ok else None
    context = outcome.visualization_context if attached is not None else None

    message = Message(
        conversation_id=conversation_id,
        role="assistant",
        content=outcome.response,
        citations=citations,
        visualization_data=attached,
        visualization_context=context,
    )
    message_id = None
    try:
        row = await store.add_message(message)
        message_id = row.get("id") if isinstance(row, dict) else None
    except Exception as e:
        log_service.log_db_operation(
            "insert", "messages", "error", details="assistant message", error=str(e)
        )

    return SynthesisResult(
        response=outcome.response,
        citations=citations,
        visualization=visualization,
        visualization_context=context,
        decoded_as=outcome.kind,
        message_id=message_id,
    )
