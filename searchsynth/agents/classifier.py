from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any

from searchsynth.llm_client import TextGenerator
from searchsynth.models.domain import (
    Classification,
    VisualizationDetails,
    VisualizationIntent,
    VisualizationResult,
    VisualizationType,
)
from searchsynth.services import logger as log_service
from searchsynth.services.context import Fetchers
from searchsynth.services.llm_json import decode_json_object
from searchsynth.services.prompt_store import render_prompt


def format_conversation(messages: Sequence[dict[str, Any]], window: int = 3) -> str:
    """Render the most recent messages as 'ROLE: content' lines."""
    if window <= 0:
        return ""
    recent = list(messages)[-window:]
    return "\n\n".join(
        f"{str(m.get('role') or m.get('type') or 'user').upper()}: {m.get('content', '')}"
        for m in recent
    )


def _optional_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_classification(raw: str, query: str) -> Classification:
    """Decode enriched query + intent; ``none``/0 and the original query on any defect."""
    fallback = Classification(intent=VisualizationIntent.none(), enriched_query=query)

    payload = decode_json_object(raw)
    if payload is None:
        return fallback

    enriched = payload.get("enrichedQuery")
    visualization = payload.get("visualization")
    if not isinstance(enriched, str) or not enriched.strip() or not isinstance(visualization, dict):
        return fallback

    try:
        vtype = VisualizationType(str(visualization.get("type", "")).strip().lower())
    except ValueError:
        return fallback

    entities = visualization.get("entities", [])
    if not isinstance(entities, list):
        return fallback

    confidence = visualization.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        return fallback

    details = visualization.get("details") or {}
    if not isinstance(details, dict):
        details = {}

    intent = VisualizationIntent(
        type=vtype,
        entities=[str(e).strip() for e in entities if isinstance(e, (str, int, float)) and str(e).strip()],
        confidence=min(max(float(confidence), 0.0), 1.0),
        details=VisualizationDetails(
            stock_symbol=_optional_str(details.get("stockSymbol")),
            location=_optional_str(details.get("location")),
        ),
    )
    return Classification(intent=intent, enriched_query=enriched.strip())


async def classify_query(
    query: str,
    summary: str,
    recent_messages: Sequence[dict[str, Any]],
    *,
    generator: TextGenerator,
    window: int = 3,
) -> Classification:
    """Ask for an enriched search query and a visualization intent in one call."""
    prompt = render_prompt(
        "classification.prompt",
        query=query,
        summary=summary or "",
        conversation=format_conversation(recent_messages, window),
    )
    try:
        raw = await generator.generate(prompt, caller="classifier")
    except Exception as e:
        log_service.log_event(
            event_type="classification_error",
            message="Classification failed; no visualization",
            query=query[:100],
            error=str(e),
        )
        return Classification(intent=VisualizationIntent.none(), enriched_query=query)
    return parse_classification(raw, query)


def _dispatch_target(intent: VisualizationIntent, fetchers: Fetchers):
    if intent.type == VisualizationType.GEOGRAPHIC and intent.entities:
        return fetchers.geographic, intent.entities[0]
    if intent.type == VisualizationType.FINANCIAL and intent.details.stock_symbol:
        return fetchers.financial, intent.details.stock_symbol
    if intent.type == VisualizationType.WEATHER and intent.details.location:
        return fetchers.weather, intent.details.location
    return None


async def fetch_visualization(
    intent: VisualizationIntent,
    *,
    fetchers: Fetchers,
    threshold: float = 0.7,
    timeout: float = 10.0,
) -> VisualizationResult | None:
    """Invoke the fetcher matching a confident intent; None when nothing applies."""
    if intent.confidence <= threshold:
        return None
    target = _dispatch_target(intent, fetchers)
    if target is None:
        return None

    fetcher, argument = target
    try:
        return await asyncio.wait_for(fetcher(argument, timeout=timeout), timeout=timeout)
    except asyncio.TimeoutError:
        error = f"{intent.type.value} data fetch timed out"
    except Exception as e:
        error = f"{intent.type.value} data fetch failed: {e}"

    log_service.log_event(
        event_type="fetcher_error",
        message=error,
        visualization_type=intent.type.value,
        target=argument,
    )
    return VisualizationResult.failure(intent.type, error)


async def analyze(
    query: str,
    summary: str,
    recent_messages: Sequence[dict[str, Any]],
    *,
    generator: TextGenerator,
    fetchers: Fetchers,
    threshold: float = 0.7,
    timeout: float = 10.0,
    window: int = 3,
) -> tuple[Classification, VisualizationResult | None]:
    """Classify, then fetch; sequential because the fetch target depends on the intent."""
    classification = await classify_query(
        query, summary, recent_messages, generator=generator, window=window
    )
    visualization = await fetch_visualization(
        classification.intent,
        fetchers=fetchers,
        threshold=threshold,
        timeout=timeout,
    )
    return classification, visualization
