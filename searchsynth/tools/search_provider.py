from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from searchsynth.config import settings
from searchsynth.models.domain import WebSearchHit
from searchsynth.services import logger as log_service
from searchsynth.tools import brave_search, google_search, tavily_search

MAX_RESULTS_PER_CALL = 10


class SearchCapability(Protocol):
    async def search(self, query: str, count: int = MAX_RESULTS_PER_CALL) -> list[WebSearchHit]:
        ...


@dataclass
class SearchResponse:
    hits: list[WebSearchHit]
    provider: str
    fallback_from: str | None = None
    fallback_reason: str | None = None


def _can_fall_back() -> bool:
    return bool(settings.search_fallback_to_tavily and settings.tavily_api_key)


async def _fallback(query: str, max_results: int, primary: str, reason: str) -> SearchResponse:
    hits = await tavily_search.search(query=query, max_results=max_results)
    log_service.log_event(
        event_type="search_fallback",
        message=f"Search fell back from {primary} to tavily",
        query=query[:100],
        reason=reason,
    )
    return SearchResponse(
        hits=hits,
        provider="tavily",
        fallback_from=primary,
        fallback_reason=reason,
    )


async def search(query: str, *, max_results: int = MAX_RESULTS_PER_CALL) -> SearchResponse:
    provider = settings.search_provider.lower().strip()
    max_results = max(1, min(max_results, MAX_RESULTS_PER_CALL))

    if provider == "tavily":
        hits = await tavily_search.search(query=query, max_results=max_results)
        return SearchResponse(hits=hits, provider="tavily")

    if provider == "google":
        primary = google_search.search
    elif provider == "brave":
        primary = brave_search.search
    else:
        raise ValueError(f"Unsupported SEARCH_PROVIDER: {settings.search_provider}")

    try:
        hits = await primary(query, max_results=max_results)
    except Exception as e:
        if not _can_fall_back():
            raise
        return await _fallback(query, max_results, provider, str(e))

    if hits or not _can_fall_back():
        return SearchResponse(hits=hits, provider=provider)
    return await _fallback(query, max_results, provider, f"{provider} returned zero results")


class ProviderSearch:
    """SearchCapability over the configured provider chain."""

    async def search(self, query: str, count: int = MAX_RESULTS_PER_CALL) -> list[WebSearchHit]:
        response = await search(query, max_results=count)
        return response.hits
