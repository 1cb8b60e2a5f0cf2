from __future__ import annotations

from typing import Any

from tavily import AsyncTavilyClient

from searchsynth.config import settings
from searchsynth.models.domain import WebSearchHit


async def search(
    query: str,
    *,
    max_results: int = 10,
    search_depth: str = "basic",
    topic: str = "general",
) -> list[WebSearchHit]:
    """Execute a Tavily web search and normalize results."""
    if not settings.tavily_api_key:
        raise RuntimeError("TAVILY_API_KEY is not configured")

    client = AsyncTavilyClient(api_key=settings.tavily_api_key)
    kwargs: dict[str, Any] = {
        "query": query,
        "search_depth": search_depth,
        "max_results": max_results,
        "topic": topic,
    }
    response = await client.search(**kwargs)

    hits: list[WebSearchHit] = []
    for r in response.get("results", []):
        metadata: dict[str, Any] = {}
        if r.get("published_date"):
            metadata["date"] = r["published_date"]
        hits.append(
            WebSearchHit(
                title=r.get("title", ""),
                snippet=r.get("content", ""),
                link=r.get("url", ""),
                metadata=metadata,
            )
        )
    return hits
