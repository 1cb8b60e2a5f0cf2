from __future__ import annotations

from typing import Any

import httpx

from searchsynth.config import settings
from searchsynth.models.domain import WebSearchHit

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"
MAX_RESULTS_PER_CALL = 10


async def search(query: str, *, max_results: int = 10) -> list[WebSearchHit]:
    """Execute a Brave web search and normalize results."""
    if not settings.brave_api_key:
        raise RuntimeError("BRAVE_API_KEY is not configured")

    params: dict[str, Any] = {
        "q": query,
        "count": max(1, min(max_results, MAX_RESULTS_PER_CALL)),
    }

    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.get(
            BRAVE_SEARCH_URL,
            params=params,
            headers={
                "Accept": "application/json",
                "X-Subscription-Token": settings.brave_api_key,
            },
        )
        response.raise_for_status()
        payload = response.json()

    hits: list[WebSearchHit] = []
    for item in payload.get("web", {}).get("results", []):
        snippets = item.get("extra_snippets", []) or []
        description = item.get("description", "") or ""
        metadata: dict[str, Any] = {}
        if item.get("page_age"):
            metadata["date"] = item["page_age"]
        hits.append(
            WebSearchHit(
                title=item.get("title", ""),
                snippet=description.strip() or " ".join(snippets).strip(),
                link=item.get("url", ""),
                metadata=metadata,
            )
        )
    return hits
