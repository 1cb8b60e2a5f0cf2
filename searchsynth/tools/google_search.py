from __future__ import annotations

from typing import Any

import httpx

from searchsynth.config import settings
from searchsynth.models.domain import WebSearchHit

GOOGLE_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"
MAX_RESULTS_PER_CALL = 10


def _date_metadata(item: dict[str, Any]) -> dict[str, Any]:
    pagemap = item.get("pagemap") or {}
    metatags = (pagemap.get("metatags") or [{}])[0] or {}
    newsarticle = (pagemap.get("newsarticle") or [{}])[0] or {}
    metadata: dict[str, Any] = {}
    if metatags.get("article:published_time"):
        metadata["article:published_time"] = metatags["article:published_time"]
    if metatags.get("date"):
        metadata["date"] = metatags["date"]
    if newsarticle.get("datepublished"):
        metadata["datepublished"] = newsarticle["datepublished"]
    return metadata


async def search(query: str, *, max_results: int = 10) -> list[WebSearchHit]:
    """Execute a Google Custom Search query and normalize the items."""
    if not settings.google_api_key or not settings.google_search_engine_id:
        raise RuntimeError("GOOGLE_API_KEY / GOOGLE_SEARCH_ENGINE_ID are not configured")

    params: dict[str, Any] = {
        "key": settings.google_api_key,
        "cx": settings.google_search_engine_id,
        "q": query,
        "num": max(1, min(max_results, MAX_RESULTS_PER_CALL)),
    }

    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.get(GOOGLE_SEARCH_URL, params=params)
        response.raise_for_status()
        payload = response.json()

    return [
        WebSearchHit(
            title=item.get("title") or "",
            snippet=item.get("snippet") or "",
            link=item.get("link") or "",
            metadata=_date_metadata(item),
        )
        for item in payload.get("items", []) or []
    ]
