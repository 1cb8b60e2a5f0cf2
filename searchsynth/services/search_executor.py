from __future__ import annotations

import asyncio
import re
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

from searchsynth.models.domain import SearchResult, WebSearchHit
from searchsynth.services import logger as log_service
from searchsynth.services.scoring import relevance_score
from searchsynth.tools import web_utils
from searchsynth.tools.search_provider import MAX_RESULTS_PER_CALL, SearchCapability

DATE_METADATA_KEYS = ("article:published_time", "date", "datepublished")
_SNIPPET_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")


def year_enriched(query: str, year: int | None = None) -> str:
    return f"{query} {year or datetime.now(timezone.utc).year}"


def _parse_date(value: object) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def extract_published_date(hit: WebSearchHit, now: datetime | None = None) -> str:
    """First parseable date from the hit's metadata or snippet, else now."""
    candidates: list[object] = [hit.metadata.get(key) for key in DATE_METADATA_KEYS]
    match = _SNIPPET_DATE_RE.search(hit.snippet or "")
    if match:
        candidates.append(match.group(0))

    for candidate in candidates:
        parsed = _parse_date(candidate)
        if parsed is not None:
            return parsed.isoformat()
    return (now or datetime.now(timezone.utc)).isoformat()


def normalize_hit(
    hit: WebSearchHit,
    query: str,
    *,
    conversation_id: str | None = None,
    high_quality_domains: Iterable[str] = (),
    now: datetime | None = None,
) -> SearchResult:
    text = web_utils.clean_text(hit.snippet)
    source = web_utils.extract_domain(hit.link)
    return SearchResult(
        conversation_id=conversation_id,
        title=hit.title,
        text=text,
        url=hit.link,
        published_date=extract_published_date(hit, now),
        source=source,
        score=relevance_score(
            hit.title,
            text,
            source,
            query,
            high_quality_domains=high_quality_domains,
        ),
    )


def dedupe_results(results: Iterable[SearchResult]) -> list[SearchResult]:
    """Drop repeated URLs; the first occurrence wins and order is kept."""
    seen: set[str] = set()
    deduped: list[SearchResult] = []
    for result in results:
        if result.url in seen:
            continue
        seen.add(result.url)
        deduped.append(result)
    return deduped


def rank_results(results: Iterable[SearchResult]) -> list[SearchResult]:
    # sorted() is stable, so equal scores keep first-seen order.
    return sorted(results, key=lambda r: r.score, reverse=True)


def combine_hits(
    hits: Iterable[WebSearchHit],
    query: str,
    *,
    conversation_id: str | None = None,
    high_quality_domains: Iterable[str] = (),
    now: datetime | None = None,
) -> list[SearchResult]:
    """Normalize, score, dedupe and rank a batch of raw hits."""
    now = now or datetime.now(timezone.utc)
    normalized = [
        normalize_hit(
            hit,
            query,
            conversation_id=conversation_id,
            high_quality_domains=high_quality_domains,
            now=now,
        )
        for hit in hits
        if hit.link
    ]
    return rank_results(dedupe_results(normalized))


async def _safe_search(
    search: SearchCapability, query: str, count: int
) -> list[WebSearchHit]:
    try:
        return list(await search.search(query, count))
    except Exception as e:
        log_service.log_event(
            event_type="search_error",
            message="Sub-query search failed; contributing no results",
            query=query[:100],
            error=str(e),
        )
        return []


async def search_sub_query(
    sub_query: str,
    *,
    search: SearchCapability,
    max_results: int = MAX_RESULTS_PER_CALL,
    include_year_variant: bool = True,
) -> list[WebSearchHit]:
    """Plain and current-year-enriched searches for one sub-query, run together."""
    count = max(1, min(max_results, MAX_RESULTS_PER_CALL))
    queries = [sub_query]
    if include_year_variant:
        queries.append(year_enriched(sub_query))

    batches = await asyncio.gather(*(_safe_search(search, q, count) for q in queries))
    hits: list[WebSearchHit] = []
    for batch in batches:
        hits.extend(batch)
    return hits


async def aggregate(
    sub_queries: Sequence[str],
    original_query: str,
    *,
    search: SearchCapability,
    conversation_id: str | None = None,
    max_results: int = MAX_RESULTS_PER_CALL,
    include_year_variant: bool = True,
    high_quality_domains: Iterable[str] = (),
) -> list[SearchResult]:
    """Fan sub-queries out, then merge into one deduplicated, ranked list."""
    hit_groups = await asyncio.gather(
        *(
            search_sub_query(
                q,
                search=search,
                max_results=max_results,
                include_year_variant=include_year_variant,
            )
            for q in sub_queries
        )
    )
    all_hits = [hit for group in hit_groups for hit in group]
    return combine_hits(
        all_hits,
        original_query,
        conversation_id=conversation_id,
        high_quality_domains=high_quality_domains,
    )
