from __future__ import annotations

from datetime import datetime, timezone

import pytest

from conftest import FakeSearch, make_hit
from searchsynth.services import search_executor

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_extract_published_date_prefers_metadata():
    hit = make_hit("t", "https://a.com", "posted 2024-01-02", **{"article:published_time": "2025-05-06T07:08:09Z"})
    assert search_executor.extract_published_date(hit, NOW) == "2025-05-06T07:08:09+00:00"


def test_extract_published_date_falls_back_to_snippet_then_now():
    from_snippet = make_hit("t", "https://a.com", "Updated 2024-01-02 by staff", date="not a date")
    assert search_executor.extract_published_date(from_snippet, NOW) == "2024-01-02T00:00:00"

    undated = make_hit("t", "https://a.com", "no dates here")
    assert search_executor.extract_published_date(undated, NOW) == NOW.isoformat()


def test_normalize_hit_cleans_text_and_strips_www():
    hit = make_hit("Title", "https://www.example.com/page", "Hello   <b>world</b>!")
    result = search_executor.normalize_hit(hit, "hello", conversation_id="c1", now=NOW)

    assert result.source == "example.com"
    assert result.text == "Hello bworldb!"
    assert result.conversation_id == "c1"
    assert 0.0 <= result.score <= 1.0


def test_combine_hits_dedupes_by_url_and_ranks_stably():
    hits = [
        make_hit("other", "https://a.com/1"),
        make_hit("tokyo weather", "https://b.com/1"),
        make_hit("duplicate tokyo weather", "https://a.com/1"),
        make_hit("other again", "https://c.com/1"),
        make_hit("no link", ""),
    ]
    results = search_executor.combine_hits(hits, "tokyo weather", now=NOW)

    urls = [r.url for r in results]
    assert urls == ["https://b.com/1", "https://a.com/1", "https://c.com/1"]
    assert len(set(urls)) == len(urls)
    # First occurrence of a repeated URL wins.
    assert results[1].title == "other"


@pytest.mark.asyncio
async def test_search_sub_query_runs_plain_and_year_variants():
    search = FakeSearch(lambda q: [make_hit(q, f"https://example.com/{len(q)}")])

    hits = await search_executor.search_sub_query("mars rover", search=search, max_results=25)

    year = datetime.now(timezone.utc).year
    assert sorted(search.queries) == sorted(["mars rover", f"mars rover {year}"])
    assert len(hits) == 2


@pytest.mark.asyncio
async def test_search_sub_query_without_year_variant():
    search = FakeSearch(lambda q: [])
    await search_executor.search_sub_query("mars rover", search=search, include_year_variant=False)
    assert search.queries == ["mars rover"]


@pytest.mark.asyncio
async def test_aggregate_tolerates_partial_search_failure():
    year = datetime.now(timezone.utc).year
    search = FakeSearch(
        lambda q: [make_hit(f"result for {q}", f"https://example.com/{q.replace(' ', '-')}")],
        failing={"broken query", f"broken query {year}"},
    )

    results = await search_executor.aggregate(
        ["good query", "broken query"],
        "good query",
        search=search,
        conversation_id="c1",
    )

    assert len(results) == 2
    assert all("good-query" in r.url for r in results)
    assert all(r.conversation_id == "c1" for r in results)


@pytest.mark.asyncio
async def test_aggregate_returns_empty_when_everything_fails():
    search = FakeSearch(failing={"q", f"q {datetime.now(timezone.utc).year}"})
    assert await search_executor.aggregate(["q"], "q", search=search) == []
