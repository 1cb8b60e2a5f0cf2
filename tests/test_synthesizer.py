from __future__ import annotations

import json

import pytest

from conftest import FailingStore, FakeGenerator
from searchsynth.agents.synthesizer import (
    PLACEHOLDER_SOURCE,
    build_search_context,
    decode_fallback,
    decode_structured,
    filter_citations,
    synthesize,
)
from searchsynth.models.domain import (
    Citation,
    SearchResult,
    VisualizationResult,
    VisualizationType,
)


def _results(n: int, conversation_id: str = "c1") -> list[SearchResult]:
    return [
        SearchResult(
            conversation_id=conversation_id,
            title=f"Title {i}",
            text=f"Body {i}",
            url=f"https://source{i}.com/a",
            published_date="2026-01-01T00:00:00+00:00",
            source=f"source{i}.com",
            score=round(1 - i / 100, 2),
        )
        for i in range(1, n + 1)
    ]


def test_build_search_context_numbers_results():
    context = build_search_context(_results(2))
    assert context == "[1] source1.com: Title 1\nBody 1\n\n[2] source2.com: Title 2\nBody 2"


def test_decode_structured_skips_malformed_citations():
    raw = json.dumps(
        {
            "response": "Answer [1].",
            "citations": [
                {"number": 1, "source": "source1.com", "url": "https://source1.com/a"},
                {"number": "two", "source": "x", "url": "y"},
                {"number": 3, "source": None, "url": "z"},
                "junk",
            ],
            "visualizationContext": {"type": "financial", "description": "Price since launch"},
        }
    )
    parsed = decode_structured(raw)

    assert parsed is not None
    assert parsed.kind == "parsed"
    assert parsed.citations == [Citation(1, "source1.com", "https://source1.com/a")]
    assert parsed.visualization_context.type == VisualizationType.FINANCIAL


def test_decode_structured_rejects_non_documents():
    assert decode_structured("The answer is 42 [1].") is None
    assert decode_structured('{"citations": []}') is None


def test_decode_fallback_maps_distinct_markers_in_order():
    raw = "Tokyo is warm [2]. It rained [1] and again [2]. See also [7]."
    fallback = decode_fallback(raw, _results(3), VisualizationType.WEATHER)

    assert fallback.kind == "fallback"
    assert fallback.response == raw
    assert [c.number for c in fallback.citations] == [2, 1, 7]
    assert fallback.citations[0].source == "source2.com"
    assert fallback.citations[2].source == PLACEHOLDER_SOURCE
    assert fallback.citations[2].url == "#"
    assert fallback.visualization_context.description == "Visualization relevant to your query"


def test_decode_fallback_without_visualization_has_no_context():
    assert decode_fallback("no markers", _results(1)).visualization_context is None


def test_filter_citations_drops_out_of_range_numbers():
    citations = [Citation(0, "a", "#"), Citation(1, "b", "#"), Citation(3, "c", "#"), Citation(4, "d", "#")]
    assert [c.number for c in filter_citations(citations, 3)] == [1, 3]


@pytest.mark.asyncio
async def test_synthesize_persists_parsed_answer(store):
    visualization = VisualizationResult.success(VisualizationType.FINANCIAL, {"overview": {"Symbol": "AAPL"}})
    raw = json.dumps(
        {
            "response": "Shares rose [1].",
            "citations": [{"number": 1, "source": "source1.com", "url": "https://source1.com/a"}],
            "visualizationContext": {"type": "financial", "description": "AAPL closing prices"},
        }
    )
    generator = FakeGenerator({"synthesizer": raw})

    result = await synthesize(
        query="Apple stock after Vision Pro",
        results=_results(3),
        conversation_id="c1",
        generator=generator,
        store=store,
        visualization=visualization,
        visualization_type=VisualizationType.FINANCIAL,
    )

    assert result.decoded_as == "parsed"
    assert result.message_id is not None
    _, prompt = generator.calls[0]
    assert "VISUALIZATION DATA" in prompt
    assert "[3] source3.com: Title 3" in prompt

    [message] = await store.get_messages("c1")
    assert message["role"] == "assistant"
    assert message["content"] == "Shares rose [1]."
    assert message["visualization_data"]["status"] == "success"
    assert message["visualization_context"] == {"type": "financial", "description": "AAPL closing prices"}


@pytest.mark.asyncio
async def test_synthesize_fallback_citations_never_exceed_results(store):
    generator = FakeGenerator({"synthesizer": "Plain text answer [1] [2] [20]."})

    result = await synthesize(
        query="q",
        results=_results(20),
        conversation_id="c1",
        generator=generator,
        store=store,
        max_results=15,
    )

    assert result.decoded_as == "fallback"
    assert [c.number for c in result.citations] == [1, 2]
    [message] = await store.get_messages("c1")
    assert all(c["number"] <= 15 for c in message["citations"])


@pytest.mark.asyncio
async def test_synthesize_does_not_attach_failed_visualization(store):
    failed = VisualizationResult.failure(VisualizationType.WEATHER, "Failed to fetch weather data")
    generator = FakeGenerator({"synthesizer": "It is probably mild [1]."})

    result = await synthesize(
        query="weather in Tokyo",
        results=_results(2),
        conversation_id="c1",
        generator=generator,
        store=store,
        visualization=failed,
        visualization_type=VisualizationType.WEATHER,
    )

    assert result.visualization == failed
    assert result.visualization_context is None
    [message] = await store.get_messages("c1")
    assert message["visualization_data"] is None
    assert message["visualization_context"] is None


@pytest.mark.asyncio
async def test_synthesize_generator_failure_yields_apology_and_still_persists(store):
    generator = FakeGenerator({"synthesizer": RuntimeError("model down")})

    result = await synthesize(query="q", results=_results(2), conversation_id="c1", generator=generator, store=store)

    assert result.decoded_as == "fallback"
    assert result.citations == []
    assert len(await store.get_messages("c1")) == 1


@pytest.mark.asyncio
async def test_synthesize_store_failure_does_not_abort():
    generator = FakeGenerator({"synthesizer": '{"response": "ok", "citations": []}'})

    result = await synthesize(
        query="q", results=_results(1), conversation_id="c1", generator=generator, store=FailingStore()
    )

    assert result.response == "ok"
    assert result.message_id is None
