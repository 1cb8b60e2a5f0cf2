from __future__ import annotations

import pytest

from conftest import FakeGenerator
from searchsynth.agents.decomposer import decompose_query, parse_sub_queries


def test_parse_sub_queries_accepts_fenced_array():
    raw = '```json\n["Vision Pro launch date", "AAPL share price 2024"]\n```'
    assert parse_sub_queries(raw, "apple") == ["Vision Pro launch date", "AAPL share price 2024"]


def test_parse_sub_queries_dedupes_and_caps():
    raw = '["a", "b", "a", "c", "d", "e", "f"]'
    assert parse_sub_queries(raw, "q", max_sub_queries=3) == ["a", "b", "c"]


def test_parse_sub_queries_coerces_numbers():
    assert parse_sub_queries('["iphone", 15]', "q") == ["iphone", "15"]


@pytest.mark.parametrize(
    "raw",
    [
        "not json at all",
        '{"queries": ["a"]}',
        "[]",
        '["   "]',
        '["ok", {"nested": true}]',
        '["ok", null]',
        '["ok", true]',
    ],
)
def test_parse_sub_queries_falls_back_to_original_query(raw):
    assert parse_sub_queries(raw, "original question") == ["original question"]


@pytest.mark.asyncio
async def test_decompose_query_returns_original_on_generator_error():
    generator = FakeGenerator({"decomposer": RuntimeError("model unavailable")})
    assert await decompose_query("why is the sky blue", generator=generator) == ["why is the sky blue"]


@pytest.mark.asyncio
async def test_decompose_query_renders_prompt_with_query_and_limit():
    generator = FakeGenerator({"decomposer": '["sky colour physics", "rayleigh scattering"]'})

    result = await decompose_query("why is the sky blue", generator=generator, max_sub_queries=4)

    assert result == ["sky colour physics", "rayleigh scattering"]
    caller, prompt = generator.calls[0]
    assert caller == "decomposer"
    assert "why is the sky blue" in prompt
    assert "4" in prompt
