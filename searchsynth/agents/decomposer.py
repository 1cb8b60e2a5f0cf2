from __future__ import annotations

from datetime import date
from typing import Any

from searchsynth.llm_client import TextGenerator
from searchsynth.services import logger as log_service
from searchsynth.services.llm_json import decode_json_array
from searchsynth.services.prompt_store import render_prompt


def _coerce_sub_query(value: Any) -> str | None:
    # bool is an int subclass but "True" is not a usable query.
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (str, int, float)):
        return " ".join(str(value).split())
    return None


def parse_sub_queries(raw: str, query: str, *, max_sub_queries: int = 5) -> list[str]:
    """Decode the model's JSON array; ``[query]`` for anything unusable."""
    items = decode_json_array(raw)
    if items is None:
        return [query]

    sub_queries: list[str] = []
    for item in items:
        coerced = _coerce_sub_query(item)
        if coerced is None:
            return [query]
        if coerced and coerced not in sub_queries:
            sub_queries.append(coerced)

    if not sub_queries:
        return [query]
    return sub_queries[: max(max_sub_queries, 1)]


async def decompose_query(
    query: str,
    *,
    generator: TextGenerator,
    max_sub_queries: int = 5,
) -> list[str]:
    """Split one query into focused sub-queries. Never raises."""
    prompt = render_prompt(
        "decomposition.prompt",
        query=query,
        today=date.today().isoformat(),
        max_sub_queries=max_sub_queries,
    )
    try:
        raw = await generator.generate(prompt, caller="decomposer")
    except Exception as e:
        log_service.log_event(
            event_type="decomposition_error",
            message="Decomposition failed; searching the original query",
            query=query[:100],
            error=str(e),
        )
        return [query]

    sub_queries = parse_sub_queries(raw, query, max_sub_queries=max_sub_queries)
    if sub_queries == [query]:
        log_service.log_event(
            event_type="decomposition_fallback",
            message="Decomposition output unusable or trivial; searching the original query",
            query=query[:100],
        )
    return sub_queries
